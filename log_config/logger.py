"""Centralized logging configuration using loguru."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

# Remove default handler
logger.remove()

# Add console handler with INFO level
logger.add(
    sys.stderr,
    level="INFO",
    format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    colorize=True,
)

_file_sinks: list[int] = []


def setup_file_logging(log_dir: Union[str, Path] = "logs") -> Path:
    """Add rotating file sinks for a recording session.

    Library code never calls this; the CLI does, so importing the package
    does not create files.

    Args:
        log_dir: Directory for the log files (created if missing)

    Returns:
        Resolved log directory
    """
    logs_dir = Path(log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    if _file_sinks:
        return logs_dir

    _file_sinks.append(
        logger.add(
            logs_dir / "serve_fusion_{time}.log",
            rotation="50 MB",
            retention="10 days",
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
            enqueue=True,  # Thread-safe logging
        )
    )

    # Add error-specific log file
    _file_sinks.append(
        logger.add(
            logs_dir / "errors_{time}.log",
            rotation="10 MB",
            retention="30 days",
            level="ERROR",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
            enqueue=True,
        )
    )
    return logs_dir


def get_logger(name: Optional[str] = None):
    """Get a logger instance with the given name.

    Args:
        name: Module name for the logger (usually __name__)

    Returns:
        Configured logger instance
    """
    if name:
        return logger.bind(name=name)
    return logger


# Performance logging helper
def log_performance(operation: str, duration_ms: float, threshold_ms: float = 1.0) -> None:
    """Log performance metrics with warnings for slow operations.

    Per-sample work (history scans, parabolic fits) has to finish well inside
    one sample interval, hence the low default threshold.

    Args:
        operation: Description of the operation
        duration_ms: Duration in milliseconds
        threshold_ms: Threshold for warning (default: 1ms)
    """
    if duration_ms > threshold_ms:
        logger.warning(f"Slow operation: {operation} took {duration_ms:.2f}ms (threshold: {threshold_ms}ms)")
    else:
        logger.trace(f"Performance: {operation} took {duration_ms:.3f}ms")


# Export configured logger
__all__ = ["logger", "get_logger", "log_performance", "setup_file_logging"]
