"""Schema and application version metadata for channel payloads."""

from __future__ import annotations

from typing import Any, Dict

from exceptions import MessageDecodeError

SCHEMA_VERSION = "1.0.0"
APP_VERSION = "0.3.0"


def make_envelope(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap a payload with schema/app versions for serialization."""
    return {
        "schema_version": SCHEMA_VERSION,
        "app_version": APP_VERSION,
        "payload": payload,
    }


def open_envelope(message: Dict[str, Any]) -> Dict[str, Any]:
    """Return the payload of an envelope, rejecting other major schema versions."""
    if not isinstance(message, dict) or "payload" not in message:
        raise MessageDecodeError("Message is not a versioned envelope", payload=message)
    version = str(message.get("schema_version", ""))
    if version.split(".")[0] != SCHEMA_VERSION.split(".")[0]:
        raise MessageDecodeError(
            f"Unsupported schema version {version!r} (expected {SCHEMA_VERSION})",
            payload=message,
        )
    payload = message["payload"]
    if not isinstance(payload, dict):
        raise MessageDecodeError("Envelope payload must be a mapping", payload=message)
    return payload
