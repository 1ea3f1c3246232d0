"""Command-line interface for serve fusion."""

from __future__ import annotations

import argparse
import json
import sys

from analysis.simulation import run_simulation
from configs.settings import load_config
from configs.validator import validate_config_file
from exceptions import ConfigError
from log_config.logger import setup_file_logging


def _format_optional(value, fmt: str = "{:.3f}") -> str:
    return "n/a" if value is None else fmt.format(value)


def simulate_command(args):
    """Handle simulate command.

    Args:
        args: Parsed command-line arguments
    """
    try:
        config = load_config(args.config) if args.config else None
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result = run_simulation(
        config=config,
        skew_s=args.skew,
        drift_ppm=args.drift_ppm,
        one_way_delay_s=args.delay,
        return_delay_s=args.return_delay,
        face_roll_deg=args.face_roll,
        imu_noise=args.imu_noise,
        ball_noise_px=args.ball_noise,
        seed=args.seed,
        wrist_reachable=not args.unreachable,
        send_impact=not args.drop_impact,
    )
    summary = result.summary()

    if args.json:
        print(json.dumps(summary, indent=2))
        return 0

    sync = summary["sync"]
    if sync is None:
        print("Clock sync: failed")
    else:
        print(
            f"Clock sync: offset {sync['offset_s']:+.4f}s (true {sync['true_skew_s']:+.4f}s), "
            f"RTT {sync['round_trip_s'] * 1000:.1f}ms, "
            f"{'complete' if sync['complete'] else 'incomplete'}"
        )

    impact = summary["impact"]
    if impact is not None:
        print(f"Impact: wrist t={impact['wrist_t_s']:.3f}s confidence={impact['confidence']:.2f}")
    else:
        print("Impact: not detected")

    swing = summary["swing"]
    if swing is not None:
        print(f"Swing efficiency: r={swing['r']:.3f} ({swing['band']})")

    angles = summary["face_angles"]
    print(
        f"Face angles: roll {_format_optional(angles['roll_deg'], '{:.1f}')} deg, "
        f"pitch {_format_optional(angles['pitch_deg'], '{:.1f}')} deg"
    )

    apex = summary["apex"]
    if apex is not None:
        print(f"Toss apex: t={apex['t_s']:.3f}s at ({apex['x']:.0f}, {apex['y']:.0f}) [{apex['method']}]")
    else:
        print("Toss apex: not found")

    fused = summary["fused"]
    print(
        f"\nFused impact pose: {fused['provenance']} "
        f"(target {_format_optional(fused['target_t_s'])}s, "
        f"pose {_format_optional(fused['pose_t_s'])}s, "
        f"true impact {fused['true_impact_t_s']:.3f}s)"
    )
    trophy = summary["trophy_angles"]
    print(
        f"Trophy angles: right elbow {trophy['right_elbow_deg']:.0f}, right armpit {trophy['right_armpit_deg']:.0f}, "
        f"left shoulder {trophy['left_shoulder_deg']:.0f}, left elbow {trophy['left_elbow_deg']:.0f} deg"
    )
    print(f"Pelvis rise: {_format_optional(summary['pelvis_rise_px'], '{:.1f}')} px")
    if summary["flags"]:
        print(f"Flags: {', '.join(summary['flags'])}")
    return 0


def validate_config_command(args):
    """Handle validate-config command.

    Args:
        args: Parsed command-line arguments
    """
    try:
        validate_config_file(args.config)
        load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        for error in getattr(e, "validation_errors", None) or []:
            print(f"  - {error}", file=sys.stderr)
        return 1

    print(f"✓ Configuration valid: {args.config}")
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Serve Fusion: wrist IMU and camera event fusion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Simulate a serve with a 3.7s clock skew between devices
  python -m analysis.cli simulate --skew 3.7

  # Asymmetric link, JSON output
  python -m analysis.cli simulate --delay 0.002 --return-delay 0.012 --json

  # Watch out of range (falls back to the trophy-pose heuristic)
  python -m analysis.cli simulate --unreachable

  # Check a configuration file
  python -m analysis.cli validate-config --config configs/default.yaml
        """
    )
    parser.add_argument(
        '--log-dir',
        help='Also write rotating log files to this directory'
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # simulate command
    simulate_parser = subparsers.add_parser(
        'simulate',
        help='Run a synthetic serve through both pipelines'
    )
    simulate_parser.add_argument(
        '--config',
        help='YAML configuration file (default: bundled defaults)'
    )
    simulate_parser.add_argument(
        '--skew',
        type=float,
        default=3.7,
        help='Wrist clock minus camera clock in seconds (default: 3.7)'
    )
    simulate_parser.add_argument(
        '--drift-ppm',
        type=float,
        default=0.0,
        help='Wrist clock rate error in ppm (default: 0)'
    )
    simulate_parser.add_argument(
        '--delay',
        type=float,
        default=0.004,
        help='Camera-to-wrist one-way delay in seconds (default: 0.004)'
    )
    simulate_parser.add_argument(
        '--return-delay',
        type=float,
        help='Wrist-to-camera one-way delay in seconds (default: same as --delay)'
    )
    simulate_parser.add_argument(
        '--face-roll',
        type=float,
        default=8.0,
        help='Racket face rotation at impact in degrees (default: 8)'
    )
    simulate_parser.add_argument(
        '--imu-noise',
        type=float,
        default=0.0,
        help='Gaussian noise on IMU magnitudes'
    )
    simulate_parser.add_argument(
        '--ball-noise',
        type=float,
        default=0.0,
        help='Gaussian noise on ball positions in pixels'
    )
    simulate_parser.add_argument(
        '--seed',
        type=int,
        default=7,
        help='Noise seed (default: 7)'
    )
    simulate_parser.add_argument(
        '--unreachable',
        action='store_true',
        help='Simulate the wrist device out of range'
    )
    simulate_parser.add_argument(
        '--drop-impact',
        action='store_true',
        help='Sync clocks but never deliver the impact report'
    )
    simulate_parser.add_argument(
        '--json',
        action='store_true',
        help='Print the result as JSON'
    )

    # validate-config command
    validate_parser = subparsers.add_parser(
        'validate-config',
        help='Validate a YAML configuration file'
    )
    validate_parser.add_argument(
        '--config',
        required=True,
        help='Configuration file to check'
    )

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.log_dir:
        setup_file_logging(args.log_dir)

    # Route to command handler
    if args.command == 'simulate':
        return simulate_command(args)
    elif args.command == 'validate-config':
        return validate_config_command(args)

    return 0


if __name__ == '__main__':
    sys.exit(main())
