"""Command-line interface for the resource mock."""

from __future__ import annotations

import argparse
import logging
import sys

from .actuators.file import RECLAIM_MODES
from .config import ConfigurationError, MockConfig, parse_duration, parse_file_size


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="outagemock",
        description=(
            "Consume a controlled amount of CPU, memory and disk, ramped "
            "linearly, then release it"
        ),
    )
    parser.add_argument(
        "--cpu",
        type=float,
        default=0.0,
        help="CPU usage percentage 0-100, 0 disables (default: 0)",
    )
    parser.add_argument(
        "--memory",
        type=int,
        default=0,
        help="Memory size in MB, 0 disables (default: 0)",
    )
    parser.add_argument(
        "--fsize",
        type=str,
        default="0",
        help="File size with unit, e.g. 100M, 1.5G, 500K, 2T (default: 0)",
    )
    parser.add_argument(
        "--fpath",
        type=str,
        default="outagemock_temp_file",
        help="File path (default: outagemock_temp_file)",
    )
    parser.add_argument(
        "-d",
        "--duration",
        type=str,
        default="30s",
        help="Running duration, e.g. 30s, 1m30s, 90 (default: 30s)",
    )
    parser.add_argument(
        "--rampup",
        type=str,
        default="10s",
        help="Time to reach the targets linearly, 0 = immediate (default: 10s)",
    )
    parser.add_argument(
        "--reclaim",
        choices=RECLAIM_MODES,
        default=RECLAIM_MODES[0],
        help=(
            "How the file's storage is reclaimed if the process dies: "
            "'helper' spawns a detached remover, 'unlink' removes the path "
            "right after creation (default: helper)"
        ),
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=float,
        default=2.0,
        help="Status refresh interval in seconds (default: 2.0)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> tuple[MockConfig, argparse.Namespace]:
    """Parse and validate arguments.

    Invalid values are reported through ``parser.error``, which exits
    with status 2.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.interval <= 0:
        parser.error("Interval must be positive")

    try:
        config = MockConfig(
            cpu_percent=args.cpu,
            memory_mb=args.memory,
            file_size_mb=parse_file_size(args.fsize),
            file_path=args.fpath,
            duration=parse_duration(args.duration),
            rampup_time=parse_duration(args.rampup),
        )
    except ConfigurationError as e:
        parser.error(str(e))

    return config, args


def main(argv: list[str] | None = None) -> None:
    """Entry point for the outagemock CLI."""
    config, args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Import here so argument errors exit before the CPU and memory actuators load
    from .controller import Tuning, run_mock

    try:
        code = run_mock(
            config,
            tuning=Tuning(file_reclaim=args.reclaim),
            interval=args.interval,
        )
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        code = 0
    sys.exit(code)
