"""Command-line entry for the deskframe server."""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from . import run_server


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the deskframe CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="deskframe",
        description="DeskFrame - frame server for 128x64 monochrome desk displays",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m deskframe                        # Start server on default port (8080)
  python -m deskframe --port 3000            # Start server on port 3000
  python -m deskframe --timezone Europe/Oslo # Clock producer in another zone
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8080, or DESKFRAME_PORT)",
    )
    parser.add_argument(
        "--host",
        metavar="HOST",
        help="Address to bind (default: 0.0.0.0, or DESKFRAME_HOST)",
    )
    parser.add_argument(
        "--timezone",
        metavar="TZ",
        help="IANA timezone for the clock producer (default: UTC, or DESKFRAME_TIMEZONE)",
    )
    parser.add_argument(
        "--max-upload-mb",
        type=int,
        metavar="MB",
        help="Maximum accepted upload size in megabytes (default: 10)",
    )

    return parser


def main() -> NoReturn:
    """Run the deskframe CLI."""
    parser = _create_parser()
    args = parser.parse_args()

    try:
        run_server(args)
    except RuntimeError as exc:
        print(f"deskframe failed to start: {exc}", file=sys.stderr)
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
