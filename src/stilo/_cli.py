"""Stilo CLI — stilo dev / stilo build.

Entry point for the ``stilo`` command-line interface.
"""

from __future__ import annotations

import argparse
import sys


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the stilo CLI."""
    parser = argparse.ArgumentParser(
        prog="stilo",
        description="Live-reload development server for stylesheet samples.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # stilo dev
    dev_parser = subparsers.add_parser(
        "dev",
        help="Start the live-reload development server",
    )
    dev_parser.add_argument("root", nargs="?", default=".", help="Project root directory")
    dev_parser.add_argument("--host", default=None, help="Bind address (default 127.0.0.1)")
    dev_parser.add_argument(
        "--port", type=int, default=None,
        help="Bind port (default 3000, or $STILO_PORT / $PORT)",
    )

    # stilo build
    build_parser = subparsers.add_parser(
        "build",
        help="Compile the stylesheet once and exit",
    )
    build_parser.add_argument("root", nargs="?", default=".", help="Project root directory")

    return parser


def _get_version() -> str:
    """Get the package version."""
    from stilo import __version__

    return __version__


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from stilo._errors import ConfigError
    from stilo.app import build, dev

    try:
        if args.command == "dev":
            dev(root=args.root, host=args.host, port=args.port)
        elif args.command == "build" and not build(root=args.root):
            sys.exit(1)
    except ConfigError as exc:
        print(f"stilo: {exc}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
