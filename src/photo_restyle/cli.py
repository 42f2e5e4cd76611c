"""Command-line interface for photo-restyle."""

from __future__ import annotations

import argparse
import sys

import uvicorn

from photo_restyle.api.sweeper import RetentionSweeper
from photo_restyle.core.config import get_settings
from photo_restyle.core.exceptions import ConfigurationError
from photo_restyle.core.logging import setup_logging
from photo_restyle.styles import StyleCatalog


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="photo-restyle",
        description="Restyle photos through an image-edit provider",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", default=None, help="Bind address (default from settings)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default from settings)")

    # Styles command
    subparsers.add_parser("styles", help="List catalog styles")

    # Sweep command
    subparsers.add_parser("sweep", help="Delete expired artifacts once and exit")

    args = parser.parse_args(argv)

    if args.command == "serve":
        return cmd_serve(args)
    elif args.command == "styles":
        return cmd_styles(args)
    elif args.command == "sweep":
        return cmd_sweep(args)

    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Handle 'serve' command."""
    settings = get_settings()
    setup_logging(settings.log_level, format_style=settings.log_format)
    uvicorn.run(
        "photo_restyle.api.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        workers=1,  # Capacity and request slots are per process
    )
    return 0


def cmd_styles(args: argparse.Namespace) -> int:  # noqa: ARG001
    """Handle 'styles' command."""
    try:
        catalog = StyleCatalog.load(get_settings().styles_file)
    except ConfigurationError as e:
        print(f"Error loading styles: {e}", file=sys.stderr)
        return 1

    print(f"Found {len(catalog)} styles:")
    for key in sorted(catalog):
        print(f"- {key}")
    return 0


def cmd_sweep(args: argparse.Namespace) -> int:  # noqa: ARG001
    """Handle 'sweep' command."""
    deleted = RetentionSweeper.from_settings(get_settings()).sweep()
    print(f"Deleted {deleted} expired files")
    return 0


if __name__ == "__main__":
    sys.exit(main())
