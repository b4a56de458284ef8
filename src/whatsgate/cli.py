"""Command-line interface for whatsgate.

Provides the main entry point for running the control API server, plus
small helpers for checking phone normalization and command resolution
against the configured tables.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="whatsgate",
        description="HTTP control API for a WhatsApp session",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/whatsgate.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("serve", help="Start the HTTP control API server")

    normalize_parser = subparsers.add_parser(
        "normalize", help="Print the canonical form of a phone number",
    )
    normalize_parser.add_argument("phone", type=str, help="Phone number as typed by a user")

    resolve_parser = subparsers.add_parser(
        "resolve", help="Resolve text to a command category and show the reply",
    )
    resolve_parser.add_argument("text", type=str, help="Inbound message text")
    resolve_parser.add_argument(
        "--name", type=str, default=None,
        help="Sender display name used to personalize the reply",
    )

    return parser.parse_args(argv)


def _normalize(settings, args) -> int:
    from whatsgate.domain.errors import InvalidInput
    from whatsgate.phone import normalize_phone

    try:
        print(normalize_phone(args.phone, settings.phone))
    except InvalidInput as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def _resolve(settings, args) -> int:
    from whatsgate.api.server import build_catalog, build_resolver

    resolver = build_resolver(settings)
    catalog = build_catalog(settings)

    match = resolver.resolve(args.text.strip().lower())
    if not match.matched:
        print(f"No match (best score {match.score:.2f}, threshold {resolver.threshold:.2f})")
        return 1

    print(f"Category: {match.category} (score {match.score:.2f})")
    if match.reserved:
        print(f"Reply: {catalog.reserved_reply}")
    else:
        print(f"Reply: {catalog.render(match.category, name=args.name)}")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the whatsgate CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from whatsgate.config.settings import load_settings
    from whatsgate.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        logger.info("Starting control API on %s:%d", settings.server.host, settings.server.port)
        from whatsgate.api.server import main as serve

        serve(settings)

    elif args.command == "normalize":
        sys.exit(_normalize(settings, args))

    elif args.command == "resolve":
        sys.exit(_resolve(settings, args))


if __name__ == "__main__":
    main()
