"""CLI entry point for Gmail TUI."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from gmail_tui import __version__
from gmail_tui.config.settings import GmailTuiSettings
from gmail_tui.pipeline.session import MailboxSession


def setup_logging(level: str, log_path: Path) -> None:
    """Configure file logging; the terminal belongs to curses while the session runs."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        filename=str(log_path),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gmail-tui",
        description="Gmail TUI - browse your inbox in the terminal",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.add_parser("list", help="Browse the inbox interactively")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    settings = GmailTuiSettings()
    settings.ensure_directories()
    setup_logging(settings.log_level, settings.log_path)

    session = MailboxSession(settings=settings)

    try:
        if args.command == "list":
            session.run()
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        logging.getLogger(__name__).exception("Session failed")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
