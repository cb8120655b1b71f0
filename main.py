"""
SignDesk entry point.

Usage:
    python main.py                  terminal menu
    python main.py --gui            desktop window
    python main.py --init-config    print a starter config file

Environment Variables:
    SIGNDESK_HOME               Data directory (default: ~/.signdesk)
    SIGNDESK_CONFIG             Path to a JSON config file
    SIGNDESK_MAX_UPLOAD_BYTES   Largest file that may be signed
    SIGNDESK_LOG_LEVEL          Log level (default: WARNING)
    SIGNDESK_LOG_FILE           Also write logs to this file
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from config import get_default_config_template, load_config


def setup_logging(level: str = "WARNING", log_file: str | None = None) -> None:
    """Configure logging for the application."""
    log_level = getattr(logging, level.upper(), logging.WARNING)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="signdesk", description="Sign documents and verify signatures.")
    parser.add_argument("--gui", action="store_true", help="open the desktop window")
    parser.add_argument("--config", type=Path, help="JSON config file")
    parser.add_argument("--home", type=Path, help="data directory")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--log-file", help="also write logs to this file")
    parser.add_argument("--init-config", action="store_true", help="print a starter config file and exit")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.init_config:
        print(get_default_config_template())
        return 0

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    if args.home:
        config.home = args.home.expanduser()
    if args.log_level:
        config.log_level = args.log_level
    if args.log_file:
        config.log_file = args.log_file

    setup_logging(config.log_level, config.log_file)

    from app import create_app
    application = create_app(config)

    if args.gui:
        import gui
        return gui.main(application)

    import cli
    cli.main(application)
    return 0


if __name__ == "__main__":
    sys.exit(main())
