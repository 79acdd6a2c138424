# errmark/__main__.py
"""
errmark Entry Point
===================

Launches the errmark viewer. It performs:
1) Environment Loading: reads the `.env` from the user config directory early.
2) Configuration & Logging: loads config and initializes logging.
3) Curses Wrapper: safely initializes/tears down curses to avoid terminal corruption.
4) Application Run: instantiates Viewer, opens the CLI file and starts the main loop.

Usage:
    errmark [FILE]
    python -m errmark [FILE]
"""

from __future__ import annotations

import curses
import locale
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from errmark.utils.logging_config import setup_logging
from errmark.utils.utils import get_config_dir, load_config


logger = logging.getLogger("errmark")


def _load_environment() -> None:
    """Loads `<config dir>/.env` without overriding variables already set."""
    try:
        load_dotenv(dotenv_path=get_config_dir() / ".env")
    except OSError as e:
        print(f"Warning: could not read .env: {e}", file=sys.stderr)


def _resolve_cli_path(argv: list[str]) -> Optional[Path]:
    """Resolve an optional CLI path from argv[1], expanded to a user path."""
    if len(argv) <= 1:
        return None
    raw = argv[1].strip()
    if not raw:
        return None
    return Path(raw).expanduser()


def main_app_runner(stdscr: curses.window, config: dict[str, Any], file_to_open: Optional[Path]) -> None:
    """
    Target for `curses.wrapper`: creates the Viewer, opens the file and runs it.
    """
    from errmark.core.Viewer import Viewer

    try:
        curses.set_escdelay(25)
    except Exception:
        os.environ.setdefault("ESCDELAY", "25")

    viewer = Viewer(stdscr, config=config)

    if hasattr(signal, "SIGTSTP"):
        try:
            signal.signal(signal.SIGTSTP, signal.SIG_IGN)
        except (OSError, ValueError):
            pass

    if file_to_open:
        viewer.open_file(str(file_to_open))

    viewer.run()


def start() -> None:
    """
    Loads environment, config and logging, then runs the viewer via curses.wrapper.
    """
    _load_environment()
    try:
        config: dict[str, Any] = load_config()
        setup_logging(config)
    except Exception as e:
        print(f"FATAL: Could not initialize configuration or logging system: {e}", file=sys.stderr)
        sys.exit(1)

    logger.info("errmark starting up...")

    try:
        locale.setlocale(locale.LC_ALL, "")
    except locale.Error:
        logger.warning("Could not set system locale. Character rendering may be affected.")

    file_to_open = _resolve_cli_path(sys.argv)

    try:
        curses.wrapper(main_app_runner, config, file_to_open)
        logger.info("errmark shut down gracefully.")
    except Exception:
        logger.critical("Unhandled exception at the top level.", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    start()
