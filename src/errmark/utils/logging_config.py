# errmark/utils/logging_config.py
"""errmark.utils.logging_config
==============================

Logging configuration for the errmark viewer. It defines the global logger
objects and a single setup function, `setup_logging`, which installs the
application-wide handlers and levels from a configuration dictionary.

Features:
    - Rotating file logging for general application events (errmark.log).
    - Optional console logging to stderr with configurable log level. Off by
      default, because stderr shares the terminal with the curses UI.
    - Optional separate error log file (error.log) for ERROR and CRITICAL events.
    - Optional key event tracing (keytrace.log) enabled via the ERRMARK_KEYTRACE
      environment variable.
    - Falls back to the system temp directory when the log directory cannot be created.
    - Safe reconfiguration: clears existing handlers to avoid duplicate logs.
    - Never raises; errors are reported to stderr and logging continues best-effort.

Usage:
    >>> from errmark.utils import logging_config
    >>> logging_config.setup_logging({"logging": {"file_level": "INFO"}})

Globals:
    logger: Main application logger ("errmark").
    KEY_LOGGER: Logger for raw key-press trace events ("errmark.keyevents").
"""

import logging
import logging.handlers
import os
import sys
import tempfile
from typing import Any, Optional


# ======================== Global loggers ========================
# Created at import time; unconfigured until ``setup_logging()`` runs.
logger = logging.getLogger("errmark")  # main application logger
KEY_LOGGER = logging.getLogger("errmark.keyevents")  # raw key-press trace


def _rotating_handler(
    filename: str, max_bytes: int, backup_count: int
) -> logging.handlers.RotatingFileHandler:
    log_dir = os.path.dirname(filename)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)
    return logging.handlers.RotatingFileHandler(
        filename, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )


def setup_logging(config: Optional[dict[str, Any]] = None) -> None:
    """Configures application-wide logging handlers and log levels.

    Up to four independent handlers are installed:

    1. File handler – rotating errmark.log from `file_level` (default DEBUG) up.
    2. Console handler – optional `stderr` output at `console_level`
       (default WARNING), enabled by `log_to_console`.
    3. Error-file handler – optional rotating error.log with ERROR and CRITICAL.
    4. Key-event handler – rotating keytrace.log on ``errmark.keyevents`` when
       ``ERRMARK_KEYTRACE`` is ``1/true/yes``.

    Existing root handlers are cleared so repeated calls (e.g. in tests) do
    not duplicate records.

    Args:
        config (dict | None): Application configuration. Only the
            ``["logging"]`` section is read; keys: ``file_level``,
            ``console_level``, ``log_to_console``, ``separate_error_log``,
            ``log_file``.
    """
    if config is None:
        config = {}
    logging_config = config.get("logging", {})
    log_filename = logging_config.get("log_file", "errmark.log")
    log_file_level_str = str(logging_config.get("file_level", "DEBUG")).upper()
    log_file_level = getattr(logging, log_file_level_str, logging.DEBUG)

    file_formatter = logging.Formatter(
        "%(asctime)s - %(levelname)-8s - %(name)-15s - %(message)s (%(filename)s:%(lineno)d)"
    )
    file_handler = None
    try:
        file_handler = _rotating_handler(log_filename, 2 * 1024 * 1024, 5)
    except OSError as e_fh:
        print(
            f"Error setting up file logger for '{log_filename}': {e_fh}.",
            file=sys.stderr,
        )
        log_filename = os.path.join(tempfile.gettempdir(), "errmark.log")
        print(f"Logging to temporary file: '{log_filename}'", file=sys.stderr)
        try:
            file_handler = _rotating_handler(log_filename, 2 * 1024 * 1024, 5)
        except OSError as e_tmp:
            print(f"File logging disabled: {e_tmp}", file=sys.stderr)
    if file_handler:
        file_handler.setFormatter(file_formatter)
        file_handler.setLevel(log_file_level)

    # Console Handler
    console_handler = None
    if logging_config.get("log_to_console", False):
        console_level_str = str(logging_config.get("console_level", "WARNING")).upper()
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            logging.Formatter("%(levelname)-8s - %(name)-12s - %(message)s")
        )
        console_handler.setLevel(getattr(logging, console_level_str, logging.WARNING))

    # Optional Separate Error Log File
    error_file_handler = None
    if logging_config.get("separate_error_log", False):
        try:
            error_file_handler = _rotating_handler("error.log", 1 * 1024 * 1024, 3)
            error_file_handler.setFormatter(file_formatter)
            error_file_handler.setLevel(logging.ERROR)
        except OSError as e_efh:
            print(f"Error setting up separate error log 'error.log': {e_efh}.", file=sys.stderr)

    root_logger = logging.getLogger()
    root_logger.handlers = []  # Clear existing root handlers to avoid duplicates

    for handler in (file_handler, console_handler, error_file_handler):
        if handler:
            root_logger.addHandler(handler)

    root_logger.setLevel(log_file_level)

    # Key Event Logger
    key_event_logger = logging.getLogger("errmark.keyevents")
    key_event_logger.propagate = False
    key_event_logger.setLevel(logging.DEBUG)
    key_event_logger.handlers = []

    if os.environ.get("ERRMARK_KEYTRACE", "").lower() in {"1", "true", "yes"}:
        try:
            key_trace_handler = _rotating_handler("keytrace.log", 1 * 1024 * 1024, 3)
            key_trace_handler.setFormatter(logging.Formatter("%(asctime)s - %(message)s"))
            key_event_logger.addHandler(key_trace_handler)
            key_event_logger.disabled = False
            logging.info("Key event tracing enabled, logging to 'keytrace.log'.")
        except OSError as e_keytrace:
            logging.error(f"Failed to set up key trace logging: {e_keytrace}", exc_info=True)
            key_event_logger.disabled = True
    else:
        key_event_logger.addHandler(logging.NullHandler())
        key_event_logger.disabled = True
        logging.debug("Key event tracing is disabled.")

    logging.info(
        "Logging setup complete. Root logger level: %s.",
        logging.getLevelName(root_logger.level),
    )
    if file_handler:
        logging.info(
            f"File logging to '{log_filename}' at level: {logging.getLevelName(file_handler.level)}."
        )
    if console_handler:
        logging.info(
            f"Console logging to stderr at level: {logging.getLevelName(console_handler.level)}."
        )
    if error_file_handler:
        logging.info("Error logging to 'error.log' at level: ERROR.")
