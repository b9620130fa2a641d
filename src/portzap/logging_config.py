"""
Logging configuration for the portzap command line.

Two channels exist:
- the standard ``logging`` tree, used by every module for diagnostics
  (stderr, plus an optional log file);
- the ``EventLog``, the tagged lines a user reads while a batch runs
  (``SCAN``, ``FOUND``, ``SKIP``, ``ACTION``, ``STOP``, ``OK``, ``FAIL``,
  ``INFO``, ``STATS``).
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
import threading
from pathlib import Path
from typing import Optional, TextIO

from .config import env_bool

_config_lock = threading.Lock()
_MODULE_LOGGER = logging.getLogger(__name__)
_UNKNOWN_LOGGER_NAME = "<unknown>"
_TECHNICAL_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

SCAN = "SCAN"
FOUND = "FOUND"
SKIP = "SKIP"
ACTION = "ACTION"
STOP = "STOP"
OK = "OK"
FAIL = "FAIL"
INFO = "INFO"
STATS = "STATS"

EVENT_TAGS = (SCAN, FOUND, SKIP, ACTION, STOP, OK, FAIL, INFO, STATS)


class EventLog:
    """Tagged, user-facing progress lines.

    ``verbose`` lines are only written when verbose output was requested.
    A disabled log swallows everything (used for ``--json`` output).
    """

    def __init__(self, stream: Optional[TextIO] = None, *, verbose: bool = False, enabled: bool = True):
        self._stream = stream
        self.verbose_enabled = verbose
        self.enabled = enabled

    def __call__(self, tag: str, message: str, *args: object) -> None:
        if not self.enabled:
            return
        text = message % args if args else message
        stream = self._stream or sys.stdout
        stream.write(f"{tag} {text}\n")
        stream.flush()

    def verbose(self, message: str, *args: object) -> None:
        if self.verbose_enabled:
            self(INFO, message, *args)

    def prompt(self, tag: str, message: str) -> None:
        """Write a question without a trailing newline."""
        if not self.enabled:
            return
        stream = self._stream or sys.stdout
        stream.write(f"{tag} {message}")
        stream.flush()


def _close_handlers(logger: logging.Logger, logger_name: Optional[str] = None) -> None:
    for handler in list(logger.handlers):
        try:
            handler.close()
        except OSError as exc:  # Best-effort cleanup operation  # policy_guard: allow-silent-handler
            safe_name = logger_name if logger_name else _UNKNOWN_LOGGER_NAME
            _MODULE_LOGGER.debug("Handler close failed for logger '%s': %s", safe_name, exc)


def _reset_all_handlers(root_logger: logging.Logger) -> None:
    _close_handlers(root_logger)
    root_logger.handlers = []


def _build_console_handler(verbose: bool, user_friendly: bool) -> logging.Handler:
    if user_friendly:
        formatter = logging.Formatter("%(message)s")
    else:
        formatter = logging.Formatter(_TECHNICAL_FORMAT, _DATE_FORMAT)

    # stdout belongs to the event log and JSON report.
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    if verbose:
        console_handler.setLevel(logging.DEBUG)
    elif user_friendly:
        console_handler.setLevel(logging.WARNING)
    else:
        console_handler.setLevel(logging.INFO)
    return console_handler


def _configure_file_handler(log_file: Optional[Path]) -> Optional[logging.Handler]:
    if log_file is None:
        return None

    log_path = Path(log_file).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_mode = "a" if env_bool("PORTZAP_LOG_APPEND", or_value=False) else "w"

    handler_cls = getattr(logging.handlers, "WatchedFileHandler", logging.FileHandler)
    file_handler = handler_cls(log_path, mode=file_mode)
    file_handler.setFormatter(logging.Formatter(_TECHNICAL_FORMAT, _DATE_FORMAT))
    file_handler.setLevel(logging.DEBUG)
    return file_handler


def _suppress_noisy_third_parties() -> None:
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def setup_logging(verbose: bool = False, user_friendly: bool = True, log_file: Optional[Path] = None) -> None:
    """Configure the root logger; safe to call more than once."""
    with _config_lock:
        root_logger = logging.getLogger()
        _reset_all_handlers(root_logger)

        root_logger.addHandler(_build_console_handler(verbose, user_friendly))
        file_handler = _configure_file_handler(log_file)
        if file_handler:
            root_logger.addHandler(file_handler)

        root_logger.setLevel(logging.DEBUG if verbose or file_handler else logging.INFO)
        _suppress_noisy_third_parties()


__all__ = [
    "ACTION",
    "EVENT_TAGS",
    "EventLog",
    "FAIL",
    "FOUND",
    "INFO",
    "OK",
    "SCAN",
    "SKIP",
    "STATS",
    "STOP",
    "setup_logging",
]
