"""
Logging configuration for the CLI entrypoint.

main.py calls ``setup_logging`` once. Modules log through
``logging.getLogger(__name__)`` and inherit the root handlers.

Level precedence: CLI flag > PKGPROBE_LOG_LEVEL > WARNING.
PKGPROBE_LOG_FILE / PKGPROBE_LOG_FILE_LEVEL add a file handler.
"""

from __future__ import annotations

import logging
import sys

# (threshold, format, datefmt): the first row whose threshold is at or
# above the console level wins
_CONSOLE_FORMATS = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
)
_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(process)d %(name)s:%(lineno)d %(message)s"

# Logs every lock acquire/release
_LOCK_LOGGER = "filelock"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root handlers with a stderr handler and an optional file.

    Lock chatter from ``filelock`` only comes through when some handler
    runs at DEBUG.
    """
    console_level = parse_level(level)
    root = logging.getLogger()
    root.handlers.clear()
    console = logging.StreamHandler(sys.stderr)
    root.addHandler(_handler(console, console_level, *_console_format(console_level)))

    lowest = console_level
    if log_file:
        file_level = parse_level(log_file_level) if log_file_level else console_level
        lowest = min(lowest, file_level)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        root.addHandler(_handler(fh, file_level, _FILE_FORMAT, "%Y-%m-%d %H:%M:%S"))
    root.setLevel(lowest)

    lock_level = logging.NOTSET if lowest <= logging.DEBUG else logging.WARNING
    logging.getLogger(_LOCK_LOGGER).setLevel(lock_level)
    logging.raiseExceptions = False


def parse_level(level: str | None) -> int:
    """Level name to number. Unknown or missing names give WARNING."""
    numeric = getattr(logging, level.upper(), None) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING


def _console_format(level: int) -> tuple[str, str | None]:
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            return fmt, datefmt
    return "%(message)s", None


def _handler(handler: logging.Handler, level: int, fmt: str, datefmt: str | None) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler
