"""Log level names and global log level setup."""

from __future__ import annotations

import enum
import logging

_log = logging.getLogger("nativestor")

TRACE = 5
NOTICE = 25
logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(NOTICE, "NOTICE")


class LogLevel(enum.IntEnum):
    """Log levels, from most to least severe."""

    CRITICAL = -1
    ERROR = 0
    WARNING = 1
    NOTICE = 2
    INFO = 3
    DEBUG = 4
    TRACE = 5

    @property
    def python_level(self) -> int:
        """The matching level of the logging module."""
        return _PYTHON_LEVELS[self]


_PYTHON_LEVELS = {
    LogLevel.CRITICAL: logging.CRITICAL,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.NOTICE: NOTICE,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.TRACE: TRACE,
}

_ALIASES = {level.name[0]: level for level in LogLevel}


def parse_level(raw: str) -> LogLevel:
    """Parse a level name or its one-letter abbreviation.

    Raises ValueError for anything else.
    """
    if raw in LogLevel.__members__:
        return LogLevel[raw]
    if raw in _ALIASES:
        return _ALIASES[raw]
    raise ValueError(f"couldn't parse log level {raw}")


def set_log_level(raw: str) -> LogLevel:
    """Set the package-wide log level from a level name.

    An unparseable name is reported and falls back to CRITICAL.
    """
    try:
        level = parse_level(raw)
    except ValueError as err:
        _log.warning("failed to set log level %s. %s", raw, err)
        level = LogLevel.CRITICAL
    _log.setLevel(level.python_level)
    return level