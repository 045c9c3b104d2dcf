"""Leveled, timestamped logging to a stream and, optionally, to syslog."""

from __future__ import annotations

import enum
import math
import sys
import threading
import time
from typing import Optional, TextIO

try:
    import syslog as _syslog
except ImportError:  # not available on every platform
    _syslog = None


class LogLevel(enum.IntEnum):
    """Severity of a log message; lower values are more severe."""

    FATAL = 0
    ERROR = 1
    WARN = 2
    INFO = 3
    DEBUG = 4
    TRACE = 5


class FatalError(Exception):
    """Raised after a fatal message has been logged."""

    def __init__(self, name: Optional[str], message: Optional[str]) -> None:
        text = message or ""
        super().__init__(f"{name}: {text}" if name else text)
        self.logger_name = name
        self.message = text


_RESET = "\033[0m"
_COLORS = {
    LogLevel.FATAL: "\x1b[31m",
    LogLevel.ERROR: "\x1b[35m",
    LogLevel.WARN: "\x1b[33m",
    LogLevel.INFO: "\x1b[32m",
    LogLevel.DEBUG: "\x1b[34m",
    LogLevel.TRACE: _RESET,
}

# Shared console streams get one lock each for the whole process; any other
# stream is serialised through a single module lock.
_STDOUT_LOCK = threading.Lock()
_STDERR_LOCK = threading.Lock()
_FILE_LOCK = threading.Lock()


def _lock_for(stream: TextIO) -> threading.Lock:
    if stream is sys.stdout:
        return _STDOUT_LOCK
    if stream is sys.stderr:
        return _STDERR_LOCK
    return _FILE_LOCK


def _render(message: Optional[str], args: tuple) -> Optional[str]:
    if message is None:
        return None
    return message % args if args else message


class Logger:
    """Writes formatted log lines to a stream, with colour on terminals."""

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        level: LogLevel = LogLevel.INFO,
        syslog_enabled: bool = False,
        appname: Optional[str] = None,
    ) -> None:
        self.stream = stream
        self.level = LogLevel(level)
        self.syslog_enabled = bool(syslog_enabled) and _syslog is not None
        if self.syslog_enabled:
            if appname:
                _syslog.openlog(appname, 0, _syslog.LOG_USER)
            else:
                _syslog.openlog(logoption=0, facility=_syslog.LOG_USER)
        isatty = getattr(stream, "isatty", None) if stream is not None else None
        self.color = bool(isatty and isatty())

    def log(self, level: LogLevel, name: Optional[str], message: Optional[str], *args) -> None:
        """Write one line at the given level if the level is enabled."""
        level = LogLevel(level)
        if level > self.level:
            return
        stream = self.stream if self.stream is not None else sys.stderr
        text = _render(message, args)
        stamp_time = time.time()
        stamp = time.strftime("%b %d %H:%M:%S", time.localtime(stamp_time))
        millis = int(stamp_time * 1000) % 1000
        parts = []
        if self.color:
            parts.append(_COLORS[level])
        parts.append(f"{stamp}.{millis:03d} [{level.name}] ")
        if name:
            parts.append(f"{name}: ")
        if text is not None:
            parts.append(text)
        if name or text is not None:
            parts.append("\n")
        if self.color:
            parts.append(_RESET)
        with _lock_for(stream):
            stream.write("".join(parts))
            stream.flush()

    def _to_syslog(self, priority_name: str, name: Optional[str], text: Optional[str], prefixed: bool) -> None:
        if not self.syslog_enabled or text is None:
            return
        priority = _syslog.LOG_USER | getattr(_syslog, priority_name)
        line = f"{name}: {text}" if prefixed and name else text
        _syslog.syslog(priority, line)

    def fatal(self, name: Optional[str], message: Optional[str], *args) -> None:
        """Log at FATAL level and raise FatalError."""
        self.log(LogLevel.FATAL, name, message, *args)
        text = _render(message, args)
        self._to_syslog("LOG_CRIT", name, text, prefixed=False)
        raise FatalError(name, text)

    def error(self, name: Optional[str], message: Optional[str], *args) -> None:
        self.log(LogLevel.ERROR, name, message, *args)
        self._to_syslog("LOG_ERR", name, _render(message, args), prefixed=False)

    def warn(self, name: Optional[str], message: Optional[str], *args) -> None:
        self.log(LogLevel.WARN, name, message, *args)
        self._to_syslog("LOG_WARNING", name, _render(message, args), prefixed=False)

    def info(self, name: Optional[str], message: Optional[str], *args) -> None:
        self.log(LogLevel.INFO, name, message, *args)
        self._to_syslog("LOG_INFO", name, _render(message, args), prefixed=True)

    def debug(self, name: Optional[str], message: Optional[str], *args) -> None:
        self.log(LogLevel.DEBUG, name, message, *args)
        self._to_syslog("LOG_DEBUG", name, _render(message, args), prefixed=True)

    def trace(self, name: Optional[str], message: Optional[str], *args) -> None:
        self.log(LogLevel.TRACE, name, message, *args)
        self._to_syslog("LOG_DEBUG", name, _render(message, args), prefixed=True)


_logger = Logger()


def init_logging(
    stream: Optional[TextIO] = None,
    level: LogLevel = LogLevel.INFO,
    syslog_enabled: bool = False,
    appname: Optional[str] = None,
) -> Logger:
    """Replace the process-wide logger and return it."""
    global _logger
    _logger = Logger(stream, level, syslog_enabled, appname)
    return _logger


def get_logger() -> Logger:
    """Return the process-wide logger."""
    return _logger


def log_fatal(name, message, *args) -> None:
    _logger.fatal(name, message, *args)


def log_error(name, message, *args) -> None:
    _logger.error(name, message, *args)


def log_warn(name, message, *args) -> None:
    _logger.warn(name, message, *args)


def log_info(name, message, *args) -> None:
    _logger.info(name, message, *args)


def log_debug(name, message, *args) -> None:
    _logger.debug(name, message, *args)


def log_trace(name, message, *args) -> None:
    _logger.trace(name, message, *args)


def now() -> float:
    """Current time in seconds since the epoch, with sub-second precision."""
    return time.time()


def dstrftime(fmt: str, tm: float) -> str:
    """Format a floating-point timestamp in local time."""
    return time.strftime(fmt, time.localtime(math.floor(tm)))