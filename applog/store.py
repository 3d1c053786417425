"""Bounded in-memory log store with console mirroring and remote sink dispatch."""

import collections
import logging
import threading
from typing import Any, Callable, Mapping, Optional

from applog.dispatch import SinkDispatcher
from applog.formatter import format_console_line
from applog.models import LogEntry, LogLevel, RuntimeMode, capture_error, create_log_entry, now_ms
from applog.sinks import RemoteLogSink

logger = logging.getLogger(__name__)

CONSOLE_LOGGER_NAME = "applog.console"

_CONSOLE_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


def _console_logger() -> logging.Logger:
    console = logging.getLogger(CONSOLE_LOGGER_NAME)
    # The store decides what reaches the console; only fill in a level nobody has set.
    if console.level == logging.NOTSET:
        console.setLevel(logging.DEBUG)
    return console


class LogStore:
    """Thread-safe bounded history of LogEntry objects.

    Keeps the most recent ``max_logs`` entries, dropping the oldest first.
    In development every entry is mirrored to the ``applog.console`` logger;
    in production only errors are, and every entry is handed to the sink
    (if any) without waiting for delivery. Recording never raises.
    """

    def __init__(
        self,
        max_logs: int = 1000,
        sink: Optional[RemoteLogSink] = None,
        mode: RuntimeMode = RuntimeMode.DEVELOPMENT,
        clock: Optional[Callable[[], int]] = None,
        console: Optional[logging.Logger] = None,
    ):
        if isinstance(max_logs, bool) or not isinstance(max_logs, int) or max_logs <= 0:
            raise ValueError(f"max_logs must be a positive integer, got {max_logs!r}")

        self._max_logs = max_logs
        self._mode = RuntimeMode.parse(mode)
        self._clock = clock or now_ms
        self._console = console or _console_logger()
        self._logs: collections.deque = collections.deque(maxlen=max_logs)
        self._lock = threading.Lock()
        self._total_recorded = 0
        self._dispatcher = SinkDispatcher(sink, self._mode) if sink is not None else None

    @property
    def max_logs(self) -> int:
        return self._max_logs

    @property
    def mode(self) -> RuntimeMode:
        return self._mode

    @property
    def dispatcher(self) -> Optional[SinkDispatcher]:
        return self._dispatcher

    @property
    def total_recorded(self) -> int:
        """Number of entries ever recorded, including evicted and cleared ones."""
        with self._lock:
            return self._total_recorded

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._logs)

    def record(
        self,
        level,
        message: str,
        context: Optional[Mapping[str, Any]] = None,
        error=None,
    ) -> Optional[LogEntry]:
        """Create, retain and route one entry. Returns the entry, or None if it could not be built."""
        try:
            level = LogLevel.parse(level)
            error = capture_error(error)
            # Clock read and append share the lock so timestamps follow insertion order.
            with self._lock:
                entry = create_log_entry(level, message, context, error, clock=self._clock)
                self._logs.append(entry)
                self._total_recorded += 1
        except Exception:
            logger.exception("Could not build log entry for %r", message)
            return None

        if self._mode is RuntimeMode.DEVELOPMENT or entry.level is LogLevel.ERROR:
            self._write_console(entry)

        if self._mode is RuntimeMode.PRODUCTION and self._dispatcher is not None:
            self._dispatcher.dispatch(entry)

        return entry

    def debug(self, message: str, context: Optional[Mapping[str, Any]] = None) -> Optional[LogEntry]:
        return self.record(LogLevel.DEBUG, message, context)

    def info(self, message: str, context: Optional[Mapping[str, Any]] = None) -> Optional[LogEntry]:
        return self.record(LogLevel.INFO, message, context)

    def warn(self, message: str, context: Optional[Mapping[str, Any]] = None) -> Optional[LogEntry]:
        return self.record(LogLevel.WARN, message, context)

    def error(
        self,
        message: str,
        error=None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> Optional[LogEntry]:
        return self.record(LogLevel.ERROR, message, context, error)

    def get_logs(self) -> tuple[LogEntry, ...]:
        """Point-in-time copy of the retained entries, oldest first."""
        with self._lock:
            return tuple(self._logs)

    def clear_logs(self) -> None:
        """Drop every retained entry. Capacity, mode and sink are unchanged."""
        with self._lock:
            self._logs.clear()

    def level_counts(self) -> dict[str, int]:
        """Per-level counts of the retained entries, for diagnostics views."""
        counts = {level.value: 0 for level in LogLevel}
        for entry in self.get_logs():
            counts[entry.level.value] += 1
        return counts

    def close(self, timeout: float = 5.0) -> None:
        if self._dispatcher is not None:
            self._dispatcher.close(timeout=timeout)

    def _write_console(self, entry: LogEntry) -> None:
        try:
            line = format_console_line(entry)
            if entry.level is LogLevel.ERROR:
                detail = entry.error if entry.error is not None else entry.context
            else:
                detail = entry.context
            if detail is not None:
                self._console.log(_CONSOLE_LEVELS[entry.level], "%s %s", line, detail)
            else:
                self._console.log(_CONSOLE_LEVELS[entry.level], "%s", line)
        except Exception:
            logger.exception("Failed to write log entry %s to console", entry.id)
