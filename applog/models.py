"""Log entry model, severity levels and runtime mode."""

import random
import string
import time
import traceback
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Callable, Mapping, Optional

_ID_ALPHABET = string.digits + string.ascii_lowercase
_LEVEL_ALIASES = {"warning": "warn", "err": "error"}


class LogLevel(Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def __lt__(self, other):
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other):
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.severity <= other.severity

    @classmethod
    def parse(cls, value) -> "LogLevel":
        """Accept a member or a case-insensitive level name."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        name = _LEVEL_ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown log level: {value!r}") from None


_SEVERITY = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}


class RuntimeMode(Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, value) -> "RuntimeMode":
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name in ("dev", "development"):
            return cls.DEVELOPMENT
        if name in ("prod", "production"):
            return cls.PRODUCTION
        raise ValueError(f"Unknown runtime mode: {value!r}")


@dataclass(frozen=True)
class ErrorInfo:
    type: str
    message: str
    stack: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.type}: {self.message}" if self.message else self.type


@dataclass(frozen=True)
class LogEntry:
    id: str
    message: str
    level: LogLevel
    timestamp: int
    context: Optional[Mapping[str, Any]] = None
    error: Optional[ErrorInfo] = None


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def generate_id(timestamp: int) -> str:
    """Build an id like ``log-1700000000000-k3j9x0a2b``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"log-{timestamp}-{suffix}"


def capture_error(exc) -> Optional[ErrorInfo]:
    """Turn an exception into an ErrorInfo; ErrorInfo and None pass through."""
    if exc is None or isinstance(exc, ErrorInfo):
        return exc
    if not isinstance(exc, BaseException):
        return ErrorInfo(type=type(exc).__name__, message=str(exc))

    stack = None
    if exc.__traceback__ is not None:
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return ErrorInfo(type=type(exc).__name__, message=str(exc), stack=stack)


def create_log_entry(
    level,
    message: str,
    context: Optional[Mapping[str, Any]] = None,
    error=None,
    clock: Callable[[], int] = now_ms,
) -> LogEntry:
    """Factory function that creates a LogEntry with a fresh id and timestamp."""
    timestamp = clock()
    return LogEntry(
        id=generate_id(timestamp),
        message=message,
        level=LogLevel.parse(level),
        timestamp=timestamp,
        context=context,
        error=capture_error(error),
    )


def entry_to_dict(entry: LogEntry) -> dict:
    """Convert a LogEntry to a JSON-friendly dictionary."""
    return {
        "id": entry.id,
        "message": entry.message,
        "level": entry.level.value,
        "timestamp": entry.timestamp,
        "context": dict(entry.context) if entry.context is not None else None,
        "error": asdict(entry.error) if entry.error is not None else None,
    }
