"""Render log entries as console lines and diagnostics rows."""

import json
from datetime import datetime, timezone

from applog.models import LogEntry, entry_to_dict


def iso_timestamp(ms: int) -> str:
    """Epoch milliseconds -> ISO-8601 UTC, e.g. ``2024-01-15T08:23:45.120Z``."""
    seconds, millis = divmod(int(ms), 1000)
    dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{millis:03d}Z"


def format_console_line(entry: LogEntry) -> str:
    """Prefix the message with its timestamp and uppercase level."""
    return f"[{iso_timestamp(entry.timestamp)}] [{entry.level.value.upper()}] {entry.message}"


def format_diagnostics_row(entry: LogEntry) -> str:
    """Short one-line summary for a diagnostics list: ``HH:MM:SS LEVEL message``."""
    dt = datetime.fromtimestamp(int(entry.timestamp) // 1000, tz=timezone.utc)
    return f"{dt.strftime('%H:%M:%S')} {entry.level.value.upper():<5} {entry.message}"


def format_json(entry: LogEntry) -> bytes:
    """Serialize an entry to compact JSON; unknown context values fall back to str()."""
    return json.dumps(entry_to_dict(entry), separators=(",", ":"), default=str).encode("utf-8")
