"""Process-wide convenience accessor around a single LogStore.

Application code that owns its lifetime should construct a LogStore
directly; this module only offers a shared default for call sites that
have nothing to be handed.
"""

import logging
import threading
from typing import Any, Mapping, Optional

from applog.config import LoggerConfig
from applog.models import LogEntry
from applog.sinks import build_sink
from applog.store import LogStore

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_store: Optional[LogStore] = None


def create_store(config: LoggerConfig) -> LogStore:
    """Build a LogStore (and its sink, if an endpoint is configured) from config."""
    return LogStore(
        max_logs=config.max_logs,
        sink=build_sink(config),
        mode=config.mode,
    )


def initialize_logger(config: Optional[LoggerConfig] = None, **overrides) -> LogStore:
    """Install a new global store. Call once during application startup."""
    global _store
    config = (config or LoggerConfig()).with_overrides(**overrides)
    store = create_store(config)

    with _lock:
        previous, _store = _store, store

    if previous is not None:
        previous.close()
    logger.info(
        "Logger initialized: mode=%s max_logs=%d remote=%s",
        config.mode.value, config.max_logs, config.remote_endpoint or "disabled",
    )
    return store


def get_logger() -> LogStore:
    """Return the global store, creating a default one on first use."""
    global _store
    with _lock:
        if _store is None:
            _store = LogStore()
        return _store


def reset_logger() -> None:
    """Close and forget the global store."""
    global _store
    with _lock:
        previous, _store = _store, None
    if previous is not None:
        previous.close()


def debug(message: str, context: Optional[Mapping[str, Any]] = None) -> Optional[LogEntry]:
    return get_logger().debug(message, context)


def info(message: str, context: Optional[Mapping[str, Any]] = None) -> Optional[LogEntry]:
    return get_logger().info(message, context)


def warn(message: str, context: Optional[Mapping[str, Any]] = None) -> Optional[LogEntry]:
    return get_logger().warn(message, context)


def error(message: str, error=None, context: Optional[Mapping[str, Any]] = None) -> Optional[LogEntry]:
    return get_logger().error(message, error, context)


def get_logs() -> tuple[LogEntry, ...]:
    return get_logger().get_logs()


def clear_logs() -> None:
    get_logger().clear_logs()
