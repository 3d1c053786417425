"""Helpers that turn caught exceptions into error-level log entries."""

import contextlib
import functools
import inspect
from typing import Any, Mapping, Optional

from applog.registry import get_logger
from applog.store import LogStore


class ErrorReporter:
    """Report errors and messages to a store, and wrap callables so their exceptions are logged.

    Without an explicit store the global one is looked up on every call, so a
    reporter created before ``initialize_logger`` still follows it.
    """

    def __init__(self, store: Optional[LogStore] = None):
        self._store = store

    @property
    def store(self) -> LogStore:
        return self._store if self._store is not None else get_logger()

    def report_error(self, exc: BaseException, context: Optional[Mapping[str, Any]] = None):
        return self.store.error("Component error reported", exc, context)

    def report_warning(self, message: str, context: Optional[Mapping[str, Any]] = None):
        return self.store.warn(message, context)

    def report_info(self, message: str, context: Optional[Mapping[str, Any]] = None):
        return self.store.info(message, context)

    def report_debug(self, message: str, context: Optional[Mapping[str, Any]] = None):
        return self.store.debug(message, context)

    def wrap(self, fn, context: Optional[Mapping[str, Any]] = None):
        """Return a wrapper that logs any exception from ``fn`` and returns None instead.

        Coroutine functions get an async wrapper.
        """
        def _report(exc, args, kwargs):
            ctx = dict(context or {})
            ctx["function_name"] = getattr(fn, "__name__", repr(fn))
            ctx["arguments"] = list(args)
            if kwargs:
                ctx["keyword_arguments"] = dict(kwargs)
            self.report_error(exc, ctx)

        if inspect.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await fn(*args, **kwargs)
                except Exception as exc:
                    _report(exc, args, kwargs)
                    return None
            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except Exception as exc:
                _report(exc, args, kwargs)
                return None
        return wrapper

    @contextlib.contextmanager
    def capture(self, context: Optional[Mapping[str, Any]] = None):
        """Log and suppress an exception raised inside the block."""
        try:
            yield
        except Exception as exc:
            self.store.error("Uncaught error", exc, context)
