"""Fire-and-forget handoff of log entries to a remote sink.

Sends run on a private asyncio loop in a daemon thread so that callers of
the store never wait on the network, whether or not they run inside an
event loop of their own.
"""

import asyncio
import concurrent.futures
import inspect
import logging
import threading
from typing import Optional

from applog.models import LogEntry, RuntimeMode
from applog.sinks import RemoteLogSink

logger = logging.getLogger(__name__)


class SinkDispatcher:
    def __init__(self, sink: RemoteLogSink, mode: RuntimeMode = RuntimeMode.PRODUCTION):
        self._sink = sink
        self._mode = RuntimeMode.parse(mode)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._pending: set[concurrent.futures.Future] = set()
        self._idle = threading.Event()
        self._idle.set()
        self._closed = False
        self._dispatched = 0
        self._delivered = 0
        self._failed = 0

    @property
    def sink(self) -> RemoteLogSink:
        return self._sink

    @property
    def dispatched(self) -> int:
        with self._lock:
            return self._dispatched

    @property
    def delivered(self) -> int:
        with self._lock:
            return self._delivered

    @property
    def failed(self) -> int:
        with self._lock:
            return self._failed

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def dispatch(self, entry: LogEntry) -> None:
        """Schedule delivery of one entry and return immediately. Never raises."""
        try:
            with self._lock:
                if self._closed:
                    logger.debug("Dispatcher closed, dropping entry %s", entry.id)
                    return
                loop = self._ensure_loop()
                future = asyncio.run_coroutine_threadsafe(self._deliver(entry), loop)
                self._pending.add(future)
                self._dispatched += 1
                self._idle.clear()
            future.add_done_callback(self._on_done)
        except Exception:
            logger.exception("Failed to dispatch log entry %s", entry.id)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no sends are in flight. Returns False on timeout."""
        return self._idle.wait(timeout=timeout)

    def close(self, timeout: float = 5.0) -> None:
        """Let in-flight sends finish (up to timeout), then stop the loop."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            loop, thread = self._loop, self._thread

        if loop is None:
            return

        if not self._idle.wait(timeout=timeout):
            logger.warning("Closing dispatcher with %d sends still pending, cancelling", self.pending)
            try:
                asyncio.run_coroutine_threadsafe(self._cancel_tasks(), loop).result(timeout=timeout)
            except Exception as exc:
                logger.debug("Error cancelling pending sends: %s", exc)

        aclose = getattr(self._sink, "aclose", None)
        if aclose is not None:
            try:
                asyncio.run_coroutine_threadsafe(aclose(), loop).result(timeout=timeout)
            except Exception as exc:
                logger.debug("Error closing sink: %s", exc)

        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=timeout)
        logger.debug("Dispatcher closed: dispatched=%d delivered=%d failed=%d",
                     self._dispatched, self._delivered, self._failed)

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        """Start the background loop on first use. Must be called with self._lock held."""
        if self._loop is None:
            self._loop = asyncio.new_event_loop()
            self._thread = threading.Thread(
                target=self._run_loop, name="applog-dispatch", daemon=True,
            )
            self._thread.start()
        return self._loop

    @staticmethod
    async def _cancel_tasks() -> None:
        """Cancel every other task on the loop and wait for them to finish."""
        current = asyncio.current_task()
        tasks = [t for t in asyncio.all_tasks() if t is not current]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _run_loop(self):
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_forever()
        finally:
            self._loop.close()

    async def _deliver(self, entry: LogEntry) -> None:
        try:
            result = self._sink.send(entry)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            with self._lock:
                self._failed += 1
            if self._mode is RuntimeMode.DEVELOPMENT:
                logger.warning("Remote sink failed for entry %s: %s", entry.id, exc)
            else:
                logger.debug("Remote sink failed for entry %s: %s", entry.id, exc)
            return

        with self._lock:
            self._delivered += 1

    def _on_done(self, future: concurrent.futures.Future):
        with self._lock:
            self._pending.discard(future)
            if not self._pending:
                self._idle.set()
