"""Remote sinks: the async "accept one entry" capability and its implementations."""

import asyncio
import collections
import logging
import random
from typing import Optional, Protocol

import httpx

from applog.config import LoggerConfig
from applog.formatter import format_json
from applog.models import LogEntry, RuntimeMode, entry_to_dict

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://api.example.com/logs"


class RemoteLogSink(Protocol):
    async def send(self, entry: LogEntry) -> None:
        ...


class RemoteLogSinkStub:
    """Stand-in for a real logging backend.

    Simulates a network round trip and always resolves. In development it
    logs what it would have sent, with context values replaced by their keys.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        api_key: Optional[str] = None,
        delay: float = 0.1,
        mode: RuntimeMode = RuntimeMode.PRODUCTION,
        history: int = 100,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.delay = delay
        self.mode = RuntimeMode.parse(mode)
        self.delivered = 0
        self.sent: collections.deque = collections.deque(maxlen=history)

    async def send(self, entry: LogEntry) -> None:
        try:
            if self.mode is RuntimeMode.DEVELOPMENT:
                preview = entry_to_dict(entry)
                preview["context"] = list(entry.context) if entry.context else None
                logger.info("[RemoteLogSink] Would send to %s: %s", self.endpoint, preview)

            await asyncio.sleep(self.delay)
            self.delivered += 1
            self.sent.append(entry.id)
        except Exception as exc:
            if self.mode is RuntimeMode.DEVELOPMENT:
                logger.warning("[RemoteLogSink] Failed to send log entry: %s", exc)


class HttpLogSink:
    """POSTs each entry as JSON to a logging endpoint.

    Failed attempts are retried up to ``max_retries`` times with capped
    exponential backoff; after that the entry is dropped with a warning.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        max_retries: int = 0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = client
        self._owns_client = client is None
        self.delivered = 0
        self.dropped = 0

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def send(self, entry: LogEntry) -> None:
        try:
            await self._send_with_retry(entry)
        except Exception as exc:
            self.dropped += 1
            logger.warning("Dropping log entry %s: %s", entry.id, exc)

    async def _send_with_retry(self, entry: LogEntry) -> None:
        body = format_json(entry)
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                response = await client.post(self.endpoint, content=body, headers=self._headers())
                response.raise_for_status()
                self.delivered += 1
                return
            except httpx.HTTPError as exc:
                if attempt < self.max_retries:
                    logger.debug(
                        "Remote log send failed (attempt %d/%d): %s",
                        attempt + 1,
                        self.max_retries + 1,
                        exc,
                    )
                    await asyncio.sleep(self._backoff_delay(attempt))
                else:
                    self.dropped += 1
                    logger.warning(
                        "Dropping log entry %s after %d attempts: %s",
                        entry.id,
                        self.max_retries + 1,
                        exc,
                    )

    @staticmethod
    def _backoff_delay(attempt: int) -> float:
        """0.1s doubling per attempt, capped at 2.0s, with 0.8-1.2 jitter."""
        base = 0.1 * (2 ** attempt)
        return min(base, 2.0) * random.uniform(0.8, 1.2)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


def build_sink(config: LoggerConfig) -> Optional[RemoteLogSink]:
    """Construct the configured sink, or None when no endpoint is set."""
    if not config.remote_enabled:
        return None
    if config.sink == "http":
        return HttpLogSink(
            config.remote_endpoint,
            api_key=config.remote_api_key,
            timeout=config.sink_timeout,
            max_retries=config.sink_retries,
        )
    return RemoteLogSinkStub(config.remote_endpoint, api_key=config.remote_api_key, mode=config.mode)
