from __future__ import annotations

import asyncio
import logging
import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import httpx

from errorkit.exceptions import ConfigError
from errorkit.models import ErrorRecord, ReportBatch
from errorkit.settings import (
    WEBHOOK_BATCH_SIZE,
    WEBHOOK_FLUSH_INTERVAL,
    WEBHOOK_MAX_BUFFER,
    WEBHOOK_TIMEOUT,
)

if TYPE_CHECKING:
    from errorkit.config import ErrorKitConfig

logger = logging.getLogger(__name__)


class WebhookReporter:
    """
    Ships error records to an external HTTP endpoint in batches.

    Pass it to ``ExceptionDispatcher(reporters=[...])``. Calling the reporter
    only buffers the record, so it is safe from request threads; delivery
    happens in ``flush()``, driven by the background task started with
    ``start()`` or by hand.

    Features:
    - Batched delivery (configurable size and interval)
    - Background flush task for time-based batching
    - Bounded buffer: the oldest records are dropped when it overflows
    """

    def __init__(
        self,
        webhook_url: str,
        service: str = "app",
        batch_size: int = WEBHOOK_BATCH_SIZE,
        flush_interval: float = WEBHOOK_FLUSH_INTERVAL,
        max_buffer: int = WEBHOOK_MAX_BUFFER,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._webhook_url = webhook_url
        self._service = service
        self._batch_size = batch_size
        self._flush_interval = flush_interval
        self._max_buffer = max_buffer
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._transport = transport
        self._buffer: list[ErrorRecord] = []
        self._lock = threading.Lock()
        self._dropped = 0
        self._flush_task: asyncio.Task[None] | None = None
        self._http_client: httpx.AsyncClient | None = None
        self._running = False

    @classmethod
    def from_config(cls, config: ErrorKitConfig, **kwargs: Any) -> WebhookReporter:
        if not config.webhook_url:
            raise ConfigError("webhook_url is not configured")
        return cls(
            webhook_url=config.webhook_url,
            service=config.service_name,
            batch_size=config.webhook_batch_size,
            flush_interval=config.webhook_flush_interval,
            **kwargs,
        )

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._buffer)

    @property
    def dropped(self) -> int:
        return self._dropped

    def __call__(self, record: ErrorRecord) -> None:
        with self._lock:
            self._buffer.append(record)
            overflow = len(self._buffer) - self._max_buffer
            if overflow > 0:
                del self._buffer[:overflow]
                self._dropped += overflow
                logger.warning("Webhook buffer full, dropped %d error record(s)", overflow)

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT, transport=self._transport)
        return self._http_client

    async def start(self) -> None:
        """Start the background flush task and HTTP client."""
        if self._running:
            return
        self._running = True
        self._client()
        self._flush_task = asyncio.create_task(self._flush_loop())

    async def stop(self) -> None:
        """Stop the background task and flush remaining records."""
        self._running = False
        if self._flush_task:
            self._flush_task.cancel()
            try:
                await self._flush_task
            except asyncio.CancelledError:
                pass
            self._flush_task = None

        try:
            await self.flush()
        finally:
            if self._http_client:
                await self._http_client.aclose()
                self._http_client = None

    async def flush(self) -> int:
        """Send everything buffered, ``batch_size`` records per request.

        Returns the number of records delivered.
        """
        with self._lock:
            records = self._buffer
            self._buffer = []

        delivered = 0
        for start in range(0, len(records), self._batch_size):
            chunk = records[start : start + self._batch_size]
            batch = ReportBatch(
                batch_id=str(uuid4()),
                service=self._service,
                records=chunk,
                sent_at=datetime.now(UTC),
            )
            if await self._send(batch):
                delivered += len(chunk)
        return delivered

    async def _send(self, batch: ReportBatch) -> bool:
        try:
            response = await self._client().post(
                self._webhook_url,
                json=batch.model_dump(mode="json"),
                headers=self._headers,
            )
        except httpx.RequestError as e:
            logger.warning("Failed to send error batch: %s", e)
            return False

        if response.status_code >= 400:
            logger.warning(
                "Error webhook returned %d: %s",
                response.status_code,
                response.text[:200],
            )
            return False
        return True

    async def _flush_loop(self) -> None:
        """Background task that flushes every flush_interval seconds."""
        while self._running:
            try:
                await asyncio.sleep(self._flush_interval)
                await self.flush()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception("Error in webhook flush loop: %s", e)
