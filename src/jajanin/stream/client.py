"""Alert stream subscriptions over Server-Sent Events."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

import httpx

from ..config import Settings, get_settings
from ..models import AlertEvent, ConnectionStatus
from .sse import decode_alert, iter_events

logger = logging.getLogger(__name__)


AlertHandler = Callable[[AlertEvent], None]
StatusHandler = Callable[[ConnectionStatus], None]
Sleep = Callable[[float], Awaitable[None]]


class StreamError(RuntimeError):
    """Raised for invalid subscription requests."""


@dataclass(eq=False)
class Subscription:
    """Handle for one open alert stream."""

    key: str
    on_alert: AlertHandler
    on_status_change: Optional[StatusHandler] = None
    status: ConnectionStatus = ConnectionStatus.CONNECTING
    closed: bool = False
    delivered: int = 0
    _task: Optional[asyncio.Task[None]] = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return not self.closed


class EventStreamClient:
    """Maintains alert stream connections and reconnects them forever.

    Every subscription owns its own HTTP connection; the backend fans events
    out to each connection, so nothing is shared between subscriptions.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings or get_settings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=str(self._settings.api_base_url).rstrip("/"))
        self._sleep = sleep
        self._subscriptions: dict[str, Subscription] = {}

    async def subscribe(
        self,
        key: str,
        on_alert: AlertHandler,
        on_status_change: Optional[StatusHandler] = None,
    ) -> Subscription:
        """Open a stream for ``key`` and deliver its alerts to ``on_alert``."""

        key = key.strip()
        if not key:
            raise ValueError("Stream key must not be empty")
        if key in self._subscriptions:
            raise StreamError(f"Already subscribed to stream {key!r}")

        handle = Subscription(key=key, on_alert=on_alert, on_status_change=on_status_change)
        self._subscriptions[key] = handle
        handle._task = asyncio.create_task(self._run(handle), name=f"alert-stream-{key}")
        return handle

    async def unsubscribe(self, handle: Subscription) -> None:
        """Close the stream; no alert is delivered after this returns."""

        handle.closed = True
        if self._subscriptions.get(handle.key) is handle:
            del self._subscriptions[handle.key]
        task = handle._task
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("stream.unsubscribed", extra={"key": handle.key})

    async def aclose(self) -> None:
        for handle in list(self._subscriptions.values()):
            await self.unsubscribe(handle)
        if self._owns_client:
            await self._client.aclose()

    async def _run(self, handle: Subscription) -> None:
        delay = self._settings.stream_reconnect_delay_sec
        self._notify(handle, handle.status)
        while not handle.closed:
            self._set_status(handle, ConnectionStatus.CONNECTING)
            try:
                await self._run_once(handle)
                logger.info("stream.ended", extra={"key": handle.key})
            except asyncio.CancelledError:
                raise
            except (httpx.HTTPError, httpx.StreamError) as exc:
                logger.warning("stream.connection_error", extra={"key": handle.key, "error": str(exc)})
            except Exception as exc:  # pragma: no cover - unexpected transport failure
                logger.exception("stream.failure", exc_info=exc)
            if handle.closed:
                break
            self._set_status(handle, ConnectionStatus.DISCONNECTED)
            await self._sleep(delay)

    async def _run_once(self, handle: Subscription) -> None:
        timeout = httpx.Timeout(self._settings.http_timeout_sec, read=None)
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        async with self._client.stream(
            "GET", f"/overlay/alert/{handle.key}", headers=headers, timeout=timeout
        ) as response:
            response.raise_for_status()
            self._set_status(handle, ConnectionStatus.CONNECTED)
            async for event in iter_events(response.aiter_lines()):
                if handle.closed:
                    return
                if event.event == "connected":
                    logger.info("stream.connected", extra={"key": handle.key})
                elif event.event == "alert":
                    alert = decode_alert(event.data)
                    if alert is not None:
                        self._dispatch(handle, alert)

    def _dispatch(self, handle: Subscription, alert: AlertEvent) -> None:
        if handle.closed:
            return
        handle.delivered += 1
        try:
            handle.on_alert(alert)
        except Exception:  # handler bugs must not tear down the stream
            logger.exception("stream.handler_error", extra={"key": handle.key})

    def _set_status(self, handle: Subscription, status: ConnectionStatus) -> None:
        if handle.status is status:
            return
        handle.status = status
        self._notify(handle, status)

    def _notify(self, handle: Subscription, status: ConnectionStatus) -> None:
        if handle.on_status_change is None or handle.closed:
            return
        try:
            handle.on_status_change(status)
        except Exception:
            logger.exception("stream.status_handler_error", extra={"key": handle.key})
