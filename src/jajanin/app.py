"""Overlay application bootstrap and lifecycle management."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

import httpx
import uvicorn
from pydantic import ValidationError

from .api.server import ControlServer
from .config import Settings, get_settings
from .effects import AudioUnlock, HttpSpeechSynthesizer, PygameSoundPlayer
from .logging import configure_logging
from .models import AlertEvent, AlertSettings, ConnectionStatus
from .queue import AlertQueue
from .rest import JajaninRESTClient
from .stream.client import EventStreamClient, Subscription
from .stream.history import RecentAlerts

logger = logging.getLogger(__name__)


class OverlayApp:
    """Coordinates the alert stream, presenter, recent feed and control API."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        configure_logging(self._settings.log_level)

        if not self._settings.stream_key:
            raise RuntimeError("STREAM_KEY must be set to run the overlay")
        self._stream_key = self._settings.stream_key

        self._rest = JajaninRESTClient(self._settings)
        self._stream = EventStreamClient(self._settings)
        self._speech = (
            HttpSpeechSynthesizer(str(self._settings.tts_endpoint), timeout=self._settings.http_timeout_sec)
            if self._settings.tts_endpoint
            else None
        )
        self._queue = AlertQueue(
            AlertSettings(duration=self._settings.alert_duration_sec),
            sound=PygameSoundPlayer(self._settings.sounds_dir),
            speech=self._speech,
            audio_unlock=AudioUnlock(),
            tts_enabled=self._settings.tts_enabled,
            hide_transition_sec=self._settings.alert_hide_transition_sec,
        )
        self._history = RecentAlerts(self._settings.recent_alerts_size)
        self._connection = ConnectionStatus.CONNECTING
        self._control = ControlServer(
            self._queue,
            self._history,
            connection_status=lambda: self._connection,
            test_alert=self._send_test_alert,
        )

        self._subscription: Optional[Subscription] = None
        self._api_task: Optional[asyncio.Task[None]] = None
        self._api_server: Optional[uvicorn.Server] = None

    @property
    def queue(self) -> AlertQueue:
        return self._queue

    @property
    def history(self) -> RecentAlerts:
        return self._history

    async def start(self) -> None:
        await self._load_alert_settings()
        self._subscription = await self._stream.subscribe(
            self._stream_key, self._handle_alert, self._handle_status
        )
        self._api_task = asyncio.create_task(self._run_api(), name="control-api")

    async def stop(self) -> None:
        if self._api_server:
            self._api_server.should_exit = True
        if self._api_task:
            try:
                await self._api_task
            except asyncio.CancelledError:
                pass

        if self._subscription:
            await self._stream.unsubscribe(self._subscription)
        await self._queue.close()
        await self._stream.aclose()
        await self._rest.aclose()
        if self._speech:
            await self._speech.aclose()

    def register_shutdown_callback(self, callback: Callable[[], None]) -> None:
        """Register callback invoked when remote shutdown is requested."""

        self._control.register_shutdown(callback)

    async def _load_alert_settings(self) -> None:
        try:
            data = await self._rest.alert_settings(self._stream_key)
            settings = AlertSettings.model_validate(data)
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            logger.warning("overlay.settings_fallback", extra={"error": str(exc)})
            return
        self._queue.update_settings(settings)
        logger.info("overlay.settings_loaded", extra={"duration": settings.duration})

    def _handle_alert(self, alert: AlertEvent) -> None:
        self._history.record(alert)
        self._queue.enqueue(alert)

    def _handle_status(self, status: ConnectionStatus) -> None:
        self._connection = status
        logger.info("overlay.connection", extra={"status": status.value})

    async def _send_test_alert(self) -> Dict[str, Any]:
        return await self._rest.send_test_alert(self._stream_key)

    async def _run_api(self) -> None:
        config = uvicorn.Config(
            self._control.app,
            host=self._settings.api_host,
            port=self._settings.api_port,
            log_level=self._settings.log_level.value.lower(),
            loop="asyncio",
            lifespan="off",
        )
        self._api_server = uvicorn.Server(config)
        try:
            await self._api_server.serve()
        except asyncio.CancelledError:
            pass
