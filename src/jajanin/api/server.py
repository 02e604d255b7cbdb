"""FastAPI control surface for the overlay process."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from fastapi import FastAPI, HTTPException, status

from ..formatting import jajan_text
from ..models import AlertEvent, ConnectionStatus
from ..queue import AlertQueue
from ..stream.history import RecentAlerts


def _alert_to_dict(alert: Optional[AlertEvent]) -> Optional[Dict[str, Any]]:
    if alert is None:
        return None
    return {
        "supporter_name": alert.supporter_name,
        "amount": alert.amount,
        "message": alert.message,
        "product_name": alert.product_name,
        "quantity": alert.quantity,
        "display": jajan_text(alert),
    }


StatusProvider = Callable[[], ConnectionStatus]
TestAlertTrigger = Callable[[], Awaitable[Dict[str, Any]]]


class ControlServer:
    """Wraps FastAPI application to expose overlay state and operator actions."""

    def __init__(
        self,
        queue: AlertQueue,
        history: RecentAlerts,
        connection_status: StatusProvider,
        test_alert: Optional[TestAlertTrigger] = None,
    ) -> None:
        self._queue = queue
        self._history = history
        self._connection_status = connection_status
        self._test_alert = test_alert
        self._shutdown_trigger: Optional[Callable[[], None]] = None
        self._app = FastAPI(title="Jajanin Overlay Control", version="1.0.0")

        @self._app.get("/health", status_code=status.HTTP_200_OK)
        async def health() -> Dict[str, str]:  # noqa: ANN202 - FastAPI response
            return {"status": "ok"}

        @self._app.get("/overlay")
        async def overlay_state() -> Dict[str, Any]:  # noqa: ANN202 - FastAPI response
            return {
                "connection": self._connection_status().value,
                "presentation": self._queue.state.value,
                "current": _alert_to_dict(self._queue.current),
                "queue_size": self._queue.size(),
                "audio_unlocked": self._queue.audio_unlock.is_unlocked,
                "tts_ready": self._queue.tts_ready,
                "recent": [_alert_to_dict(alert) for alert in self._history.snapshot()],
                "session_total": self._history.total_amount,
            }

        @self._app.post("/overlay/audio/unlock", status_code=status.HTTP_202_ACCEPTED)
        async def unlock_audio() -> Dict[str, Any]:  # noqa: ANN202 - FastAPI response
            self._queue.audio_unlock.unlock()
            return {"status": "audio_unlocked", "tts_ready": self._queue.tts_ready}

        @self._app.post("/overlay/test", status_code=status.HTTP_202_ACCEPTED)
        async def send_test_alert() -> Dict[str, Any]:  # noqa: ANN202
            if not self._test_alert:
                return {"status": "handler_unavailable"}
            try:
                result = await self._test_alert()
            except httpx.HTTPError as exc:
                raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
            return {"status": "test_sent", "client_count": result.get("client_count", 0)}

        @self._app.post("/queue/clear", status_code=status.HTTP_202_ACCEPTED)
        async def clear_queue() -> Dict[str, Any]:  # noqa: ANN202 - FastAPI response
            dropped = self._queue.clear()
            return {"status": "queue_cleared", "dropped": dropped}

        @self._app.post("/control/shutdown", status_code=status.HTTP_202_ACCEPTED)
        async def request_shutdown() -> Dict[str, str]:  # noqa: ANN202
            if self._shutdown_trigger:
                self._shutdown_trigger()
            return {"status": "shutdown_requested"}

    def register_shutdown(self, trigger: Callable[[], None]) -> None:
        self._shutdown_trigger = trigger

    @property
    def app(self) -> FastAPI:
        return self._app
