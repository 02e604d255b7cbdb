import asyncio

import httpx
import pytest

from jajanin.api.server import ControlServer
from jajanin.models import ConnectionStatus
from jajanin.queue import AlertQueue
from jajanin.stream.history import RecentAlerts

from .utils import make_alert


async def _never(delay: float) -> None:
    await asyncio.Event().wait()


def make_client(server: ControlServer) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=server.app), base_url="http://overlay")


@pytest.mark.asyncio
async def test_overlay_state_reports_stream_and_presenter() -> None:
    history = RecentAlerts(capacity=5)
    history.record(make_alert(1, amount=5000))
    history.record(make_alert(2, amount=45000, product_name="Kopi", product_emoji="☕", quantity=3))
    queue = AlertQueue()
    server = ControlServer(queue, history, connection_status=lambda: ConnectionStatus.CONNECTED)

    async with make_client(server) as client:
        health = await client.get("/health")
        state = (await client.get("/overlay")).json()

    assert health.json() == {"status": "ok"}
    assert state["connection"] == "connected"
    assert state["presentation"] == "idle"
    assert state["current"] is None
    assert state["queue_size"] == 0
    assert state["audio_unlocked"] is False
    assert state["session_total"] == 50000
    assert [item["display"] for item in state["recent"]] == ["3x ☕ Kopi", "Rp 5.000"]


@pytest.mark.asyncio
async def test_audio_unlock_enables_speech_readiness() -> None:
    class SilentSpeech:
        async def speak(self, text: str) -> None:
            return None

        def stop(self) -> None:
            return None

    queue = AlertQueue(speech=SilentSpeech(), tts_enabled=True)
    server = ControlServer(queue, RecentAlerts(), connection_status=lambda: ConnectionStatus.CONNECTING)

    async with make_client(server) as client:
        response = await client.post("/overlay/audio/unlock")

    assert response.status_code == 202
    assert response.json() == {"status": "audio_unlocked", "tts_ready": True}
    assert queue.audio_unlock.is_unlocked


@pytest.mark.asyncio
async def test_test_alert_reports_client_count_and_backend_errors() -> None:
    async def trigger() -> dict:
        return {"message": "Test alert sent", "client_count": 2}

    async def failing() -> dict:
        raise httpx.ConnectError("backend unreachable")

    queue = AlertQueue()
    ok = ControlServer(queue, RecentAlerts(), lambda: ConnectionStatus.CONNECTED, test_alert=trigger)
    broken = ControlServer(queue, RecentAlerts(), lambda: ConnectionStatus.CONNECTED, test_alert=failing)
    missing = ControlServer(queue, RecentAlerts(), lambda: ConnectionStatus.CONNECTED)

    async with make_client(ok) as client:
        sent = await client.post("/overlay/test")
    async with make_client(broken) as client:
        failed = await client.post("/overlay/test")
    async with make_client(missing) as client:
        unavailable = await client.post("/overlay/test")

    assert sent.status_code == 202
    assert sent.json() == {"status": "test_sent", "client_count": 2}
    assert failed.status_code == 502
    assert unavailable.json() == {"status": "handler_unavailable"}


@pytest.mark.asyncio
async def test_clear_queue_and_shutdown() -> None:
    queue = AlertQueue(sleep=_never)
    for idx in range(1, 4):
        queue.enqueue(make_alert(idx))
    await asyncio.sleep(0)

    requested = []
    server = ControlServer(queue, RecentAlerts(), lambda: ConnectionStatus.CONNECTED)
    server.register_shutdown(lambda: requested.append(True))

    async with make_client(server) as client:
        state = (await client.get("/overlay")).json()
        cleared = await client.post("/queue/clear")
        shutdown = await client.post("/control/shutdown")

    assert state["presentation"] == "showing"
    assert state["current"]["supporter_name"] == "Supporter 1"
    assert state["queue_size"] == 2
    assert cleared.json() == {"status": "queue_cleared", "dropped": 2}
    assert shutdown.status_code == 202
    assert requested == [True]
    await queue.close()
