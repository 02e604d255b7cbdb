import pytest

from jajanin import main as overlay_main
from jajanin.app import OverlayApp
from jajanin.models import ConnectionStatus
from jajanin.queue import PresentationState

from .utils import make_alert, make_settings


def test_overlay_requires_stream_key() -> None:
    with pytest.raises(RuntimeError):
        OverlayApp(make_settings(STREAM_KEY=None))


@pytest.mark.asyncio
async def test_received_alert_is_recorded_and_presented() -> None:
    app = OverlayApp(make_settings())
    app._handle_status(ConnectionStatus.CONNECTED)
    app._handle_alert(make_alert(1, amount=15000))
    app._handle_alert(make_alert(2, amount=5000))

    assert app.history.total_amount == 20000
    assert [alert.supporter_name for alert in app.history.snapshot()] == ["Supporter 2", "Supporter 1"]
    assert app.queue.size() == 2

    await app.stop()
    assert app.queue.state is PresentationState.IDLE


def test_run_exits_with_message_when_startup_fails(monkeypatch, capsys) -> None:
    def broken() -> OverlayApp:
        raise RuntimeError("STREAM_KEY must be set to run the overlay")

    monkeypatch.setattr(overlay_main, "OverlayApp", broken)
    with pytest.raises(SystemExit) as excinfo:
        overlay_main.run()

    assert excinfo.value.code == 2
    assert "STREAM_KEY must be set" in capsys.readouterr().err
