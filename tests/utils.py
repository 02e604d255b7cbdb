from __future__ import annotations

import asyncio

from jajanin.config import Settings
from jajanin.models import AlertEvent


def make_settings(**overrides) -> Settings:
    data = {
        "API_BASE_URL": "https://api.example.com",
        "API_PREFIX": "/api/v1",
        "HTTP_TIMEOUT_SEC": 5,
        "STREAM_KEY": "sk-test",
        "STREAM_RECONNECT_DELAY_SEC": 3,
        "ALERT_DURATION_SEC": 5,
        "ALERT_HIDE_TRANSITION_MS": 500,
        "RECENT_ALERTS_SIZE": 5,
        "PAYMENT_WINDOW_MIN": 15,
        "EWALLET_MIN_TOTAL": 10000,
        "DEFAULT_ADMIN_FEE_PERCENT": 0.5,
        "PENDING_PAYMENT_PATH": "pending_payment.json",
        "API_HOST": "127.0.0.1",
        "API_PORT": 9000,
        "LOG_LEVEL": "INFO",
    }
    data.update(overrides)
    return Settings.model_validate(data)


def make_alert(idx: int = 1, **overrides) -> AlertEvent:
    data = {
        "supporter_name": f"Supporter {idx}",
        "amount": 10000 * idx,
        "message": f"Semangat {idx}",
    }
    data.update(overrides)
    return AlertEvent.model_validate(data)


class FakeSleep:
    """Records requested delays and only yields to the loop."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)
        await asyncio.sleep(0)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
