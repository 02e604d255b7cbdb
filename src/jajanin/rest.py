"""Jajanin backend REST client."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from .config import Settings, get_settings


def unwrap(payload: Any) -> dict[str, Any]:
    """Return the ``data`` member of a response envelope, or the payload itself."""

    if not isinstance(payload, dict):
        return {}
    data = payload.get("data", payload)
    return data if isinstance(data, dict) else {}


class JajaninRESTClient:
    """Lightweight wrapper around the backend endpoints the client core needs."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None) -> None:
        self._settings = settings or get_settings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=str(self._settings.api_base_url).rstrip("/"),
            headers={"Accept": "application/json"},
            timeout=self._settings.http_timeout_sec,
        )
        self._prefix = "/" + self._settings.api_prefix.strip("/")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def create_donation(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.post(f"{self._prefix}/donations", json=payload)
        response.raise_for_status()
        return unwrap(response.json())

    async def payment_status(self, order_id: str) -> dict[str, Any]:
        response = await self._client.get(f"{self._prefix}/payment/status/{order_id}")
        response.raise_for_status()
        return unwrap(response.json())

    async def cancel_payment(self, order_id: str, platform_trade_no: str) -> dict[str, Any]:
        response = await self._client.post(
            f"{self._prefix}/payment/cancel",
            json={"merchant_trade_no": order_id, "platform_trade_no": platform_trade_no},
        )
        response.raise_for_status()
        return unwrap(response.json())

    async def fetch_config(self) -> dict[str, Any]:
        response = await self._client.get(f"{self._prefix}/config")
        response.raise_for_status()
        return unwrap(response.json())

    async def alert_settings(self, stream_key: str) -> dict[str, Any]:
        response = await self._client.get(f"/overlay/settings/{stream_key}")
        response.raise_for_status()
        return unwrap(response.json())

    async def send_test_alert(self, stream_key: str) -> dict[str, Any]:
        response = await self._client.post(f"/overlay/test/{stream_key}")
        response.raise_for_status()
        return unwrap(response.json())
