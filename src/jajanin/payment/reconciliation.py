"""Payment status lookups and cancellation requests."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..models import PaymentStatus, StatusLookup
from ..rest import JajaninRESTClient

logger = logging.getLogger(__name__)

STATUS_PAID = "02"
STATUS_FAILED = "09"


class ReconciliationError(RuntimeError):
    """The backend could not be asked; the payment state is unknown."""


def to_status(code: str) -> PaymentStatus:
    """Map a gateway status code onto the domain states.

    Only ``02`` and ``09`` are final; every other code, including the
    gateway's explicit ``01`` pending code, leaves the payment pending.
    """

    if code == STATUS_PAID:
        return PaymentStatus.PAID
    if code == STATUS_FAILED:
        return PaymentStatus.FAILED
    return PaymentStatus.PENDING


class ReconciliationClient:
    """Stateless status lookups; cadence and retries belong to the caller."""

    def __init__(self, rest: JajaninRESTClient) -> None:
        self._rest = rest

    async def lookup(self, order_id: str) -> StatusLookup:
        try:
            data = await self._rest.payment_status(order_id)
        except httpx.HTTPError as exc:
            raise ReconciliationError(f"Status lookup for {order_id} failed: {exc}") from exc
        except ValueError as exc:
            raise ReconciliationError(f"Status lookup for {order_id} returned invalid JSON") from exc

        code = str(data.get("status") or "")
        logger.info("payment.status_checked", extra={"order_id": order_id, "code": code})
        return StatusLookup(code=code, raw=data)

    async def cancel(self, order_id: str, platform_trade_no: str) -> dict[str, Any]:
        try:
            return await self._rest.cancel_payment(order_id, platform_trade_no)
        except httpx.HTTPError as exc:
            raise ReconciliationError(f"Cancel for {order_id} failed: {exc}") from exc
