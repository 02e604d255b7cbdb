"""Platform fee configuration cache and checkout totals."""

from __future__ import annotations

import logging
import math
from decimal import Decimal
from typing import Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from ..models import CheckoutTotals
from ..rest import JajaninRESTClient

logger = logging.getLogger(__name__)


class AdminFeeConfig(BaseModel):
    admin_fee_percent: float = Field(..., ge=0, le=100)


def compute_totals(subtotal: int, admin_fee_percent: float) -> CheckoutTotals:
    """``admin_fee = ceil(subtotal * percent / 100)``, in exact decimal arithmetic."""

    fee = Decimal(subtotal) * Decimal(str(admin_fee_percent)) / Decimal(100)
    admin_fee = math.ceil(fee)
    return CheckoutTotals(
        subtotal=subtotal,
        admin_fee=admin_fee,
        total=subtotal + admin_fee,
        admin_fee_percent=admin_fee_percent,
    )


class ConfigCache:
    """Fetches the admin fee once and serves it synchronously afterwards.

    There is no invalidation: a fee changed on the server mid-session is only
    seen by a new process.
    """

    def __init__(self, rest: JajaninRESTClient, default_percent: float = 0.5) -> None:
        self._rest = rest
        self._default_percent = default_percent
        self._percent: Optional[float] = None

    @property
    def loaded(self) -> bool:
        return self._percent is not None

    @property
    def admin_fee_percent(self) -> float:
        return self._default_percent if self._percent is None else self._percent

    async def load(self) -> float:
        if self._percent is not None:
            return self._percent
        try:
            data = await self._rest.fetch_config()
            self._percent = AdminFeeConfig.model_validate(data).admin_fee_percent
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            logger.warning("config.fetch_failed", extra={"error": str(exc)})
            self._percent = self._default_percent
        return self._percent

    def quote(self, subtotal: int) -> CheckoutTotals:
        return compute_totals(subtotal, self.admin_fee_percent)
