"""Shared domain models for alerts and checkout payments."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.functional_validators import field_validator


class AlertEvent(BaseModel):
    """Donation notification pushed by the backend on the alert stream."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    supporter_name: str = Field(..., description="Display name of the supporter")
    amount: int = Field(..., ge=0, description="Credited amount in minor units (IDR)")
    message: str = Field(default="", description="Optional supporter message")
    product_name: Optional[str] = Field(default=None, description="Purchased jajan item")
    product_emoji: Optional[str] = Field(default=None)
    quantity: int = Field(default=1, ge=1)
    creator_name: Optional[str] = Field(default=None)

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value: Any) -> Any:
        return 1 if value in (None, 0) else value

    @field_validator("product_name", "product_emoji", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class AlertSettings(BaseModel):
    """Per-creator presentation settings for the alert box."""

    model_config = ConfigDict(extra="ignore")

    duration: int = Field(default=5, ge=3, le=10, description="Seconds an alert stays visible")
    sound_enabled: bool = False
    sound_file: str = Field(default="default", pattern=r"^[a-z0-9_-]+$")
    sound_volume: int = Field(default=50, ge=0, le=100)


class ConnectionStatus(str, Enum):
    """Lifecycle of one stream subscription."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class PaymentStatus(str, Enum):
    """Closed set of checkout states."""

    PENDING = "pending"
    PAID = "paid"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING


class PaymentMethod(str, Enum):
    """Payment methods offered by the checkout form."""

    QRIS = "qris"
    GOPAY = "gopay"
    SHOPEE = "shopee"
    DANA = "dana"
    OVO = "ovo"
    LINKAJA = "linkaja"

    @property
    def is_ewallet(self) -> bool:
        return self is not PaymentMethod.QRIS


class DonationRequest(BaseModel):
    """Checkout form submission.

    ``amount`` is the subtotal (item price times quantity) before the admin fee.
    Field checks that produce user-facing messages live in the checkout, so this
    model stays permissive about blank names and emails.
    """

    creator_username: str = Field(..., min_length=1)
    product_id: Optional[str] = None
    buyer_name: str = ""
    buyer_email: str = ""
    amount: int
    quantity: int = Field(default=1, ge=1)
    message: str = Field(default="", max_length=2000)
    payment_method: PaymentMethod = PaymentMethod.QRIS
    redirect_url: Optional[str] = None


class CheckoutTotals(BaseModel):
    """Amounts charged to the donor."""

    subtotal: int
    admin_fee: int
    total: int
    admin_fee_percent: float


class QRPayload(BaseModel):
    """QRIS payment details returned by the backend."""

    qris_url: str = ""
    qr_code: str = ""
    expired_time: str = ""


class WalletRedirect(BaseModel):
    """Hand-off to an e-wallet app."""

    payment_url: str
    payment_type: str


class StatusLookup(BaseModel):
    """Raw result of one payment status lookup."""

    code: str
    raw: dict[str, Any] = Field(default_factory=dict)


class PendingPaymentRecord(BaseModel):
    """Pending payment kept across a wallet redirect round trip."""

    order_id: str
    platform_trade_no: str = ""
    amount: int
    creator_username: str
