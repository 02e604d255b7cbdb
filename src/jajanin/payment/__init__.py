"""Checkout payment reconciliation package."""

__all__ = [
    "Checkout",
    "CheckoutError",
    "CheckoutValidationError",
    "ConfigCache",
    "PaymentCountdown",
    "PaymentSession",
    "PendingPaymentStore",
    "ReconciliationClient",
    "ReconciliationError",
    "SessionSlot",
]

from .checkout import Checkout, CheckoutError, CheckoutValidationError, SessionSlot
from .fees import ConfigCache
from .reconciliation import ReconciliationClient, ReconciliationError
from .session import PaymentCountdown, PaymentSession
from .store import PendingPaymentStore
