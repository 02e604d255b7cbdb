"""Checkout flow: validation, session creation and the single pending slot."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta
from typing import Any, Optional

import httpx

from ..config import Settings, get_settings
from ..formatting import format_rupiah
from ..models import (
    CheckoutTotals,
    DonationRequest,
    PaymentStatus,
    PendingPaymentRecord,
    QRPayload,
    WalletRedirect,
)
from ..rest import JajaninRESTClient
from .fees import ConfigCache
from .reconciliation import ReconciliationClient
from .session import Clock, PaymentSession, Sleep
from .store import PendingPaymentStore

logger = logging.getLogger(__name__)


class CheckoutValidationError(ValueError):
    """Input rejected before contacting the backend; the message is user-facing."""


class CheckoutError(RuntimeError):
    """The backend refused or could not create the payment."""


class SessionSlot:
    """Holds at most one retained checkout session."""

    def __init__(self) -> None:
        self._session: Optional[PaymentSession] = None

    @property
    def session(self) -> Optional[PaymentSession]:
        return self._session

    def pending(self) -> Optional[PaymentSession]:
        if self._session is not None and self._session.status is PaymentStatus.PENDING:
            return self._session
        return None

    def put(self, session: PaymentSession) -> PaymentSession:
        """Store ``session`` unless a pending one is held; return the occupant."""

        existing = self.pending()
        if existing is not None:
            return existing
        self._session = session
        return session

    def release(self, session: PaymentSession) -> None:
        if self._session is session:
            self._session = None


class Checkout:
    """Creates payment sessions and keeps the one pending session reachable."""

    def __init__(
        self,
        rest: JajaninRESTClient,
        settings: Optional[Settings] = None,
        *,
        fees: Optional[ConfigCache] = None,
        reconciler: Optional[ReconciliationClient] = None,
        store: Optional[PendingPaymentStore] = None,
        clock: Clock = time.time,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings or get_settings()
        self._rest = rest
        self._fees = fees or ConfigCache(rest, self._settings.default_admin_fee_percent)
        self._reconciler = reconciler or ReconciliationClient(rest)
        self._store = store or PendingPaymentStore(self._settings.pending_payment_path)
        self._clock = clock
        self._sleep = sleep
        self._slot = SessionSlot()
        self._create_lock = asyncio.Lock()

    @property
    def fees(self) -> ConfigCache:
        return self._fees

    @property
    def store(self) -> PendingPaymentStore:
        return self._store

    @property
    def session(self) -> Optional[PaymentSession]:
        return self._slot.session

    async def prepare(self) -> float:
        """Load the admin fee, as the checkout form does when it mounts."""

        return await self._fees.load()

    def quote(self, subtotal: int) -> CheckoutTotals:
        return self._fees.quote(subtotal)

    def validate(self, request: DonationRequest) -> CheckoutTotals:
        """Check the form and return the totals; raises :class:`CheckoutValidationError`."""

        if request.amount <= 0:
            raise CheckoutValidationError("Jumlah pembayaran harus lebih dari 0")
        if not request.buyer_name.strip():
            raise CheckoutValidationError("Nama tidak boleh kosong")
        if not request.buyer_email.strip() or "@" not in request.buyer_email:
            raise CheckoutValidationError("Email tidak valid")

        totals = self.quote(request.amount)
        minimum = self._settings.ewallet_min_total
        if request.payment_method.is_ewallet and totals.total < minimum:
            raise CheckoutValidationError(
                f"Minimum pembayaran E-Wallet adalah {format_rupiah(minimum)}"
            )
        return totals

    async def create(self, request: DonationRequest) -> PaymentSession:
        """Create a payment, or surface the pending one if it still exists.

        Creations are serialised: a caller arriving while another creation is
        in flight waits for it and receives the same session.
        """

        async with self._create_lock:
            return await self._create(request)

    async def _create(self, request: DonationRequest) -> PaymentSession:
        existing = self._slot.pending()
        if existing is not None:
            logger.info("checkout.pending_exists", extra={"order_id": existing.order_id})
            return existing

        totals = self.validate(request)
        payload: dict[str, Any] = {
            "creator_username": request.creator_username,
            "product_id": request.product_id,
            "buyer_name": request.buyer_name.strip(),
            "buyer_email": request.buyer_email.strip(),
            "amount": totals.total,
            "quantity": request.quantity,
            "message": request.message,
            "payment_method": request.payment_method.value,
            "redirect_url": request.redirect_url if request.payment_method.is_ewallet else "",
        }

        try:
            data = await self._rest.create_donation(payload)
        except httpx.HTTPStatusError as exc:
            raise CheckoutError(_error_message(exc.response)) from exc
        except httpx.HTTPError as exc:
            raise CheckoutError("Gagal memproses pembayaran") from exc

        order_id = str(data.get("token") or "")
        if not order_id:
            raise CheckoutError("Gagal memproses pembayaran")
        platform_trade_no = str(data.get("platform_trade_no") or "")

        redirect: Optional[WalletRedirect] = None
        qr: Optional[QRPayload] = None
        payment_type = data.get("payment_type")
        if payment_type and payment_type != "qris" and data.get("payment_url"):
            redirect = WalletRedirect(payment_url=data["payment_url"], payment_type=payment_type)
        else:
            qr = QRPayload(
                qris_url=data.get("qris_url") or "",
                qr_code=data.get("qr_code") or "",
                expired_time=data.get("expired_time") or "",
            )

        session = self._new_session(
            order_id,
            totals.total,
            platform_trade_no=platform_trade_no,
            creator_username=request.creator_username,
            qr=qr,
            redirect=redirect,
        )
        if redirect is not None:
            self._store.save(
                PendingPaymentRecord(
                    order_id=order_id,
                    platform_trade_no=platform_trade_no,
                    amount=totals.total,
                    creator_username=request.creator_username,
                )
            )
        logger.info(
            "checkout.created",
            extra={"order_id": order_id, "method": request.payment_method.value, "total": totals.total},
        )
        return session

    def reopen(self) -> Optional[PaymentSession]:
        """Return the retained pending session, restarting its countdown display."""

        session = self._slot.pending()
        if session is not None:
            session.start_countdown()
        return session

    async def dismiss(self) -> Optional[PaymentSession]:
        """Close the checkout view.

        A pending session stays retained for :meth:`reopen` unless its
        countdown already lapsed, in which case it is closed out as expired.
        """

        session = self._slot.session
        if session is None:
            return None
        await session.close()
        if session.status is PaymentStatus.PENDING and session.expire():
            return None
        if session.is_terminal:
            self._slot.release(session)
            return None
        return session

    async def cancel(self) -> Optional[PaymentStatus]:
        session = self._slot.pending()
        if session is None:
            return None
        status = await session.cancel()
        await session.close()
        return status

    def notify(self, order_id: str, code: str) -> Optional[PaymentStatus]:
        """Apply a pushed status update to the matching session."""

        session = self._slot.session
        if session is None or session.order_id != order_id:
            logger.info("checkout.notify_ignored", extra={"order_id": order_id})
            return None
        return session.apply_code(code)

    async def resume(self) -> Optional[PaymentSession]:
        """Continue reconciling the payment persisted before a wallet redirect."""

        record = self._store.load()
        if record is None:
            return None

        session = self._slot.session
        if session is None or session.order_id != record.order_id:
            if self._slot.pending() is not None:
                raise CheckoutError("Another payment is still pending")
            session = self._new_session(
                record.order_id,
                record.amount,
                platform_trade_no=record.platform_trade_no,
                creator_username=record.creator_username,
            )
        await session.check_status()
        return session

    def _new_session(self, order_id: str, amount: int, **kwargs: Any) -> PaymentSession:
        session = PaymentSession(
            order_id,
            amount,
            self._reconciler,
            window=timedelta(minutes=self._settings.payment_window_min),
            clock=self._clock,
            sleep=self._sleep,
            **kwargs,
        )
        session.add_listener(self._on_status)
        return self._slot.put(session)

    def _on_status(self, session: PaymentSession, status: PaymentStatus) -> None:
        if not status.is_terminal:
            return
        self._slot.release(session)
        record = self._store.load()
        if record is not None and record.order_id == session.order_id:
            self._store.clear()


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return "Gagal memproses pembayaran"
