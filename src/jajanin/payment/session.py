"""Checkout attempt state machine with an advisory local countdown."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from ..models import PaymentStatus, QRPayload, WalletRedirect
from .reconciliation import ReconciliationClient, ReconciliationError, to_status

logger = logging.getLogger(__name__)


Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]
StatusListener = Callable[["PaymentSession", PaymentStatus], None]


class PaymentCountdown:
    """Fixed wall-clock window measured from when the checkout was opened."""

    def __init__(self, window: timedelta, clock: Clock = time.time) -> None:
        self._window = window.total_seconds()
        self._clock = clock
        self._started_at = clock()

    @property
    def started_at(self) -> float:
        return self._started_at

    @property
    def deadline(self) -> float:
        return self._started_at + self._window

    def remaining(self) -> float:
        return max(0.0, self.deadline - self._clock())

    def elapsed(self) -> bool:
        return self.remaining() <= 0

    def display(self) -> str:
        """Remaining time as ``MM:SS``."""

        seconds = int(self.remaining())
        return f"{seconds // 60:02d}:{seconds % 60:02d}"


class PaymentSession:
    """One checkout attempt.

    Status only ever leaves ``pending``; once terminal it never changes. The
    countdown is advisory: when it lapses the session stops automatic checks
    and hides the QR code, but a later confirmation from the backend still
    marks it paid.
    """

    def __init__(
        self,
        order_id: str,
        amount: int,
        reconciler: ReconciliationClient,
        *,
        platform_trade_no: str = "",
        creator_username: str = "",
        qr: Optional[QRPayload] = None,
        redirect: Optional[WalletRedirect] = None,
        window: timedelta = timedelta(minutes=15),
        clock: Clock = time.time,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.order_id = order_id
        self.platform_trade_no = platform_trade_no
        self.amount = amount
        self.creator_username = creator_username
        self.qr = qr
        self.redirect = redirect
        self._reconciler = reconciler
        self._sleep = sleep
        self._countdown = PaymentCountdown(window, clock)
        self._status = PaymentStatus.PENDING
        self._expired_flag = False
        self._inflight: Optional[asyncio.Task[PaymentStatus]] = None
        self._timer: Optional[asyncio.Task[None]] = None
        self._listeners: list[StatusListener] = []

    @property
    def status(self) -> PaymentStatus:
        return self._status

    @property
    def is_terminal(self) -> bool:
        return self._status.is_terminal

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self._countdown.started_at, tz=timezone.utc)

    @property
    def valid_until(self) -> datetime:
        return datetime.fromtimestamp(self._countdown.deadline, tz=timezone.utc)

    @property
    def countdown(self) -> PaymentCountdown:
        return self._countdown

    @property
    def is_expired(self) -> bool:
        """True once the local countdown reached zero."""

        if not self._expired_flag and self._countdown.elapsed():
            self._mark_expired_locally()
        return self._expired_flag

    @property
    def show_qr(self) -> bool:
        return self.qr is not None and self._status is PaymentStatus.PENDING and not self.is_expired

    @property
    def auto_check_allowed(self) -> bool:
        return self._status is PaymentStatus.PENDING and not self.is_expired

    def add_listener(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    async def open(self) -> PaymentStatus:
        """Start the countdown and check the status once, as the checkout dialog does."""

        self.start_countdown()
        if self.auto_check_allowed:
            return await self.check_status()
        return self._status

    def start_countdown(self) -> None:
        if self._timer is None or self._timer.done():
            self._timer = asyncio.create_task(self._run_countdown(), name=f"countdown-{self.order_id}")

    async def check_status(self) -> PaymentStatus:
        """Ask the backend; concurrent callers share one in-flight lookup.

        A transport failure leaves the session pending.
        """

        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._lookup(), name=f"status-{self.order_id}")
        return await asyncio.shield(self._inflight)

    def apply_code(self, code: str) -> PaymentStatus:
        """Apply a status code received from a lookup or a push notification."""

        target = to_status(code)
        if target is not PaymentStatus.PENDING:
            self._transition(target)
        return self._status

    async def cancel(self) -> PaymentStatus:
        """Cancel locally first; the backend request is advisory only."""

        if not self._transition(PaymentStatus.CANCELLED):
            return self._status
        try:
            await self._reconciler.cancel(self.order_id, self.platform_trade_no)
        except ReconciliationError as exc:
            # local and server state may now disagree; nothing re-verifies it
            logger.warning("payment.cancel_failed", extra={"order_id": self.order_id, "error": str(exc)})
        return self._status

    def expire(self) -> bool:
        """Close out a pending session whose countdown lapsed without confirmation."""

        if not self.is_expired:
            return False
        return self._transition(PaymentStatus.EXPIRED)

    async def close(self) -> None:
        """Stop the countdown; a lookup still in flight is left to finish."""

        if self._timer and not self._timer.done():
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
        self._timer = None

    async def _lookup(self) -> PaymentStatus:
        try:
            result = await self._reconciler.lookup(self.order_id)
        except ReconciliationError as exc:
            logger.warning("payment.status_unknown", extra={"order_id": self.order_id, "error": str(exc)})
            return self._status
        return self.apply_code(result.code)

    async def _run_countdown(self) -> None:
        while self._status is PaymentStatus.PENDING:
            remaining = self._countdown.remaining()
            if remaining <= 0:
                self._mark_expired_locally()
                return
            await self._sleep(min(1.0, remaining))

    def _mark_expired_locally(self) -> None:
        if self._expired_flag:
            return
        self._expired_flag = True
        logger.info("payment.countdown_elapsed", extra={"order_id": self.order_id})

    def _transition(self, target: PaymentStatus) -> bool:
        if self._status.is_terminal:
            logger.debug(
                "payment.transition_ignored",
                extra={"order_id": self.order_id, "status": self._status.value, "target": target.value},
            )
            return False
        self._status = target
        logger.info("payment.status_changed", extra={"order_id": self.order_id, "status": target.value})
        for listener in self._listeners:
            try:
                listener(self, target)
            except Exception:
                logger.exception("payment.listener_error")
        return True
