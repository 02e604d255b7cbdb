import asyncio
from datetime import timedelta

import pytest

from jajanin.models import PaymentStatus, QRPayload, StatusLookup
from jajanin.payment.reconciliation import ReconciliationError
from jajanin.payment.session import PaymentSession

from .utils import FakeClock, FakeSleep


class FakeReconciler:
    def __init__(self, *codes: str, fail: bool = False, cancel_fails: bool = False) -> None:
        self.codes = list(codes)
        self.fail = fail
        self.cancel_fails = cancel_fails
        self.gate: asyncio.Event | None = None
        self.lookups = 0
        self.cancels: list[tuple[str, str]] = []

    async def lookup(self, order_id: str) -> StatusLookup:
        self.lookups += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise ReconciliationError("backend unreachable")
        return StatusLookup(code=self.codes.pop(0) if self.codes else "01")

    async def cancel(self, order_id: str, platform_trade_no: str) -> dict:
        self.cancels.append((order_id, platform_trade_no))
        if self.cancel_fails:
            raise ReconciliationError("backend unreachable")
        return {}


def make_session(reconciler: FakeReconciler, clock: FakeClock | None = None) -> PaymentSession:
    return PaymentSession(
        "INV-1",
        10050,
        reconciler,
        platform_trade_no="PLT-1",
        qr=QRPayload(qr_code="000201..."),
        window=timedelta(minutes=15),
        clock=clock or FakeClock(),
        sleep=FakeSleep(),
    )


@pytest.mark.asyncio
async def test_terminal_status_never_changes() -> None:
    reconciler = FakeReconciler("02", "09")
    session = make_session(reconciler)
    changes = []
    session.add_listener(lambda s, status: changes.append(status))

    assert await session.check_status() is PaymentStatus.PAID
    assert await session.check_status() is PaymentStatus.PAID
    assert session.apply_code("09") is PaymentStatus.PAID
    assert await session.cancel() is PaymentStatus.PAID
    assert session.expire() is False

    assert changes == [PaymentStatus.PAID]
    assert reconciler.cancels == []


@pytest.mark.asyncio
async def test_pending_codes_keep_session_pending() -> None:
    session = make_session(FakeReconciler("01", "", "03"))
    for _ in range(3):
        assert await session.check_status() is PaymentStatus.PENDING


@pytest.mark.asyncio
async def test_failed_code_is_terminal() -> None:
    session = make_session(FakeReconciler("09"))
    assert await session.check_status() is PaymentStatus.FAILED
    assert session.is_terminal
    assert not session.show_qr


@pytest.mark.asyncio
async def test_concurrent_checks_share_one_lookup() -> None:
    reconciler = FakeReconciler("02")
    reconciler.gate = asyncio.Event()
    session = make_session(reconciler)

    first = asyncio.create_task(session.check_status())
    second = asyncio.create_task(session.check_status())
    await asyncio.sleep(0)
    reconciler.gate.set()

    assert await first is PaymentStatus.PAID
    assert await second is PaymentStatus.PAID
    assert reconciler.lookups == 1


@pytest.mark.asyncio
async def test_lookup_failure_leaves_session_pending() -> None:
    session = make_session(FakeReconciler(fail=True))
    assert await session.check_status() is PaymentStatus.PENDING
    assert session.status is PaymentStatus.PENDING


@pytest.mark.asyncio
async def test_late_confirmation_after_countdown_still_marks_paid() -> None:
    clock = FakeClock()
    reconciler = FakeReconciler("02")
    session = make_session(reconciler, clock)

    clock.advance(16 * 60)
    assert session.is_expired
    assert not session.auto_check_allowed
    assert not session.show_qr
    assert session.status is PaymentStatus.PENDING

    assert await session.check_status() is PaymentStatus.PAID


@pytest.mark.asyncio
async def test_open_skips_automatic_check_once_expired() -> None:
    clock = FakeClock()
    reconciler = FakeReconciler("02")
    session = make_session(reconciler, clock)
    clock.advance(15 * 60)

    assert await session.open() is PaymentStatus.PENDING
    assert reconciler.lookups == 0
    await session.close()


@pytest.mark.asyncio
async def test_open_checks_once_while_window_is_running() -> None:
    reconciler = FakeReconciler("01")
    session = make_session(reconciler)

    assert await session.open() is PaymentStatus.PENDING
    assert reconciler.lookups == 1
    await session.close()


@pytest.mark.asyncio
async def test_expire_requires_elapsed_countdown() -> None:
    clock = FakeClock()
    session = make_session(FakeReconciler(), clock)

    assert session.expire() is False
    clock.advance(15 * 60 + 1)
    assert session.expire() is True
    assert session.status is PaymentStatus.EXPIRED
    assert session.apply_code("02") is PaymentStatus.EXPIRED


@pytest.mark.asyncio
async def test_cancel_is_local_even_when_backend_fails() -> None:
    reconciler = FakeReconciler("02", cancel_fails=True)
    session = make_session(reconciler)

    assert await session.cancel() is PaymentStatus.CANCELLED
    assert reconciler.cancels == [("INV-1", "PLT-1")]
    assert await session.check_status() is PaymentStatus.CANCELLED


def test_countdown_display_and_validity_window() -> None:
    clock = FakeClock()
    session = make_session(FakeReconciler(), clock)

    assert session.countdown.display() == "15:00"
    assert (session.valid_until - session.created_at) == timedelta(minutes=15)
    clock.advance(61)
    assert session.countdown.display() == "13:59"
    clock.advance(20 * 60)
    assert session.countdown.display() == "00:00"
