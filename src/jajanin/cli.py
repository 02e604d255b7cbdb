"""Command-line client for the overlay control API and the checkout flow."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Any, Dict, Optional

import httpx

from .config import Settings, get_settings
from .formatting import format_rupiah
from .models import DonationRequest, PaymentMethod
from .payment.checkout import Checkout, CheckoutError, CheckoutValidationError
from .payment.reconciliation import ReconciliationClient, ReconciliationError, to_status
from .rest import JajaninRESTClient

DEFAULT_HOST = os.environ.get("JAJANIN_HOST", "127.0.0.1")
DEFAULT_PORT = int(os.environ.get("JAJANIN_PORT", "8090"))
DEFAULT_TIMEOUT = float(os.environ.get("JAJANIN_TIMEOUT", "10.0"))

CONTROL_COMMANDS = {"status", "unlock-audio", "test-alert", "clear-queue", "stop"}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command in CONTROL_COMMANDS:
        base_url = _resolve_base_url(args.host, args.port)
        return _run_control(args.command, base_url, args.timeout)

    settings = _backend_settings(args.api_base)
    if args.command == "donate":
        try:
            request = DonationRequest(
                creator_username=args.creator,
                product_id=args.product_id,
                buyer_name=args.name,
                buyer_email=args.email,
                amount=args.amount,
                quantity=args.quantity,
                message=args.message.strip(),
                payment_method=args.method,
                redirect_url=args.redirect_url,
            )
        except ValueError as exc:
            parser.error(str(exc))
        return asyncio.run(_donate(settings, request))
    if args.command == "check":
        return asyncio.run(_check(settings, args.order_id))
    if args.command == "cancel":
        return asyncio.run(_cancel(settings, args.order_id, args.platform_trade_no))
    if args.command == "resume":
        return asyncio.run(_resume(settings))

    parser.error("Unknown command")
    return 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jajanin",
        description="Control a running Jajanin overlay and drive checkout payments.",
    )
    parser.add_argument("--host", default=DEFAULT_HOST, help="Control API host (default: %(default)s)")
    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help="Control API port (default: %(default)s)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="HTTP timeout in seconds (default: %(default)s)",
    )
    parser.add_argument("--api-base", help="Backend base URL (default: API_BASE_URL)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Print overlay connection and queue state")
    subparsers.add_parser("unlock-audio", help="Perform the one-time audio unlock")
    subparsers.add_parser("test-alert", help="Ask the backend to send a test alert")
    subparsers.add_parser("clear-queue", help="Drop alerts waiting behind the current one")
    subparsers.add_parser("stop", help="Request graceful shutdown")

    donate_parser = subparsers.add_parser("donate", help="Create a checkout payment")
    donate_parser.add_argument("creator", help="Creator username")
    donate_parser.add_argument("amount", type=int, help="Subtotal in rupiah, before the admin fee")
    donate_parser.add_argument("--name", required=True, help="Supporter name")
    donate_parser.add_argument("--email", required=True, help="Supporter email")
    donate_parser.add_argument(
        "--method",
        choices=[method.value for method in PaymentMethod],
        default=PaymentMethod.QRIS.value,
        help="Payment method (default: %(default)s)",
    )
    donate_parser.add_argument("--quantity", type=int, default=1)
    donate_parser.add_argument("--message", default="", help="Supporter message")
    donate_parser.add_argument("--product-id")
    donate_parser.add_argument("--redirect-url", help="Return URL after an e-wallet payment")

    check_parser = subparsers.add_parser("check", help="Look up a payment status")
    check_parser.add_argument("order_id")

    cancel_parser = subparsers.add_parser("cancel", help="Cancel a pending payment")
    cancel_parser.add_argument("order_id")
    cancel_parser.add_argument("platform_trade_no")

    subparsers.add_parser("resume", help="Resume the payment saved before an e-wallet redirect")

    return parser


def _resolve_base_url(host: str, port: int) -> str:
    if host.startswith("http://") or host.startswith("https://"):
        return host.rstrip("/")
    return f"http://{host}:{port}"


def _backend_settings(api_base: Optional[str]) -> Settings:
    settings = get_settings()
    if api_base:
        return settings.model_copy(update={"api_base_url": api_base})
    return settings


def _run_control(command: str, base_url: str, timeout: float) -> int:
    if command == "status":
        return _show_status(base_url, timeout)
    routes = {
        "unlock-audio": ("/overlay/audio/unlock", "Audio unlocked."),
        "test-alert": ("/overlay/test", "Test alert requested."),
        "clear-queue": ("/queue/clear", "Queue cleared."),
        "stop": ("/control/shutdown", "Shutdown requested."),
    }
    path, message = routes[command]
    return _post_json(f"{base_url}{path}", {}, timeout, success_message=message)


def _post_json(url: str, payload: Dict[str, Any], timeout: float, success_message: str) -> int:
    try:
        response = httpx.post(url, json=payload, timeout=timeout)
        response.raise_for_status()
    except httpx.RequestError as exc:
        print(f"Request failed: {exc}", file=sys.stderr)
        return 1
    except httpx.HTTPStatusError as exc:
        detail = exc.response.text
        print(f"Server responded with error {exc.response.status_code}: {detail}", file=sys.stderr)
        return 1

    print(success_message)
    body = response.json()
    if isinstance(body, dict) and "client_count" in body:
        print(f"Connected clients: {body['client_count']}")
    return 0


def _show_status(base_url: str, timeout: float) -> int:
    try:
        response = httpx.get(f"{base_url}/overlay", timeout=timeout)
        response.raise_for_status()
    except httpx.RequestError as exc:
        print(f"Request failed: {exc}", file=sys.stderr)
        return 1
    except httpx.HTTPStatusError as exc:
        print(f"Server responded with error {exc.response.status_code}: {exc.response.text}", file=sys.stderr)
        return 1

    payload = response.json()
    if not isinstance(payload, dict):
        print("Unexpected response payload", file=sys.stderr)
        return 1

    print(f"Connection: {payload.get('connection')}")
    print(f"Presentation: {payload.get('presentation')}")
    print(f"TTS ready: {payload.get('tts_ready')}")
    current = payload.get("current")
    if current:
        print(f"Showing: {current.get('display')} dari {current.get('supporter_name')}")
    print(f"Queue size: {payload.get('queue_size')}")

    recent = payload.get("recent", [])
    if recent:
        print("Recent:")
        for idx, alert in enumerate(recent, start=1):
            print(f"  {idx}. {alert.get('supporter_name')} - {alert.get('display')}")
            if alert.get("message"):
                print(f"     {alert['message']}")
    else:
        print("Recent: empty")
    return 0


async def _donate(settings: Settings, request: DonationRequest) -> int:
    rest = JajaninRESTClient(settings)
    checkout = Checkout(rest, settings)
    try:
        await checkout.prepare()
        totals = checkout.quote(request.amount)
        print(f"Subtotal: {format_rupiah(totals.subtotal)}")
        print(f"Admin fee ({totals.admin_fee_percent}%): {format_rupiah(totals.admin_fee)}")
        print(f"Total: {format_rupiah(totals.total)}")
        try:
            session = await checkout.create(request)
        except CheckoutValidationError as exc:
            print(str(exc), file=sys.stderr)
            return 1
        except CheckoutError as exc:
            print(f"Checkout failed: {exc}", file=sys.stderr)
            return 1

        print(f"Order: {session.order_id}")
        if session.redirect is not None:
            print(f"Open {session.redirect.payment_type} to pay: {session.redirect.payment_url}")
            print("Run `jajanin resume` after paying.")
            return 0

        status = await session.open()
        if session.qr is not None:
            print(f"QRIS: {session.qr.qris_url or session.qr.qr_code}")
        print(f"Pay within {session.countdown.display()} (until {session.valid_until:%H:%M:%S} UTC)")
        print(f"Status: {status.value}")
        await session.close()
        return 0
    finally:
        await rest.aclose()


async def _check(settings: Settings, order_id: str) -> int:
    rest = JajaninRESTClient(settings)
    try:
        result = await ReconciliationClient(rest).lookup(order_id)
    except ReconciliationError as exc:
        print(f"Status unknown, still pending: {exc}", file=sys.stderr)
        return 1
    finally:
        await rest.aclose()
    print(f"Status: {to_status(result.code).value} (code {result.code or '-'})")
    return 0


async def _cancel(settings: Settings, order_id: str, platform_trade_no: str) -> int:
    rest = JajaninRESTClient(settings)
    try:
        await ReconciliationClient(rest).cancel(order_id, platform_trade_no)
    except ReconciliationError as exc:
        print(f"Cancel request failed: {exc}", file=sys.stderr)
        return 1
    finally:
        await rest.aclose()
    print("Payment cancelled.")
    return 0


async def _resume(settings: Settings) -> int:
    rest = JajaninRESTClient(settings)
    checkout = Checkout(rest, settings)
    try:
        session = await checkout.resume()
    except CheckoutError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    finally:
        await rest.aclose()
    if session is None:
        print("No pending payment.")
        return 0
    print(f"Order {session.order_id}: {session.status.value} ({format_rupiah(session.amount)})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
