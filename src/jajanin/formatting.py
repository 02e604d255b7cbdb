"""Display and speech text for donation alerts."""

from __future__ import annotations

from .models import AlertEvent

DEFAULT_PRODUCT_EMOJI = "🍽️"


def format_number(amount: int) -> str:
    """Group thousands the Indonesian way: ``15000`` -> ``15.000``."""

    return f"{amount:,}".replace(",", ".")


def format_rupiah(amount: int) -> str:
    return f"Rp {format_number(amount)}"


def jajan_text(alert: AlertEvent) -> str:
    """Headline of the alert box: the purchased item, or the amount."""

    if alert.product_name:
        emoji = alert.product_emoji or DEFAULT_PRODUCT_EMOJI
        return f"{alert.quantity}x {emoji} {alert.product_name}"
    return format_rupiah(alert.amount)


def speech_text(alert: AlertEvent) -> str:
    """Sentence announced by text-to-speech for an alert."""

    if alert.product_name:
        text = f"{alert.supporter_name} Jajanin {jajan_text(alert)}"
    else:
        text = f"{alert.supporter_name} memberi {format_number(alert.amount)} rupiah"

    message = alert.message.strip()
    if message:
        text += f". Pesannya: {message}"
    return text
