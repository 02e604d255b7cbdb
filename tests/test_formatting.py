from jajanin.formatting import format_rupiah, jajan_text, speech_text

from .utils import make_alert


def test_amount_is_displayed_without_product() -> None:
    alert = make_alert(amount=15000, message="")
    assert jajan_text(alert) == "Rp 15.000"
    assert speech_text(alert) == "Supporter 1 memberi 15.000 rupiah"


def test_product_replaces_amount_in_display_and_speech() -> None:
    alert = make_alert(amount=45000, product_name="Kopi", quantity=3, product_emoji="☕", message="")
    assert jajan_text(alert) == "3x ☕ Kopi"
    assert speech_text(alert) == "Supporter 1 Jajanin 3x ☕ Kopi"
    assert "45.000" not in speech_text(alert)
    assert alert.amount == 45000


def test_product_without_emoji_uses_default() -> None:
    alert = make_alert(product_name="Bakso", product_emoji=None, quantity=None)
    assert jajan_text(alert) == "1x 🍽️ Bakso"


def test_message_clause_only_when_message_present() -> None:
    assert speech_text(make_alert(amount=5000, message="Mantap!")).endswith(". Pesannya: Mantap!")
    assert "Pesannya" not in speech_text(make_alert(message="   "))


def test_format_rupiah_groups_thousands() -> None:
    assert format_rupiah(0) == "Rp 0"
    assert format_rupiah(1250000) == "Rp 1.250.000"
