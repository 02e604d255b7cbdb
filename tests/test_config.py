import pytest
from pydantic import ValidationError

from .utils import make_settings


def test_settings_defaults_and_derived_values() -> None:
    settings = make_settings(ALERT_HIDE_TRANSITION_MS=250)
    assert settings.alert_hide_transition_sec == 0.25
    assert settings.stream_reconnect_delay_sec == 3
    assert settings.payment_window_min == 15


@pytest.mark.parametrize(
    "overrides",
    [
        {"ALERT_DURATION_SEC": 2},
        {"ALERT_DURATION_SEC": 11},
        {"STREAM_RECONNECT_DELAY_SEC": 0},
        {"DEFAULT_ADMIN_FEE_PERCENT": 101},
        {"EWALLET_MIN_TOTAL": -1},
    ],
)
def test_invalid_settings_are_rejected(overrides) -> None:
    with pytest.raises(ValidationError):
        make_settings(**overrides)
