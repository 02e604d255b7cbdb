"""Application configuration models and helpers."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AnyHttpUrl, Field, computed_field
from pydantic.functional_validators import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    """Supported logging levels."""

    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"


class Settings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Backend
    api_base_url: AnyHttpUrl = Field("http://localhost:8080", alias="API_BASE_URL")
    api_prefix: str = Field("/api/v1", alias="API_PREFIX")
    http_timeout_sec: float = Field(10.0, alias="HTTP_TIMEOUT_SEC")

    # Alert stream
    stream_key: Optional[str] = Field(None, alias="STREAM_KEY")
    stream_reconnect_delay_sec: float = Field(3.0, alias="STREAM_RECONNECT_DELAY_SEC")

    # Presenter
    alert_duration_sec: int = Field(5, alias="ALERT_DURATION_SEC")
    alert_hide_transition_ms: int = Field(500, alias="ALERT_HIDE_TRANSITION_MS")
    recent_alerts_size: int = Field(5, alias="RECENT_ALERTS_SIZE")
    sounds_dir: Path = Field(Path("sounds"), alias="SOUNDS_DIR")
    tts_enabled: bool = Field(False, alias="TTS_ENABLED")
    tts_endpoint: Optional[AnyHttpUrl] = Field(None, alias="TTS_ENDPOINT")

    # Checkout
    payment_window_min: int = Field(15, alias="PAYMENT_WINDOW_MIN")
    ewallet_min_total: int = Field(10_000, alias="EWALLET_MIN_TOTAL")
    default_admin_fee_percent: float = Field(0.5, alias="DEFAULT_ADMIN_FEE_PERCENT")
    pending_payment_path: Path = Field(
        Path(".jajanin/pending_payment.json"), alias="PENDING_PAYMENT_PATH"
    )

    # Control API
    api_host: str = Field("127.0.0.1", alias="API_HOST")
    api_port: int = Field(8090, alias="API_PORT")

    # Misc
    log_level: LogLevel = Field(LogLevel.INFO, alias="LOG_LEVEL")

    @computed_field(return_type=float)
    def alert_hide_transition_sec(self) -> float:
        return self.alert_hide_transition_ms / 1000

    @field_validator(
        "http_timeout_sec",
        "stream_reconnect_delay_sec",
        "alert_hide_transition_ms",
        "recent_alerts_size",
        "payment_window_min",
        "ewallet_min_total",
        "api_port",
    )
    @classmethod
    def _ensure_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Value must be positive")
        return value

    @field_validator("alert_duration_sec")
    @classmethod
    def _ensure_duration_range(cls, value: int) -> int:
        if not 3 <= value <= 10:
            raise ValueError("Alert duration must be between 3 and 10 seconds")
        return value

    @field_validator("default_admin_fee_percent")
    @classmethod
    def _ensure_percentage(cls, value: float) -> float:
        if not 0 <= value <= 100:
            raise ValueError("Admin fee percent must be between 0 and 100")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
