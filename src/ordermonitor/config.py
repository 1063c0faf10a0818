"""Order monitor settings.

Values come from ``ORDER_MONITOR_*`` environment variables (or a ``.env``
file), falling back to the defaults below. Topic destinations are given as a
JSON object keyed by logical topic name and are merged over the defaults::

    ORDER_MONITOR_URL=ws://pos.local:8080/ws
    ORDER_MONITOR_TOPICS='{"cart_updated": "/topic/cart"}'

Invalid values raise ``pydantic.ValidationError`` when the settings are built.
"""

from datetime import tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ordermonitor.connection.port import Heartbeat
from ordermonitor.dispatch.topics import DEFAULT_DESTINATIONS, Topic


class MonitorSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ORDER_MONITOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str = "ws://localhost:8080/ws"
    topics: dict[Topic, str] = Field(default_factory=lambda: dict(DEFAULT_DESTINATIONS))

    heartbeat_ms: int = Field(30_000, ge=0)
    max_retries: int = Field(5, ge=0)
    retry_delay_seconds: float = Field(3.0, gt=0)

    max_orders: int = Field(100, ge=1)
    max_customers: int = Field(50, ge=1)
    max_vouchers: int = Field(50, ge=1)
    pending_capacity: int = Field(5, ge=1)
    match_window_seconds: float = Field(180.0, ge=0)
    recent_customer_scan: int = Field(3, ge=1)
    similarity_threshold: float = Field(0.7, ge=0, le=1)
    timezone: str = "Asia/Ho_Chi_Minh"

    log_dir: Path | None = None

    @field_validator("topics")
    @classmethod
    def _merge_default_topics(cls, value: dict[Topic, str]) -> dict[Topic, str]:
        merged = dict(DEFAULT_DESTINATIONS)
        merged.update(value)
        destinations = list(merged.values())
        if len(set(destinations)) != len(destinations):
            raise ValueError("each topic needs its own destination")
        return merged

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {value!r}") from exc
        return value

    @property
    def tzinfo(self) -> tzinfo:
        return ZoneInfo(self.timezone)

    @property
    def heartbeat(self) -> Heartbeat:
        return Heartbeat(outgoing_ms=self.heartbeat_ms, incoming_ms=self.heartbeat_ms)

    @classmethod
    def from_env(cls, **overrides) -> "MonitorSettings":
        """Build settings from the environment, with keyword overrides taking precedence."""
        return cls(**overrides)
