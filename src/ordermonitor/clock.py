"""Injectable time source.

The engine never calls ``datetime.now()`` directly; it asks its clock. Tests
pass a ``FixedClock`` and advance it explicitly.
"""

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Clock frozen at a given instant until advanced.

    Usage:
        clock = FixedClock(datetime(2025, 1, 1, tzinfo=UTC))
        clock.advance(90)
    """

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, seconds: float) -> None:
        self._instant = self._instant + timedelta(seconds=seconds)
