"""Vouchers: applied/removed events for an order, and the voucher catalogue."""

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum


class VoucherAction(Enum):
    APPLIED = "applied"
    REMOVED = "removed"


# Wire action names as sent by the backend
_WIRE_ACTIONS = {
    "VOUCHER_APPLIED": VoucherAction.APPLIED,
    "VOUCHER_USED": VoucherAction.APPLIED,
    "VOUCHER_REMOVED": VoucherAction.REMOVED,
    "VOUCHER_CANCELLED": VoucherAction.REMOVED,
}

PERCENT_KINDS = frozenset({"phần trăm", "percent"})
FIXED_KINDS = frozenset({"tiền mặt", "fixed", "cash"})


def voucher_action_from_wire(action: str) -> VoucherAction | None:
    return _WIRE_ACTIONS.get(action.strip().upper())


@dataclass(frozen=True)
class VoucherEvent:
    action: VoucherAction
    order_id: int
    voucher_id: int = 0
    code: str = ""
    name: str = ""
    discount_value: float = 0.0
    remaining_uses: int = 0
    active: bool = False
    timestamp: str = ""


def _day_start(text: str, now: datetime) -> datetime | None:
    """Midnight of the date part of ``text`` in ``now``'s timezone, or ``None``."""
    try:
        day = date.fromisoformat(text.split("T", 1)[0].strip())
    except ValueError:
        return None
    return datetime.combine(day, time.min, tzinfo=now.tzinfo)


@dataclass(frozen=True)
class VoucherDetail:
    """A voucher from the catalogue, with its validity window and limits.

    Only the date part of ``starts_on`` and ``ends_on`` is significant. A
    voucher counts as expired from the first moment of its end date, and as
    started from the first moment of its start date. Unreadable dates never
    block a voucher.
    """

    id: int
    code: str = ""
    name: str = ""
    kind: str = ""
    percent: float | None = None
    max_discount: float = 0.0
    min_order_total: float = 0.0
    used: int = 0
    remaining: int = 0
    starts_on: str = ""
    ends_on: str = ""
    enabled: bool = False

    def is_expired(self, now: datetime) -> bool:
        if not self.ends_on:
            return False
        end = _day_start(self.ends_on, now)
        return end is not None and end < now

    def is_started(self, now: datetime) -> bool:
        if not self.starts_on:
            return True
        start = _day_start(self.starts_on, now)
        return start is None or start < now

    def is_active(self, now: datetime) -> bool:
        return self.enabled and not self.is_expired(now) and self.is_started(now) and self.remaining > 0

    def status_text(self, now: datetime) -> str:
        if not self.enabled:
            return "Tạm dừng"
        if self.is_expired(now):
            return "Hết hạn"
        if not self.is_started(now):
            return "Chưa bắt đầu"
        if self.remaining <= 0:
            return "Hết lượt"
        return "Đang hoạt động"

    def discount_for(self, order_total: float, now: datetime) -> float:
        """The discount this voucher grants on ``order_total``; 0 when it does not apply."""
        if not self.is_active(now) or order_total < self.min_order_total:
            return 0.0
        kind = self.kind.strip().lower()
        if kind in PERCENT_KINDS:
            return min(order_total * (self.percent or 0.0) / 100, self.max_discount)
        if kind in FIXED_KINDS:
            return min(self.max_discount, order_total)
        return 0.0
