"""Order records as tracked by the monitor.

Orders are immutable values; every update produces a new record via
``dataclasses.replace``. Monetary amounts are integer minor units, as sent by
the backend.
"""

from dataclasses import dataclass, field, replace
from enum import IntEnum

from ordermonitor.model.customer import GUEST_NAME, Customer, is_placeholder_name


class OrderStatus(IntEnum):
    PENDING = 0
    AWAITING_SHIPMENT = 1
    SHIPPING = 2
    COMPLETED = 3
    CANCELLED = 4
    RETURNED = 5
    REFUNDED = 6

    @classmethod
    def from_code(cls, code: int) -> "OrderStatus":
        """Map a backend status code, treating unknown codes as pending."""
        try:
            return cls(code)
        except ValueError:
            return cls.PENDING


def default_order_code(order_id: int) -> str:
    return f"HD{order_id:06d}"


@dataclass(frozen=True)
class LineItem:
    product_name: str = ""
    color: str = ""
    ram: str = ""
    storage: str = ""
    quantity: int = 0
    unit_price: int = 0
    line_total: int = 0
    imei: str = ""
    image: str | None = None

    @property
    def effective_total(self) -> int:
        """Line total, or unit price times quantity when the backend sent none."""
        return self.line_total if self.line_total > 0 else self.unit_price * self.quantity


@dataclass(frozen=True)
class PaymentLine:
    method: str = ""
    amount: int = 0
    note: str = ""


@dataclass(frozen=True)
class OrderTotals:
    """Order amounts. The grand total never goes below zero."""

    subtotal: int = 0
    shipping_fee: int = 0
    discount: int = 0
    grand_total: int = 0

    def __post_init__(self):
        if self.grand_total < 0:
            object.__setattr__(self, "grand_total", 0)


@dataclass(frozen=True)
class OrderRecord:
    id: int
    code: str = ""
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    customer_address: str = ""
    customer_id: int = 0
    items: tuple[LineItem, ...] = ()
    payments: tuple[PaymentLine, ...] = ()
    status: OrderStatus = OrderStatus.PENDING
    status_text: str = ""
    voucher_code: str = ""
    totals: OrderTotals = field(default_factory=OrderTotals)
    created_at: str = ""
    paid_at: str = ""
    note: str = ""
    order_type: str = ""
    staff_name: str = ""

    def __post_init__(self):
        if not self.code and self.id > 0:
            object.__setattr__(self, "code", default_order_code(self.id))

    @property
    def has_placeholder_name(self) -> bool:
        return not self.customer_name or is_placeholder_name(self.customer_name)

    def has_customer_info(self) -> bool:
        """Whether the record carries any customer identity of its own."""
        return (
            not self.has_placeholder_name
            or bool(self.customer_phone)
            or bool(self.customer_email)
            or self.customer_id > 0
        )

    def has_trusted_customer(self) -> bool:
        """A real name together with a concrete customer id."""
        return self.customer_id > 0 and not self.has_placeholder_name

    def looks_like_guest(self) -> bool:
        return self.has_placeholder_name and not self.customer_phone and not self.customer_email

    def customer(self) -> Customer:
        return Customer(
            id=self.customer_id,
            name=self.customer_name,
            phone=self.customer_phone or None,
            email=self.customer_email or None,
        )

    def with_customer(self, customer: Customer) -> "OrderRecord":
        return replace(
            self,
            customer_id=customer.id,
            customer_name=customer.name or GUEST_NAME,
            customer_phone=customer.phone or "",
            customer_email=customer.email or "",
        )

    def with_customer_of(self, other: "OrderRecord") -> "OrderRecord":
        """Copy the customer display fields of another record onto this one."""
        return replace(
            self,
            customer_id=other.customer_id,
            customer_name=other.customer_name,
            customer_phone=other.customer_phone,
            customer_email=other.customer_email,
        )

    def as_guest(self) -> "OrderRecord":
        return replace(
            self,
            customer_id=0,
            customer_name=GUEST_NAME,
            customer_phone="",
            customer_email="",
        )

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)
