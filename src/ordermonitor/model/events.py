"""Typed events produced by the dispatcher and consumed by the engine.

Each successfully decoded message becomes exactly one of these.
"""

from dataclasses import dataclass

from ordermonitor.model.cart import CartSnapshot
from ordermonitor.model.customer import Customer
from ordermonitor.model.order import OrderRecord
from ordermonitor.model.voucher import VoucherDetail, VoucherEvent


@dataclass(frozen=True)
class OrderBatchReceived:
    """One or more order records. ``replace`` marks a full-snapshot push."""

    orders: tuple[OrderRecord, ...]
    replace: bool = False


@dataclass(frozen=True)
class CartUpdated:
    """A cart change, already derived into an order-shaped record."""

    order: OrderRecord
    cart: CartSnapshot | None = None
    customer: Customer | None = None
    voucher: VoucherEvent | None = None


@dataclass(frozen=True)
class CustomerIdentified:
    customer: Customer
    action: str = ""
    timestamp: str = ""


@dataclass(frozen=True)
class VoucherChanged:
    voucher: VoucherEvent


@dataclass(frozen=True)
class VoucherCatalogueReceived:
    """The full voucher catalogue as pushed by the backend."""

    vouchers: tuple[VoucherDetail, ...]


@dataclass(frozen=True)
class CustomerVouchersUpdated:
    """A customer's voucher count changed; may carry the customer itself."""

    customer: Customer | None = None
    count: int = 0


@dataclass(frozen=True)
class PaymentSucceeded:
    order_id: int


@dataclass(frozen=True)
class OrderCancelled:
    order_id: int
    reason: str = ""


@dataclass(frozen=True)
class ConnectionChanged:
    connected: bool


MonitorEvent = (
    OrderBatchReceived
    | CartUpdated
    | CustomerIdentified
    | VoucherChanged
    | VoucherCatalogueReceived
    | CustomerVouchersUpdated
    | PaymentSucceeded
    | OrderCancelled
    | ConnectionChanged
)
