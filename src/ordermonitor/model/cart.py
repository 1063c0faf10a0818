"""Cart snapshots pushed while a checkout is in progress.

A cart is not an order, but the backend attaches every cart to an order id,
so the monitor derives an order-shaped record from it.
"""

from dataclasses import dataclass
from datetime import datetime

from ordermonitor.model.customer import GUEST_NAME
from ordermonitor.model.order import LineItem, OrderRecord, OrderStatus, OrderTotals

PENDING_STATUS_TEXT = "Chờ xác nhận"


@dataclass(frozen=True)
class CartLine:
    variant_id: int = 0
    imei: str = ""
    product_name: str = ""
    color: str = ""
    ram: str = ""
    storage: str = ""
    quantity: int = 0
    unit_price: float = 0.0
    original_price: float = 0.0
    line_total: float = 0.0
    image: str | None = None

    @property
    def discount_amount(self) -> float:
        return max(0.0, (self.original_price - self.unit_price) * self.quantity)

    def to_line_item(self) -> LineItem:
        return LineItem(
            product_name=self.product_name,
            color=self.color,
            ram=self.ram,
            storage=self.storage,
            quantity=self.quantity,
            unit_price=int(self.unit_price),
            line_total=int(self.line_total),
            imei=self.imei,
            image=self.image,
        )


@dataclass(frozen=True)
class CartSnapshot:
    cart_id: str = ""
    customer_id: int = 0
    lines: tuple[CartLine, ...] = ()
    total: float = 0.0
    original_total: float = 0.0
    discount_total: float = 0.0


def derive_order(
    order_id: int,
    cart: CartSnapshot | None,
    received_at: datetime,
    *,
    code: str = "",
    customer_name: str = "",
    customer_phone: str = "",
    customer_email: str = "",
    customer_id: int = 0,
    voucher_code: str = "",
    voucher_discount: float = 0.0,
    timestamp: str = "",
) -> OrderRecord:
    """Build the order record a cart update stands for.

    The subtotal is the cart's original total when present, otherwise the sum
    of line totals. A voucher discount announced with the cart wins over the
    difference between subtotal and cart total.
    """
    items: tuple[LineItem, ...] = ()
    subtotal = grand_total = discount = 0
    if cart is not None:
        items = tuple(line.to_line_item() for line in cart.lines)
        original_total = int(cart.original_total)
        subtotal = original_total if original_total > 0 else sum(item.effective_total for item in items)
        grand_total = int(cart.total)
        voucher_amount = int(voucher_discount)
        discount = voucher_amount if voucher_amount > 0 else max(0, subtotal - grand_total)
        if not customer_id:
            customer_id = cart.customer_id

    return OrderRecord(
        id=order_id,
        code=code,
        customer_name=customer_name or GUEST_NAME,
        customer_phone=customer_phone,
        customer_email=customer_email,
        customer_id=customer_id,
        items=items,
        status=OrderStatus.PENDING,
        status_text=PENDING_STATUS_TEXT,
        voucher_code=voucher_code,
        totals=OrderTotals(subtotal=subtotal, discount=discount, grand_total=grand_total),
        created_at=timestamp or received_at.isoformat(sep=" ", timespec="seconds"),
    )
