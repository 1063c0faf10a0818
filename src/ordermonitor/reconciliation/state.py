"""Engine state: the immutable published snapshot and its mutable working copy.

Every event is applied to a ``StateDraft`` copied from the current snapshot.
Only when the handler completes is the draft frozen into a new
``MonitorSnapshot`` and swapped in, so a failing handler can never leave a
partially-applied state behind and readers never observe one.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from ordermonitor.model.customer import Customer, customer_key
from ordermonitor.model.order import OrderRecord, OrderStatus
from ordermonitor.model.voucher import VoucherDetail, VoucherEvent


class CustomerSource(Enum):
    IDENTITY = "identity"  # announced on the customer topic
    ORDER = "order"  # carried by an order record with a real name and id


class LinkKind(Enum):
    EXPLICIT = "explicit"  # the order named its customer id
    INFERRED = "inferred"  # matched against a pending customer
    SESSION = "session"  # assigned by the active session's identity


@dataclass(frozen=True)
class CustomerEntry:
    customer: Customer
    identified_at: datetime
    sequence: int
    source: CustomerSource = CustomerSource.IDENTITY


@dataclass(frozen=True)
class PendingCustomer:
    customer: Customer
    seen_at: datetime
    order_id: int | None = None


@dataclass(frozen=True)
class Link:
    customer_id: int
    kind: LinkKind


@dataclass(frozen=True)
class Session:
    """The customer currently associated with in-flight orders.

    ``started_after`` is the customer sequence number at which the session
    began; only customers identified after it count as recent for the session.
    """

    customer: Customer | None = None
    pending: tuple[PendingCustomer, ...] = ()
    started_after: int = 0


@dataclass(frozen=True)
class MonitorSnapshot:
    orders: tuple[OrderRecord, ...] = ()
    customers: Mapping[int, CustomerEntry] = field(default_factory=lambda: MappingProxyType({}))
    customer_keys: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    links: Mapping[int, Link] = field(default_factory=lambda: MappingProxyType({}))
    vouchers: Mapping[int, VoucherEvent] = field(default_factory=lambda: MappingProxyType({}))
    voucher_catalogue: tuple[VoucherDetail, ...] = ()
    total_active_vouchers: int = 0
    session: Session = field(default_factory=Session)
    connected: bool = False
    customer_sequence: int = 0
    version: int = 0
    last_updated: datetime | None = None
    _orders_by_id: Mapping[int, OrderRecord] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_orders_by_id", MappingProxyType({order.id: order for order in self.orders}))

    @property
    def order_ids(self) -> frozenset[int]:
        return frozenset(self._orders_by_id)

    def order(self, order_id: int) -> OrderRecord | None:
        return self._orders_by_id.get(order_id)

    def voucher_for(self, order_id: int) -> VoucherEvent | None:
        return self.vouchers.get(order_id)

    def linked_customer_id(self, order_id: int) -> int | None:
        link = self.links.get(order_id)
        return link.customer_id if link else None

    def customer_by_id(self, customer_id: int) -> Customer | None:
        entry = self.customers.get(customer_id)
        return entry.customer if entry else None

    def customer_by_key(self, key: str) -> Customer | None:
        customer_id = self.customer_keys.get(key)
        return self.customer_by_id(customer_id) if customer_id is not None else None

    def catalogue_voucher(self, code: str) -> VoucherDetail | None:
        """Look up a catalogue voucher by its code, ignoring case."""
        wanted = code.strip().lower()
        return next((voucher for voucher in self.voucher_catalogue if voucher.code.lower() == wanted), None)

    @property
    def pending_customers(self) -> tuple[PendingCustomer, ...]:
        return self.session.pending

    def orders_with_status(self, status: OrderStatus) -> tuple[OrderRecord, ...]:
        return tuple(order for order in self.orders if order.status is status)

    @property
    def total_revenue(self) -> int:
        return sum(order.totals.grand_total for order in self.orders_with_status(OrderStatus.COMPLETED))

    @property
    def total_discount(self) -> int:
        return sum(order.totals.discount for order in self.orders)

    @property
    def unique_customer_count(self) -> int:
        return len(self.customers)


class StateDraft:
    """Mutable working copy of a snapshot."""

    def __init__(self, snapshot: MonitorSnapshot) -> None:
        self.orders: dict[int, OrderRecord] = {order.id: order for order in snapshot.orders}
        self.customers: dict[int, CustomerEntry] = dict(snapshot.customers)
        self.customer_keys: dict[str, int] = dict(snapshot.customer_keys)
        self.links: dict[int, Link] = dict(snapshot.links)
        self.vouchers: dict[int, VoucherEvent] = dict(snapshot.vouchers)
        self.voucher_catalogue = snapshot.voucher_catalogue
        self.total_active_vouchers = snapshot.total_active_vouchers
        self.pending: list[PendingCustomer] = list(snapshot.session.pending)
        self.session_customer = snapshot.session.customer
        self.session_started_after = snapshot.session.started_after
        self.connected = snapshot.connected
        self.customer_sequence = snapshot.customer_sequence

    # -- customers ---------------------------------------------------------
    def index_customer(self, customer: Customer, now: datetime, source: CustomerSource) -> None:
        """Store a customer under all of its lookup keys."""
        existing = self.customers.get(customer.id)
        if existing is not None and source is CustomerSource.ORDER:
            # An order echoing a known customer refreshes fields, not recency.
            entry = CustomerEntry(customer, existing.identified_at, existing.sequence, existing.source)
        else:
            self.customer_sequence += 1
            entry = CustomerEntry(customer, now, self.customer_sequence, source)
        self.customers[customer.id] = entry

        stale = [key for key, cid in self.customer_keys.items() if cid == customer.id]
        for key in stale:
            del self.customer_keys[key]
        for key in customer.lookup_keys():
            self.customer_keys[key] = customer.id

    def truncate_customers(self, capacity: int) -> None:
        """Keep only the ``capacity`` most recently identified customers."""
        if len(self.customers) <= capacity:
            return
        newest = sorted(self.customers.values(), key=lambda entry: entry.sequence, reverse=True)[:capacity]
        self.customers = {entry.customer.id: entry for entry in newest}
        self.customer_keys = {key: cid for key, cid in self.customer_keys.items() if cid in self.customers}

    # -- pending queue -----------------------------------------------------
    def enqueue_pending(self, pending: PendingCustomer, capacity: int) -> None:
        """Put a customer at the front of the queue, replacing any older entry for it."""
        self.pending = [entry for entry in self.pending if entry.customer.id != pending.customer.id]
        self.pending.insert(0, pending)
        del self.pending[capacity:]

    def find_pending(self, order: OrderRecord) -> PendingCustomer | None:
        """Search the queue by the order's customer id, then by its phone."""
        if order.customer_id > 0:
            for entry in self.pending:
                if entry.customer.id == order.customer_id:
                    return entry
        if order.customer_phone:
            for entry in self.pending:
                if entry.customer.phone == order.customer_phone:
                    return entry
        return None

    @property
    def latest_pending(self) -> PendingCustomer | None:
        return self.pending[0] if self.pending else None

    def end_session(self) -> None:
        self.pending.clear()
        self.session_customer = None
        self.session_started_after = self.customer_sequence

    # -- consistency -------------------------------------------------------
    def truncate_orders(self, capacity: int) -> None:
        if len(self.orders) <= capacity:
            return
        keep = sorted(self.orders, reverse=True)[:capacity]
        self.orders = {order_id: self.orders[order_id] for order_id in keep}

    def prune(self) -> None:
        """Drop voucher, link and pending entries that reference evicted orders or customers."""
        live = self.orders.keys()
        self.vouchers = {oid: voucher for oid, voucher in self.vouchers.items() if oid in live}
        self.links = {
            oid: link for oid, link in self.links.items() if oid in live and link.customer_id in self.customers
        }
        self.pending = [
            entry
            for entry in self.pending
            if entry.customer.id in self.customers and (entry.order_id is None or entry.order_id in live)
        ]

    def freeze(self, version: int, last_updated: datetime) -> MonitorSnapshot:
        return MonitorSnapshot(
            orders=tuple(self.orders[order_id] for order_id in sorted(self.orders, reverse=True)),
            customers=MappingProxyType(dict(self.customers)),
            customer_keys=MappingProxyType(dict(self.customer_keys)),
            links=MappingProxyType(dict(self.links)),
            vouchers=MappingProxyType(dict(self.vouchers)),
            voucher_catalogue=self.voucher_catalogue,
            total_active_vouchers=self.total_active_vouchers,
            session=Session(
                customer=self.session_customer,
                pending=tuple(self.pending),
                started_after=self.session_started_after,
            ),
            connected=self.connected,
            customer_sequence=self.customer_sequence,
            version=version,
            last_updated=last_updated,
        )


__all__ = [
    "CustomerEntry",
    "CustomerSource",
    "Link",
    "LinkKind",
    "MonitorSnapshot",
    "PendingCustomer",
    "Session",
    "StateDraft",
    "customer_key",
]
