"""Streaming reconciliation engine.

Turns the independent event streams (orders, carts, customer identities,
vouchers, payment and cancellation notices) into one bounded, consistent
``MonitorSnapshot``.

Every operation is infallible from the caller's point of view: the event is
applied to a working copy, and the copy is committed only if the handler
completes. Invalid events are logged and leave the published state untouched.
"""

from datetime import UTC, datetime, timedelta, tzinfo
from typing import Callable, Iterable

import structlog

from ordermonitor.clock import Clock, SystemClock
from ordermonitor.errors import DataError
from ordermonitor.model.coercion import parse_timestamp
from ordermonitor.model.customer import Customer
from ordermonitor.model.events import (
    CartUpdated,
    ConnectionChanged,
    CustomerIdentified,
    CustomerVouchersUpdated,
    MonitorEvent,
    OrderBatchReceived,
    OrderCancelled,
    PaymentSucceeded,
    VoucherCatalogueReceived,
    VoucherChanged,
)
from ordermonitor.model.order import OrderRecord
from ordermonitor.model.voucher import VoucherAction, VoucherDetail, VoucherEvent
from ordermonitor.reconciliation.matching import CustomerMatcher, MatchCandidates
from ordermonitor.reconciliation.state import (
    CustomerSource,
    Link,
    LinkKind,
    MonitorSnapshot,
    PendingCustomer,
    StateDraft,
)

logger = structlog.get_logger(__name__)

SnapshotListener = Callable[[MonitorSnapshot], None]


def on(event_type: type):
    """Mark an engine method as the handler for ``event_type``."""

    def decorator(func):
        func._handles = event_type
        return func

    return decorator


class ReconciliationEngine:
    def __init__(
        self,
        *,
        max_orders: int = 100,
        max_customers: int = 50,
        max_vouchers: int = 50,
        pending_capacity: int = 5,
        match_window: timedelta = timedelta(seconds=180),
        recent_customer_scan: int = 3,
        similarity_threshold: float = 0.7,
        timezone: tzinfo = UTC,
        matcher: CustomerMatcher | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.max_orders = max_orders
        self.max_customers = max_customers
        self.max_vouchers = max_vouchers
        self.pending_capacity = pending_capacity
        self.match_window = match_window
        self.recent_customer_scan = recent_customer_scan
        self.similarity_threshold = similarity_threshold
        self.timezone = timezone
        self.matcher = matcher or CustomerMatcher()
        self.clock = clock or SystemClock()
        self._state = MonitorSnapshot()
        self._listeners: list[SnapshotListener] = []

    @classmethod
    def from_settings(cls, settings, clock: Clock | None = None) -> "ReconciliationEngine":
        return cls(
            max_orders=settings.max_orders,
            max_customers=settings.max_customers,
            max_vouchers=settings.max_vouchers,
            pending_capacity=settings.pending_capacity,
            match_window=timedelta(seconds=settings.match_window_seconds),
            recent_customer_scan=settings.recent_customer_scan,
            similarity_threshold=settings.similarity_threshold,
            timezone=settings.tzinfo,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------
    @property
    def snapshot(self) -> MonitorSnapshot:
        return self._state

    def voucher_for(self, order_id: int) -> VoucherEvent | None:
        return self._state.voucher_for(order_id)

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener called with every committed snapshot.

        Returns a callable that unregisters the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def resolve_customer_for_order(self, order: OrderRecord | int) -> Customer | None:
        state = self._state
        if isinstance(order, int):
            order = state.order(order)
            if order is None:
                return None
        try:
            now = self.clock.now()
            candidates = MatchCandidates(
                customers=state.customers,
                customer_keys=state.customer_keys,
                links=state.links,
                session_started_after=state.session.started_after,
                order_time=parse_timestamp(order.created_at, default=now, tz=self.timezone),
                window=self.match_window,
                recent_limit=self.recent_customer_scan,
                similarity_threshold=self.similarity_threshold,
            )
            customer_id = self.matcher.match(order, candidates)
        except Exception:
            logger.exception("Customer resolution failed", order_id=order.id)
            return None
        return state.customer_by_id(customer_id) if customer_id else None

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------
    def apply(self, event: MonitorEvent) -> bool:
        """Apply one event. Returns whether a new snapshot was committed."""
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.warning("Unhandled event type dropped", event_type=type(event).__name__)
            return False
        return self._commit(lambda draft: handler(self, draft, event), type(event).__name__)

    def apply_order_batch(self, records: Iterable[OrderRecord], replace: bool = False) -> bool:
        return self.apply(OrderBatchReceived(orders=tuple(records), replace=replace))

    def apply_customer_event(self, customer: Customer) -> bool:
        return self.apply(CustomerIdentified(customer=customer))

    def apply_voucher_event(self, voucher: VoucherEvent) -> bool:
        return self.apply(VoucherChanged(voucher=voucher))

    def apply_voucher_catalogue(self, vouchers: Iterable[VoucherDetail]) -> bool:
        return self.apply(VoucherCatalogueReceived(vouchers=tuple(vouchers)))

    def apply_payment_success(self, order_id: int) -> bool:
        return self.apply(PaymentSucceeded(order_id=order_id))

    def apply_order_cancelled(self, order_id: int) -> bool:
        return self.apply(OrderCancelled(order_id=order_id))

    def apply_cart_update(self, event: CartUpdated) -> bool:
        return self.apply(event)

    def apply_connection_change(self, connected: bool) -> bool:
        if self._state.connected == connected:
            return False
        return self.apply(ConnectionChanged(connected=connected))

    def clear_orders(self) -> bool:
        """Drop every order along with its voucher and link. The connection flag is untouched."""
        return self._commit(self._clear_orders, "clear_orders")

    def clear_pending(self) -> bool:
        return self._commit(lambda draft: draft.pending.clear(), "clear_pending")

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------
    def _commit(self, mutate: Callable[[StateDraft], None], operation: str) -> bool:
        draft = StateDraft(self._state)
        try:
            mutate(draft)
        except DataError as exc:
            logger.warning("Event ignored", operation=operation, reason=str(exc))
            return False
        except Exception:
            logger.exception("Event handler failed, state left unchanged", operation=operation)
            return False

        self._state = draft.freeze(version=self._state.version + 1, last_updated=self.clock.now())
        self._publish(self._state)
        return True

    def _publish(self, snapshot: MonitorSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener failed", listener=getattr(listener, "__name__", repr(listener)))

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    @on(OrderBatchReceived)
    def _on_order_batch(self, draft: StateDraft, event: OrderBatchReceived) -> None:
        now = self.clock.now()
        records: dict[int, OrderRecord] = {}
        for record in event.orders:
            if record.id <= 0:
                logger.warning("Order with non-positive id ignored", order_id=record.id)
                continue
            records[record.id] = record

        if event.orders and not records:
            raise DataError("order batch contains no valid order ids")

        # Trusted records feed the pending queue, so they go first and in id
        # order. Records without customer info only see the queue as it was
        # before the batch. The outcome then depends only on the batch contents.
        fallback = draft.latest_pending
        ordered = sorted(records.values(), key=lambda record: (not record.has_trusted_customer(), record.id))
        incoming = {
            record.id: self._reconcile_customer(draft, record, draft.orders.get(record.id), fallback, now)
            for record in ordered
        }

        if event.replace:
            draft.orders = incoming
        else:
            draft.orders.update(incoming)
        draft.truncate_orders(self.max_orders)
        draft.truncate_customers(self.max_customers)
        draft.prune()

    def _reconcile_customer(
        self,
        draft: StateDraft,
        record: OrderRecord,
        previous: OrderRecord | None,
        fallback: PendingCustomer | None,
        now: datetime,
    ) -> OrderRecord:
        if record.has_trusted_customer():
            customer = record.customer()
            draft.enqueue_pending(PendingCustomer(customer, now, order_id=record.id), self.pending_capacity)
            draft.index_customer(customer, now, CustomerSource.ORDER)
            draft.links[record.id] = Link(customer.id, LinkKind.EXPLICIT)
            return record

        if not record.has_customer_info():
            # A stored attribution, guest included, outranks the newest pending customer.
            if previous is not None:
                return record.with_customer_of(previous)
            pending = fallback
            if pending is None:
                return record.as_guest()
        else:
            pending = draft.find_pending(record)

        if pending is not None:
            draft.links[record.id] = Link(pending.customer.id, LinkKind.INFERRED)
            return record.with_customer(pending.customer)

        # The record names a customer of its own that we cannot confirm.
        draft.links.pop(record.id, None)
        return record

    @on(CartUpdated)
    def _on_cart_updated(self, draft: StateDraft, event: CartUpdated) -> None:
        self._on_order_batch(draft, OrderBatchReceived(orders=(event.order,)))
        customer = event.customer
        if customer is not None and customer.is_valid_for_display() and not customer.is_guest_sentinel():
            self._on_customer_identified(draft, CustomerIdentified(customer=customer))
        if event.voucher is not None:
            self._on_voucher_changed(draft, VoucherChanged(voucher=event.voucher))

    @on(CustomerIdentified)
    def _on_customer_identified(self, draft: StateDraft, event: CustomerIdentified) -> None:
        customer = event.customer
        if customer.is_guest_sentinel():
            logger.info("Session reset by guest identity", customer_id=customer.id)
            draft.orders = {order_id: order.as_guest() for order_id, order in draft.orders.items()}
            draft.links.clear()
            draft.end_session()
            return

        if not customer.is_valid_for_display():
            raise DataError(f"customer {customer.id} has neither name nor phone")

        now = self.clock.now()
        draft.index_customer(customer, now, CustomerSource.IDENTITY)
        draft.orders = {order_id: order.with_customer(customer) for order_id, order in draft.orders.items()}
        draft.links = {order_id: Link(customer.id, LinkKind.SESSION) for order_id in draft.orders}
        draft.enqueue_pending(PendingCustomer(customer, now), self.pending_capacity)
        draft.session_customer = customer
        draft.truncate_customers(self.max_customers)
        draft.prune()
        logger.info("Customer identified", customer_id=customer.id, orders=len(draft.orders))

    @on(VoucherChanged)
    def _on_voucher_changed(self, draft: StateDraft, event: VoucherChanged) -> None:
        voucher = event.voucher
        if voucher.order_id <= 0:
            raise DataError(f"voucher event for non-positive order id {voucher.order_id}")
        if voucher.action is VoucherAction.APPLIED:
            draft.vouchers[voucher.order_id] = voucher
        else:
            draft.vouchers.pop(voucher.order_id, None)
        if voucher.order_id not in draft.orders:
            logger.debug("Voucher for unknown order discarded", order_id=voucher.order_id)
        draft.prune()

    @on(VoucherCatalogueReceived)
    def _on_voucher_catalogue(self, draft: StateDraft, event: VoucherCatalogueReceived) -> None:
        now = self.clock.now().astimezone(self.timezone)
        active = sum(1 for voucher in event.vouchers if voucher.is_active(now))
        draft.voucher_catalogue = event.vouchers[: self.max_vouchers]
        draft.total_active_vouchers = active
        logger.info("Voucher catalogue updated", total=len(event.vouchers), active=active)

    @on(CustomerVouchersUpdated)
    def _on_customer_vouchers(self, draft: StateDraft, event: CustomerVouchersUpdated) -> None:
        customer = event.customer
        if customer is not None and customer.is_valid_for_display() and not customer.is_guest_sentinel():
            self._on_customer_identified(draft, CustomerIdentified(customer=customer))
        elif customer is not None:
            logger.debug("Customer on voucher update skipped", customer_id=customer.id)
        logger.info("Customer vouchers updated", count=event.count)

    @on(PaymentSucceeded)
    def _on_payment_succeeded(self, draft: StateDraft, event: PaymentSucceeded) -> None:
        if event.order_id <= 0:
            raise DataError(f"payment notice for non-positive order id {event.order_id}")
        draft.orders.pop(event.order_id, None)
        draft.vouchers.pop(event.order_id, None)
        draft.links.pop(event.order_id, None)
        draft.end_session()
        logger.info("Order paid", order_id=event.order_id)

    @on(OrderCancelled)
    def _on_order_cancelled(self, draft: StateDraft, event: OrderCancelled) -> None:
        if event.order_id <= 0:
            raise DataError(f"cancel notice for non-positive order id {event.order_id}")
        link = draft.links.pop(event.order_id, None)
        draft.orders.pop(event.order_id, None)
        draft.vouchers.pop(event.order_id, None)
        draft.pending = [
            entry
            for entry in draft.pending
            if entry.order_id != event.order_id and (link is None or entry.customer.id != link.customer_id)
        ]
        draft.prune()
        logger.info("Order cancelled", order_id=event.order_id, reason=event.reason)

    @on(ConnectionChanged)
    def _on_connection_changed(self, draft: StateDraft, event: ConnectionChanged) -> None:
        draft.connected = event.connected

    def _clear_orders(self, draft: StateDraft) -> None:
        draft.orders.clear()
        draft.prune()


ReconciliationEngine._handlers = {
    func._handles: func for func in vars(ReconciliationEngine).values() if hasattr(func, "_handles")
}
