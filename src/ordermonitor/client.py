"""Order monitor facade.

Wires the connection manager, message dispatcher and reconciliation engine
together and exposes the commands a projection needs::

    monitor = OrderMonitor(MonitorSettings.from_env())
    monitor.subscribe(render)
    monitor.start()  # inside a running asyncio loop
"""

import asyncio
from typing import Callable

import structlog

from ordermonitor.clock import Clock, SystemClock
from ordermonitor.config import MonitorSettings
from ordermonitor.connection import get_transport
from ordermonitor.connection.manager import ConnectionManager
from ordermonitor.connection.port import Transport
from ordermonitor.connection.scheduler import Scheduler
from ordermonitor.dispatch.dispatcher import MessageDispatcher
from ordermonitor.model.customer import Customer
from ordermonitor.model.order import OrderRecord
from ordermonitor.model.voucher import VoucherEvent
from ordermonitor.reconciliation.engine import ReconciliationEngine, SnapshotListener
from ordermonitor.reconciliation.state import MonitorSnapshot

logger = structlog.get_logger(__name__)


class OrderMonitor:
    def __init__(
        self,
        settings: MonitorSettings | None = None,
        *,
        transport: Transport | None = None,
        scheduler: Scheduler | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.settings = settings or MonitorSettings.from_env()
        self.clock = clock or SystemClock()
        self.engine = ReconciliationEngine.from_settings(self.settings, clock=self.clock)
        self.dispatcher = MessageDispatcher(self.engine.apply, self.settings.topics, clock=self.clock)
        self.transport = transport or get_transport()
        self.network_available = True
        self._scheduler = scheduler
        self._manager: ConnectionManager | None = None

    @property
    def manager(self) -> ConnectionManager:
        """The connection manager, built on first use.

        Without an explicit scheduler the running asyncio loop is used, so
        the first use must happen inside it.
        """
        if self._manager is None:
            scheduler = self._scheduler or asyncio.get_running_loop()
            self._manager = ConnectionManager(
                transport=self.transport,
                scheduler=scheduler,
                url=self.settings.url,
                destinations=self.settings.topics.values(),
                on_message=self.dispatcher.dispatch,
                on_connection_change=self.engine.apply_connection_change,
                heartbeat=self.settings.heartbeat,
                max_retries=self.settings.max_retries,
                retry_delay=self.settings.retry_delay_seconds,
            )
        return self._manager

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        if not self.network_available:
            logger.info("Network unavailable, connection deferred", url=self.settings.url)
            return
        self.manager.connect()

    def stop(self) -> None:
        if self._manager is not None:
            self._manager.disconnect()

    def reconnect(self) -> None:
        """Drop the connection and pending customers, then connect again."""
        logger.info("Reconnect requested", url=self.settings.url)
        self.manager.disconnect()
        self.engine.clear_pending()
        if self.network_available:
            self.manager.connect()

    def set_network_available(self, available: bool) -> None:
        previous, self.network_available = self.network_available, available
        if previous and not available:
            logger.warning("Network lost")
            self.engine.apply_connection_change(False)
        elif available and not previous:
            logger.info("Network restored")
            if self._manager is None:
                # Never started; ``start`` connects once it is called.
                return
            if self.manager.is_connected:
                self.engine.apply_connection_change(True)
            else:
                self.manager.connect()

    # ------------------------------------------------------------------
    # Projection commands and queries
    # ------------------------------------------------------------------
    def clear_orders(self) -> None:
        self.engine.clear_orders()

    @property
    def snapshot(self) -> MonitorSnapshot:
        return self.engine.snapshot

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        return self.engine.subscribe(listener)

    def resolve_customer_for_order(self, order: OrderRecord | int) -> Customer | None:
        return self.engine.resolve_customer_for_order(order)

    def voucher_for(self, order_id: int) -> VoucherEvent | None:
        return self.engine.voucher_for(order_id)
