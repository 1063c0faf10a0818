"""Connection manager: transport lifecycle, subscriptions, reconnect backoff.

States::

    DISCONNECTED -> CONNECTING -> CONNECTED
    CONNECTING | CONNECTED -> BACKOFF(n) -> CONNECTING    (n <= max_retries)
    BACKOFF(max_retries) failure -> DISCONNECTED           (retries exhausted)

The manager knows nothing about message semantics. Every connection attempt
gets a new generation number; lifecycle callbacks and messages from an older
generation are ignored, so a torn-down attempt can never flip state.
"""

from enum import Enum
from typing import Callable, Iterable

import structlog

from ordermonitor.connection.port import (
    Heartbeat,
    LifecycleEvent,
    LifecycleType,
    Payload,
    Subscription,
    Transport,
)
from ordermonitor.connection.scheduler import Scheduler, TimerHandle

logger = structlog.get_logger(__name__)


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    BACKOFF = "backoff"


class ConnectionManager:
    def __init__(
        self,
        transport: Transport,
        scheduler: Scheduler,
        url: str,
        destinations: Iterable[str],
        on_message: Callable[[str, Payload], object],
        on_connection_change: Callable[[bool], object] = lambda connected: None,
        heartbeat: Heartbeat | None = None,
        max_retries: int = 5,
        retry_delay: float = 3.0,
    ) -> None:
        self.transport = transport
        self.scheduler = scheduler
        self.url = url
        self.destinations = tuple(destinations)
        self.heartbeat = heartbeat or Heartbeat()
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._on_message = on_message
        self._on_connection_change = on_connection_change

        self.state = ConnectionState.DISCONNECTED
        self.retries_used = 0
        self._generation = 0
        self._timer: TimerHandle | None = None
        self._subscriptions: list[Subscription] = []

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def subscribed_topics(self) -> tuple[str, ...]:
        return tuple(subscription.topic for subscription in self._subscriptions)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def connect(self) -> None:
        """Start connecting. No-op while connecting or connected."""
        if self.state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            return
        if self.state is ConnectionState.BACKOFF:
            self._cancel_timer()
        else:
            self.retries_used = 0
        self._open()

    def disconnect(self) -> None:
        self._generation += 1
        self._cancel_timer()
        self._teardown_subscriptions()
        try:
            self.transport.close()
        except Exception:
            logger.exception("Transport close failed", url=self.url)
        self.state = ConnectionState.DISCONNECTED
        self.retries_used = 0
        self._notify(False)
        logger.info("Disconnected", url=self.url)

    def reconnect(self) -> None:
        self.disconnect()
        self.connect()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _open(self) -> None:
        self._generation += 1
        generation = self._generation
        self.state = ConnectionState.CONNECTING
        logger.info("Connecting", url=self.url, attempt=self.retries_used)
        try:
            self.transport.open(
                self.url,
                self.heartbeat,
                lambda event: self._handle_lifecycle(generation, event),
            )
        except Exception as exc:
            logger.warning("Transport open failed", url=self.url, error=str(exc))
            self._handle_lifecycle(generation, LifecycleEvent(LifecycleType.ERROR, str(exc)))

    def _handle_lifecycle(self, generation: int, event: LifecycleEvent) -> None:
        if generation != self._generation:
            logger.debug("Stale lifecycle event ignored", lifecycle=event.type.value)
            return
        if event.type is LifecycleType.OPENED:
            self._on_opened(generation)
        elif self.state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            self._on_failure(event)

    def _on_opened(self, generation: int) -> None:
        self.state = ConnectionState.CONNECTED
        self.retries_used = 0
        logger.info("Connected", url=self.url)
        self._notify(True)
        self._subscribe_all(generation)

    def _on_failure(self, event: LifecycleEvent) -> None:
        self._teardown_subscriptions()
        self._notify(False)
        if self.retries_used < self.max_retries:
            self.retries_used += 1
            self.state = ConnectionState.BACKOFF
            logger.warning(
                "Connection lost, retrying",
                url=self.url,
                lifecycle=event.type.value,
                reason=event.reason,
                attempt=self.retries_used,
                max_retries=self.max_retries,
                delay=self.retry_delay,
            )
            self._timer = self.scheduler.call_later(self.retry_delay, self._retry)
        else:
            self.state = ConnectionState.DISCONNECTED
            logger.error("Reconnect attempts exhausted", url=self.url, reason=event.reason)

    def _retry(self) -> None:
        self._timer = None
        if self.state is ConnectionState.BACKOFF:
            self._open()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def _subscribe_all(self, generation: int) -> None:
        self._teardown_subscriptions()

        def deliver(topic: str, payload: Payload) -> None:
            if generation == self._generation:
                self._on_message(topic, payload)

        for destination in self.destinations:
            try:
                self._subscriptions.append(self.transport.subscribe(destination, deliver))
            except Exception as exc:
                logger.error("Subscription failed", topic=destination, error=str(exc))

    def _teardown_subscriptions(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            try:
                subscription.unsubscribe()
            except Exception as exc:
                logger.debug("Unsubscribe failed", topic=subscription.topic, error=str(exc))

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _notify(self, connected: bool) -> None:
        try:
            self._on_connection_change(connected)
        except Exception:
            logger.exception("Connection listener failed", connected=connected)
