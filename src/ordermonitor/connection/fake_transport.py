"""Configurable in-memory transport for development and testing.

Nothing leaves the process. Tests drive the connection by hand:

    transport = FakeTransport()
    manager.connect()
    transport.emit_opened()
    transport.deliver("/topic/hoa-don-list", "[]")
    transport.emit_closed("heartbeat missed")
"""

from ordermonitor.connection.port import (
    Heartbeat,
    LifecycleEvent,
    LifecycleHandler,
    LifecycleType,
    MessageHandler,
    Payload,
    Subscription,
    Transport,
)
from ordermonitor.errors import TransportError


class FakeSubscription(Subscription):
    def __init__(self, transport: "FakeTransport", topic: str, handler: MessageHandler) -> None:
        self.topic = topic
        self.handler = handler
        self.active = True
        self._transport = transport

    def unsubscribe(self) -> None:
        self.active = False
        self._transport.calls.append({"method": "unsubscribe", "topic": self.topic})


class FakeTransport(Transport):
    """Configurable fake transport."""

    def __init__(self) -> None:
        self.auto_open: bool = False
        self.fail_open: bool = False
        self.failing_topics: set[str] = set()
        self.calls: list[dict] = []
        self.subscriptions: list[FakeSubscription] = []
        self.lifecycle_handler: LifecycleHandler | None = None
        self.is_open = False

    def configure(
        self,
        auto_open: bool = False,
        fail_open: bool = False,
        failing_topics: set[str] | None = None,
    ) -> None:
        """Configure transport behavior at runtime."""
        self.auto_open = auto_open
        self.fail_open = fail_open
        self.failing_topics = set(failing_topics or ())

    def open(self, url: str, heartbeat: Heartbeat, on_lifecycle: LifecycleHandler) -> None:
        self.calls.append({"method": "open", "url": url, "heartbeat": heartbeat})
        self.lifecycle_handler = on_lifecycle
        if self.fail_open:
            self.emit_error("connection refused")
        elif self.auto_open:
            self.emit_opened()

    def subscribe(self, topic: str, on_message: MessageHandler) -> Subscription:
        self.calls.append({"method": "subscribe", "topic": topic})
        if topic in self.failing_topics:
            raise TransportError(f"subscription to {topic} refused")
        subscription = FakeSubscription(self, topic, on_message)
        self.subscriptions.append(subscription)
        return subscription

    def close(self) -> None:
        self.calls.append({"method": "close"})
        self.is_open = False
        for subscription in self.subscriptions:
            subscription.active = False
        self.subscriptions = []

    # -- test drivers ------------------------------------------------------
    def emit_opened(self) -> None:
        self.is_open = True
        self._emit(LifecycleEvent(LifecycleType.OPENED))

    def emit_closed(self, reason: str = "closed by peer") -> None:
        self.is_open = False
        self._emit(LifecycleEvent(LifecycleType.CLOSED, reason))

    def emit_error(self, reason: str) -> None:
        self.is_open = False
        self._emit(LifecycleEvent(LifecycleType.ERROR, reason))

    def deliver(self, topic: str, payload: Payload) -> int:
        """Deliver a message to every active subscription on ``topic``."""
        delivered = 0
        for subscription in list(self.subscriptions):
            if subscription.active and subscription.topic == topic:
                subscription.handler(topic, payload)
                delivered += 1
        return delivered

    @property
    def subscribed_topics(self) -> list[str]:
        return [s.topic for s in self.subscriptions if s.active]

    def method_calls(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def reset(self) -> None:
        self.configure()
        self.calls = []
        self.subscriptions = []
        self.lifecycle_handler = None
        self.is_open = False

    def _emit(self, event: LifecycleEvent) -> None:
        if self.lifecycle_handler is not None:
            self.lifecycle_handler(event)
