"""Transport port (abstract interface).

Defines the contract every publish/subscribe transport adapter must implement,
so the connection manager can run against the in-memory fake, the replay
adapter, or a real broker client without changing.

``open`` is non-blocking: its outcome is reported later through the
lifecycle callback.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable

Payload = str | bytes
MessageHandler = Callable[[str, Payload], None]


class LifecycleType(Enum):
    OPENED = "opened"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class LifecycleEvent:
    type: LifecycleType
    reason: str | None = None


LifecycleHandler = Callable[[LifecycleEvent], None]


@dataclass(frozen=True)
class Heartbeat:
    """Keep-alive intervals in milliseconds, outgoing and expected incoming."""

    outgoing_ms: int = 30_000
    incoming_ms: int = 30_000


class Subscription(ABC):
    topic: str

    @abstractmethod
    def unsubscribe(self) -> None:
        """Stop delivering messages for this topic."""
        ...


class Transport(ABC):
    """Abstract publish/subscribe transport."""

    @abstractmethod
    def open(self, url: str, heartbeat: Heartbeat, on_lifecycle: LifecycleHandler) -> None:
        """Start connecting to ``url``. Missed heartbeats surface as a CLOSED event."""
        ...

    @abstractmethod
    def subscribe(self, topic: str, on_message: MessageHandler) -> Subscription:
        """Subscribe to ``topic``. Raises ``TransportError`` if the broker refuses."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Tear down the connection. Safe to call when already closed."""
        ...
