"""STOMP-over-WebSocket transport backed by stomp.py.

This is the production adapter: it speaks STOMP 1.2 to the backend's
WebSocket endpoint, negotiating the configured heartbeats in both
directions. stomp.py delivers frames and lifecycle callbacks on its own
receiver thread; every callback is handed to ``handoff`` so the connection
manager and the engine only ever run on the caller's thread. By default the
handoff is the running asyncio loop's ``call_soon_threadsafe``.

Reconnecting is left to the connection manager, so stomp.py is allowed a
single connect attempt per ``open``.
"""

import asyncio
import itertools
import threading
from typing import Any, Callable
from urllib.parse import urlsplit

import stomp
import structlog
from stomp.adapter.ws import WSStompConnection
from stomp.exception import StompException

from ordermonitor.connection.port import (
    Heartbeat,
    LifecycleEvent,
    LifecycleHandler,
    LifecycleType,
    MessageHandler,
    Subscription,
    Transport,
)
from ordermonitor.errors import TransportError

logger = structlog.get_logger(__name__)

Handoff = Callable[..., Any]
ConnectionFactory = Callable[[str, Heartbeat], Any]


def ws_connection(url: str, heartbeat: Heartbeat) -> WSStompConnection:
    """Build a stomp.py WebSocket connection for ``url`` (``ws://`` or ``wss://``)."""
    parts = urlsplit(url)
    if parts.scheme not in ("ws", "wss") or not parts.hostname:
        raise TransportError(f"not a WebSocket URL: {url!r}")
    port = parts.port or (443 if parts.scheme == "wss" else 80)
    host_and_ports = [(parts.hostname, port)]
    connection = WSStompConnection(
        host_and_ports=host_and_ports,
        heartbeats=(heartbeat.outgoing_ms, heartbeat.incoming_ms),
        ws_path=parts.path or "/",
        reconnect_attempts_max=1,
    )
    if parts.scheme == "wss":
        connection.set_ssl(for_hosts=host_and_ports)
    return connection


class _Listener(stomp.ConnectionListener):
    """Forwards one connection's callbacks; reports at most one terminal event."""

    def __init__(self, transport: "StompTransport", on_lifecycle: LifecycleHandler) -> None:
        self._transport = transport
        self._on_lifecycle = on_lifecycle
        self._ended = False

    def report(self, event: LifecycleEvent) -> None:
        if event.type is not LifecycleType.OPENED:
            if self._ended:
                return
            self._ended = True
        self._transport._handoff(self._on_lifecycle, event)

    def on_connected(self, frame) -> None:
        self.report(LifecycleEvent(LifecycleType.OPENED))

    def on_heartbeat_timeout(self) -> None:
        logger.warning("Broker heartbeat missed")
        self.report(LifecycleEvent(LifecycleType.CLOSED, "heartbeat missed"))

    def on_disconnected(self) -> None:
        self.report(LifecycleEvent(LifecycleType.CLOSED, "connection closed"))

    def on_error(self, frame) -> None:
        reason = frame.headers.get("message") or frame.body or "broker error"
        self.report(LifecycleEvent(LifecycleType.ERROR, str(reason)))

    def on_message(self, frame) -> None:
        destination = frame.headers.get("destination", "")
        self._transport._handoff(self._transport._deliver, destination, frame.body)


class StompSubscription(Subscription):
    def __init__(self, transport: "StompTransport", topic: str, subscription_id: str) -> None:
        self.topic = topic
        self.id = subscription_id
        self._transport = transport

    def unsubscribe(self) -> None:
        self._transport._unsubscribe(self)


class StompTransport(Transport):
    def __init__(
        self,
        *,
        connection_factory: ConnectionFactory = ws_connection,
        handoff: Handoff | None = None,
    ) -> None:
        self.connection_factory = connection_factory
        self._handoff_override = handoff
        self._loop: asyncio.AbstractEventLoop | None = None
        self._connection = None
        self._listener: _Listener | None = None
        self._handlers: dict[str, tuple[str, MessageHandler]] = {}
        self._ids = itertools.count(1)

    def _handoff(self, func: Callable[..., Any], *args: Any) -> None:
        if self._handoff_override is not None:
            self._handoff_override(func, *args)
        elif self._loop is not None:
            self._loop.call_soon_threadsafe(func, *args)
        else:
            func(*args)

    def open(self, url: str, heartbeat: Heartbeat, on_lifecycle: LifecycleHandler) -> None:
        self.close()
        if self._handoff_override is None:
            self._loop = asyncio.get_running_loop()

        connection = self.connection_factory(url, heartbeat)
        listener = _Listener(self, on_lifecycle)
        connection.set_listener("ordermonitor", listener)
        self._connection, self._listener = connection, listener
        logger.info(
            "Opening STOMP connection",
            url=url,
            heartbeat_out_ms=heartbeat.outgoing_ms,
            heartbeat_in_ms=heartbeat.incoming_ms,
        )

        def run() -> None:
            try:
                connection.connect(wait=True)
            except (StompException, OSError) as exc:
                logger.warning("STOMP connect failed", url=url, error=str(exc))
                listener.report(LifecycleEvent(LifecycleType.ERROR, str(exc) or type(exc).__name__))

        threading.Thread(target=run, name="stomp-connect", daemon=True).start()

    def subscribe(self, topic: str, on_message: MessageHandler) -> Subscription:
        connection = self._connection
        if connection is None or not connection.is_connected():
            raise TransportError("STOMP connection is not open")
        subscription_id = f"sub-{next(self._ids)}"
        try:
            connection.subscribe(destination=topic, id=subscription_id, ack="auto")
        except (StompException, OSError) as exc:
            raise TransportError(f"subscribe to {topic} failed: {exc}") from exc
        self._handlers[topic] = (subscription_id, on_message)
        return StompSubscription(self, topic, subscription_id)

    def _unsubscribe(self, subscription: StompSubscription) -> None:
        current = self._handlers.get(subscription.topic)
        if current is None or current[0] != subscription.id:
            return
        del self._handlers[subscription.topic]
        if self._connection is not None and self._connection.is_connected():
            self._connection.unsubscribe(id=subscription.id)

    def _deliver(self, destination: str, body) -> None:
        entry = self._handlers.get(destination)
        if entry is None:
            logger.debug("Frame for unsubscribed destination dropped", topic=destination)
            return
        entry[1](destination, body)

    def close(self) -> None:
        connection, self._connection = self._connection, None
        self._handlers.clear()
        if self._listener is not None:
            # A deliberate close is not a connection loss.
            self._listener._ended = True
            self._listener = None
        if connection is None:
            return
        try:
            connection.remove_listener("ordermonitor")
            if connection.is_connected():
                connection.disconnect()
        except (StompException, OSError) as exc:
            logger.debug("STOMP disconnect failed", error=str(exc))
