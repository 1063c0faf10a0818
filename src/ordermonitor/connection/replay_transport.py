"""File-backed transport that replays a recorded capture.

A capture is a JSON-lines file; each line is one frame::

    {"topic": "/topic/hoa-don-list", "payload": [...]}

``payload`` may be a JSON string (sent as-is) or any other JSON value
(re-serialized). Blank lines and lines starting with ``#`` are skipped.
"""

import json
from dataclasses import dataclass
from pathlib import Path

import structlog

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


@dataclass(frozen=True)
class Frame:
    topic: str
    payload: str


@dataclass(frozen=True)
class ReplayResult:
    delivered: int
    skipped: int


def read_capture(path: Path) -> list[Frame]:
    """Parse a capture file. Malformed lines are logged and skipped."""
    frames = []
    with path.open(encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                record = json.loads(line)
                topic = record["topic"]
                payload = record["payload"]
            except (ValueError, KeyError, TypeError) as exc:
                logger.warning("Capture line skipped", path=str(path), line=lineno, error=str(exc))
                continue
            if not isinstance(payload, str):
                payload = json.dumps(payload, ensure_ascii=False)
            frames.append(Frame(topic=str(topic), payload=payload))
    return frames


class ReplaySubscription(Subscription):
    def __init__(self, transport: "ReplayTransport", topic: str) -> None:
        self.topic = topic
        self._transport = transport

    def unsubscribe(self) -> None:
        self._transport._handlers.pop(self.topic, None)


class ReplayTransport(Transport):
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._handlers: dict[str, MessageHandler] = {}
        self._lifecycle: LifecycleHandler | None = None
        self._frames: list[Frame] | None = None

    def open(self, url: str, heartbeat: Heartbeat, on_lifecycle: LifecycleHandler) -> None:
        self._lifecycle = on_lifecycle
        try:
            self._frames = read_capture(self.path)
        except OSError as exc:
            logger.error("Capture unreadable", path=str(self.path), error=str(exc))
            on_lifecycle(LifecycleEvent(LifecycleType.ERROR, str(exc)))
            return
        logger.info("Capture loaded", path=str(self.path), frames=len(self._frames), url=url)
        on_lifecycle(LifecycleEvent(LifecycleType.OPENED))

    def subscribe(self, topic: str, on_message: MessageHandler) -> Subscription:
        if self._frames is None:
            raise TransportError("replay transport is not open")
        self._handlers[topic] = on_message
        return ReplaySubscription(self, topic)

    def close(self) -> None:
        self._handlers.clear()
        self._frames = None

    def replay(self) -> ReplayResult:
        """Deliver every frame, in file order, to its subscribed handler."""
        if self._frames is None:
            raise TransportError("replay transport is not open")
        delivered = skipped = 0
        for frame in self._frames:
            handler = self._handlers.get(frame.topic)
            if handler is None:
                skipped += 1
                continue
            handler(frame.topic, frame.payload)
            delivered += 1
        return ReplayResult(delivered=delivered, skipped=skipped)
