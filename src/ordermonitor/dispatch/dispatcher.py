"""Message dispatcher.

Routes each raw (destination, payload) pair to its topic's decoder and
forwards the resulting event, synchronously, to a single sink (normally
``ReconciliationEngine.apply``).

The dispatcher never raises. A message that cannot be decoded is logged with
its topic and reason and dropped; the next message is unaffected.
"""

from collections import Counter
from typing import Callable, Mapping

import structlog

from ordermonitor.clock import Clock, SystemClock
from ordermonitor.dispatch.decoders import DECODERS, Decoder, Payload
from ordermonitor.dispatch.topics import DEFAULT_DESTINATIONS, Topic
from ordermonitor.errors import DecodeError
from ordermonitor.model.events import MonitorEvent

logger = structlog.get_logger(__name__)

EventSink = Callable[[MonitorEvent], object]

_PREVIEW_LENGTH = 200


class MessageDispatcher:
    def __init__(
        self,
        sink: EventSink,
        destinations: Mapping[Topic, str] = DEFAULT_DESTINATIONS,
        decoders: Mapping[Topic, Decoder] = DECODERS,
        clock: Clock | None = None,
    ) -> None:
        self._sink = sink
        self._routes = {destination: topic for topic, destination in destinations.items()}
        self._decoders = dict(decoders)
        self._clock = clock or SystemClock()
        self.stats: Counter[str] = Counter()

    @property
    def destinations(self) -> tuple[str, ...]:
        return tuple(self._routes)

    def dispatch(self, destination: str, payload: Payload) -> MonitorEvent | None:
        """Decode one message and forward it. Returns the forwarded event, if any."""
        self.stats["received"] += 1
        topic = self._routes.get(destination)
        decoder = self._decoders.get(topic) if topic is not None else None
        if decoder is None:
            self.stats["unknown_topic"] += 1
            logger.warning("Message on unknown topic dropped", topic=destination)
            return None

        try:
            event = decoder(destination, payload, self._clock.now())
        except DecodeError as exc:
            self.stats["rejected"] += 1
            logger.warning(
                "Message dropped",
                topic=destination,
                reason=exc.reason,
                preview=_preview(payload),
            )
            return None
        except Exception:
            self.stats["rejected"] += 1
            logger.exception("Unexpected decode failure", topic=destination, preview=_preview(payload))
            return None

        try:
            self._sink(event)
        except Exception:
            self.stats["sink_failed"] += 1
            logger.exception("Event sink failed", topic=destination, event_type=type(event).__name__)
            return None

        self.stats["forwarded"] += 1
        logger.debug("Message dispatched", topic=destination, event_type=type(event).__name__)
        return event


def _preview(payload: Payload) -> str:
    text = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else str(payload)
    return text[:_PREVIEW_LENGTH]
