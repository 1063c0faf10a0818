"""Error taxonomy for the order monitor.

None of these are fatal: transport failures surface as ``connected=False``,
decode failures drop a single message, and data errors leave engine state
untouched for the offending event.
"""


class MonitorError(Exception):
    """Base class for order monitor errors."""


class TransportError(MonitorError):
    """The transport could not open, or dropped the connection."""


class DecodeError(MonitorError):
    """A raw payload could not be decoded into a typed event."""

    def __init__(self, topic: str, reason: str) -> None:
        super().__init__(f"{topic}: {reason}")
        self.topic = topic
        self.reason = reason


class DataError(MonitorError):
    """A decoded event is semantically invalid (e.g. a non-positive order id)."""
