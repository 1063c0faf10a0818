"""Transport factory.

Provides get_transport() / set_transport() to swap implementations:
- FakeTransport for development and testing
- ReplayTransport for feeding a recorded capture
- StompTransport for a live backend (STOMP over WebSocket)
"""

import os

from ordermonitor.connection.port import Transport

_current_transport: Transport | None = None


def get_transport() -> Transport:
    """Return the current transport (singleton).

    Uses FakeTransport by default. ``ORDER_MONITOR_TRANSPORT=replay`` selects
    the replay adapter over the capture named by ``ORDER_MONITOR_REPLAY_PATH``;
    ``ORDER_MONITOR_TRANSPORT=stomp`` selects the live broker adapter.
    """
    global _current_transport
    if _current_transport is None:
        adapter = os.environ.get("ORDER_MONITOR_TRANSPORT", "fake")
        if adapter == "fake":
            from ordermonitor.connection.fake_transport import FakeTransport

            _current_transport = FakeTransport()
        elif adapter == "replay":
            from ordermonitor.connection.replay_transport import ReplayTransport

            path = os.environ.get("ORDER_MONITOR_REPLAY_PATH")
            if not path:
                raise ValueError("ORDER_MONITOR_REPLAY_PATH is required for the replay transport")
            _current_transport = ReplayTransport(path)
        elif adapter == "stomp":
            from ordermonitor.connection.stomp_transport import StompTransport

            _current_transport = StompTransport()
        else:
            raise ValueError(f"Unknown transport adapter: {adapter}")
    return _current_transport


def set_transport(transport: Transport) -> None:
    """Override the active transport (useful for tests)."""
    global _current_transport
    _current_transport = transport


def reset_transport() -> None:
    """Reset the transport singleton (useful for testing)."""
    global _current_transport
    _current_transport = None
