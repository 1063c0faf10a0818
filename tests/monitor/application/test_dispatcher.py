"""Application tests for message routing into the engine."""

import json
from datetime import UTC, datetime

from ordermonitor.clock import FixedClock
from ordermonitor.dispatch.dispatcher import MessageDispatcher
from ordermonitor.dispatch.topics import DEFAULT_DESTINATIONS, Topic
from ordermonitor.model.events import CustomerIdentified, OrderBatchReceived
from ordermonitor.reconciliation.engine import ReconciliationEngine


def _make_dispatcher(sink=None, **kwargs):
    clock = FixedClock(datetime(2025, 3, 1, 9, 0, tzinfo=UTC))
    received = []
    return MessageDispatcher(sink or received.append, clock=clock, **kwargs), received


class TestRouting:
    def test_order_list_is_forwarded(self):
        dispatcher, received = _make_dispatcher()
        event = dispatcher.dispatch(DEFAULT_DESTINATIONS[Topic.ORDER_LIST], json.dumps([{"id": 1}]))

        assert isinstance(event, OrderBatchReceived)
        assert received == [event]
        assert dispatcher.stats["forwarded"] == 1

    def test_bytes_payload(self):
        dispatcher, received = _make_dispatcher()
        payload = json.dumps({"khachHangId": 5, "ten": "Trần B"}).encode("utf-8")
        dispatcher.dispatch(DEFAULT_DESTINATIONS[Topic.CUSTOMER_UPDATED], payload)

        assert isinstance(received[0], CustomerIdentified)
        assert received[0].customer.name == "Trần B"

    def test_custom_destinations(self):
        destinations = dict(DEFAULT_DESTINATIONS)
        destinations[Topic.CART_UPDATED] = "/topic/cart"
        dispatcher, received = _make_dispatcher(destinations=destinations)

        dispatcher.dispatch("/topic/cart", json.dumps({"hoaDonId": 7}))
        assert received[0].order.id == 7
        assert "/topic/cart" in dispatcher.destinations


class TestRejection:
    def test_unknown_topic_is_dropped(self):
        dispatcher, received = _make_dispatcher()

        assert dispatcher.dispatch("/topic/nope", "{}") is None
        assert received == []
        assert dispatcher.stats["unknown_topic"] == 1

    def test_malformed_payload_does_not_affect_the_next_message(self):
        dispatcher, received = _make_dispatcher()
        destination = DEFAULT_DESTINATIONS[Topic.ORDER_LIST]

        assert dispatcher.dispatch(destination, "{not json") is None
        assert dispatcher.dispatch(destination, "[]") is not None
        assert dispatcher.stats["rejected"] == 1
        assert dispatcher.stats["received"] == 2
        assert len(received) == 1

    def test_unexpected_decoder_failure_is_contained(self):
        def explode(topic, payload, received_at):
            raise RuntimeError("boom")

        dispatcher, received = _make_dispatcher(decoders={Topic.ORDER_LIST: explode})

        assert dispatcher.dispatch(DEFAULT_DESTINATIONS[Topic.ORDER_LIST], "[]") is None
        assert dispatcher.stats["rejected"] == 1

    def test_sink_failure_is_contained(self):
        def broken(event):
            raise RuntimeError("engine down")

        dispatcher, _ = _make_dispatcher(sink=broken)

        assert dispatcher.dispatch(DEFAULT_DESTINATIONS[Topic.ORDER_LIST], "[]") is None
        assert dispatcher.stats["sink_failed"] == 1


class TestEngineAsSink:
    def test_messages_update_the_snapshot(self):
        clock = FixedClock(datetime(2025, 3, 1, 9, 0, tzinfo=UTC))
        engine = ReconciliationEngine(clock=clock)
        dispatcher = MessageDispatcher(engine.apply, clock=clock)

        dispatcher.dispatch(DEFAULT_DESTINATIONS[Topic.CUSTOMER_UPDATED], json.dumps({"khachHangId": 5, "ten": "B"}))
        dispatcher.dispatch(DEFAULT_DESTINATIONS[Topic.ORDER_CREATED], json.dumps({"id": 100}))
        dispatcher.dispatch(DEFAULT_DESTINATIONS[Topic.VOUCHER_ORDER_UPDATED], json.dumps({"hoaDonId": 0}))

        assert engine.snapshot.order(100).customer_id == 5
        assert engine.snapshot.version == 2
