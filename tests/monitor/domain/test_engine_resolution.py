"""Tests for resolving the customer behind an order."""

from datetime import UTC, datetime, timedelta

from ordermonitor.model.customer import Customer
from ordermonitor.model.order import OrderRecord

START = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)


def _stamp(offset_seconds=0):
    return (START + timedelta(seconds=offset_seconds)).strftime("%Y-%m-%d %H:%M:%S")


class TestResolveCustomerForOrder:
    def test_guest_order_after_identity_resolves_to_that_customer(self, engine, tran_b):
        engine.apply_customer_event(tran_b)
        engine.apply_order_batch([OrderRecord(id=100, customer_name="Khách lẻ", customer_phone="")])

        assert engine.resolve_customer_for_order(100) == tran_b

    def test_guest_order_without_any_customer_resolves_to_none(self, engine):
        engine.apply_order_batch([OrderRecord(id=200, customer_name="Khách lẻ")])
        assert engine.resolve_customer_for_order(200) is None

    def test_unknown_order_resolves_to_none(self, engine):
        assert engine.resolve_customer_for_order(404) is None

    def test_by_phone(self, engine, tran_b):
        engine.apply_customer_event(tran_b)
        engine.apply_customer_event(Customer(id=0))
        order = OrderRecord(id=300, customer_name="Someone", customer_phone="0901111111")

        assert engine.resolve_customer_for_order(order) == tran_b

    def test_by_email(self, engine):
        customer = Customer(id=6, name="Le C", email="c@shop.vn")
        engine.apply_order_batch([OrderRecord(id=1, customer_name="Le C", customer_id=6, customer_email="c@shop.vn")])

        assert engine.resolve_customer_for_order(OrderRecord(id=2, customer_email="c@shop.vn")) == customer

    def test_guest_order_near_identity_time(self, engine, clock, tran_b):
        engine.apply_customer_event(tran_b)
        clock.advance(60)
        order = OrderRecord(id=400, customer_name="Khách lẻ", created_at=_stamp(90))

        assert engine.resolve_customer_for_order(order) == tran_b

    def test_guest_order_far_from_identity_time(self, engine, clock, tran_b):
        engine.apply_customer_event(tran_b)
        order = OrderRecord(id=400, customer_name="Khách lẻ", created_at=_stamp(3600))

        assert engine.resolve_customer_for_order(order) is None

    def test_guest_order_after_reset_is_not_attributed(self, engine, tran_b):
        engine.apply_customer_event(tran_b)
        engine.apply_customer_event(Customer(id=0))
        order = OrderRecord(id=400, customer_name="Khách lẻ", created_at=_stamp(10))

        assert engine.resolve_customer_for_order(order) is None

    def test_unparseable_creation_time_counts_as_now(self, engine, tran_b):
        engine.apply_customer_event(tran_b)
        order = OrderRecord(id=400, customer_name="Khách lẻ", created_at="yesterday-ish")

        assert engine.resolve_customer_for_order(order) == tran_b

    def test_by_similar_name(self, engine):
        customer = Customer(id=7, name="Nguyen Van A", phone="0907")
        engine.apply_customer_event(customer)
        engine.apply_customer_event(Customer(id=0))
        order = OrderRecord(id=500, customer_name="nguyen van a")

        assert engine.resolve_customer_for_order(order) == customer
