"""Shared BDD fixtures and step definitions for the order monitor."""

import json

import pytest
from ordermonitor.client import OrderMonitor
from ordermonitor.config import MonitorSettings
from ordermonitor.connection.fake_transport import FakeTransport
from ordermonitor.connection.scheduler import VirtualScheduler
from ordermonitor.dispatch.topics import DEFAULT_DESTINATIONS, Topic
from pytest_bdd import given, parsers, then, when


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def transport():
    transport = FakeTransport()
    transport.configure(auto_open=True)
    return transport


@pytest.fixture()
def scheduler():
    return VirtualScheduler()


@pytest.fixture()
def monitor(transport, scheduler, clock):
    return OrderMonitor(MonitorSettings(), transport=transport, scheduler=scheduler, clock=clock)


@pytest.fixture()
def send(transport):
    """Deliver a JSON body on the default destination of a topic."""

    def _send(topic, body):
        return transport.deliver(DEFAULT_DESTINATIONS[topic], json.dumps(body, ensure_ascii=False))

    return _send


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("the monitor is connected")
def monitor_connected(monitor):
    monitor.start()
    assert monitor.snapshot.connected is True


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the backend creates order {order_id:d} for "{name}"'))
def order_created_for(send, order_id, name):
    send(Topic.ORDER_CREATED, {"id": order_id, "tenKhachHang": name})


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('order {order_id:d} is shown as "{name}"'))
def order_shown_as(monitor, order_id, name):
    assert monitor.snapshot.order(order_id).customer_name == name


@then(parsers.cfparse("order {order_id:d} is no longer shown"))
def order_not_shown(monitor, order_id):
    assert monitor.snapshot.order(order_id) is None
