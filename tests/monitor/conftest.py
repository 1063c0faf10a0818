"""Shared fixtures for the order monitor tests."""

from datetime import UTC, datetime

import pytest
from ordermonitor.clock import FixedClock
from ordermonitor.model.customer import Customer
from ordermonitor.reconciliation.engine import ReconciliationEngine

START = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def clock():
    return FixedClock(START)


@pytest.fixture
def engine(clock):
    return ReconciliationEngine(clock=clock)


@pytest.fixture
def tran_b():
    return Customer(id=5, name="Tran B", phone="0901111111")
