from __future__ import annotations

from decimal import Decimal

import pytest

from modules.customers.models import Customer, CustomerStatus
from modules.orders.models import Order


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def make_customer():
    """Factory creating customers with unique emails."""
    counter = {"n": 0}

    def _make(**overrides) -> Customer:
        counter["n"] += 1
        defaults = {
            "name": f"Customer {counter['n']:02d}",
            "email": f"customer{counter['n']:02d}@example.com",
            "status": CustomerStatus.ACTIVE,
        }
        defaults.update(overrides)
        return Customer.objects.create(**defaults)

    return _make


@pytest.fixture()
def make_order():
    counter = {"n": 0}

    def _make(customer: Customer, **overrides) -> Order:
        counter["n"] += 1
        defaults = {
            "number": f"ORD-{counter['n']:04d}",
            "customer": customer,
            "total_amount": Decimal("10.00"),
        }
        defaults.update(overrides)
        return Order.objects.create(**defaults)

    return _make
