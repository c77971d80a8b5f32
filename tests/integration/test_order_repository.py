"""Integration tests for OrderRepository.

Covers:
- Scoped validator class (create vs. update rules).
- Newest-first default ordering.
- CustomerOrdersCriterion joins the customer in one query.
- OrderPresenter output.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from modules.orders.constants import OrderStatus
from modules.orders.models import Order
from modules.orders.repositories import CustomerOrdersCriterion, OrderRepository
from repository import ValidationFailed

pytestmark = pytest.mark.integration


@pytest.fixture()
def repo():
    return OrderRepository()


@pytest.fixture()
def customer(make_customer):
    return make_customer(name="Alice")


def _payload(customer, **overrides):
    payload = {
        "number": "ORD-9000",
        "customer_id": customer.id,
        "total_amount": Decimal("99.90"),
    }
    payload.update(overrides)
    return payload


class TestCreateOrder:
    def test_creates_and_presents(self, repo, customer):
        result = repo.create(_payload(customer, notes="gift"))
        assert result["data"]["number"] == "ORD-9000"
        assert result["data"]["customer_name"] == "Alice"
        assert result["data"]["status"] == OrderStatus.PENDING
        assert Order.objects.get(number="ORD-9000").customer_id == customer.id

    def test_duplicate_number_rejected(self, repo, customer, make_order):
        make_order(customer, number="ORD-9000")
        with pytest.raises(ValidationFailed) as exc_info:
            repo.create(_payload(customer))
        assert "number" in exc_info.value.errors

    def test_unknown_customer_rejected(self, repo, customer):
        with pytest.raises(ValidationFailed) as exc_info:
            repo.create(_payload(customer, customer_id=customer.id + 1000))
        assert "customer_id" in exc_info.value.errors

    def test_soft_deleted_customer_rejected(self, repo, customer):
        customer.delete()
        with pytest.raises(ValidationFailed) as exc_info:
            repo.create(_payload(customer))
        assert "customer_id" in exc_info.value.errors

    def test_negative_total_rejected(self, repo, customer):
        with pytest.raises(ValidationFailed) as exc_info:
            repo.create(_payload(customer, total_amount=Decimal("-1.00")))
        assert "total_amount" in exc_info.value.errors
        assert Order.objects.count() == 0


class TestUpdateOrder:
    def test_status_and_notes_can_change(self, repo, customer, make_order):
        order = make_order(customer)
        result = repo.update({"status": OrderStatus.CONFIRMED, "notes": "call first"}, order.id)
        order.refresh_from_db()
        assert order.status == OrderStatus.CONFIRMED
        assert result["data"]["notes"] == "call first"

    def test_partial_update(self, repo, customer, make_order):
        order = make_order(customer, notes="keep")
        repo.update({"status": OrderStatus.SHIPPED}, order.id)
        order.refresh_from_db()
        assert order.notes == "keep"

    def test_other_fields_are_frozen(self, repo, customer, make_order):
        order = make_order(customer)
        with pytest.raises(ValidationFailed) as exc_info:
            repo.update({"total_amount": "1.00"}, order.id)
        assert exc_info.value.errors["total_amount"] == ["This field cannot be updated."]
        order.refresh_from_db()
        assert order.total_amount == Decimal("10.00")

    def test_invalid_status(self, repo, customer, make_order):
        order = make_order(customer)
        with pytest.raises(ValidationFailed) as exc_info:
            repo.update({"status": "lost"}, order.id)
        assert "status" in exc_info.value.errors


class TestOrdering:
    def test_newest_first_by_default(self, repo, customer, make_order):
        orders = [make_order(customer) for _ in range(3)]
        now = timezone.now()
        for offset, order in enumerate(orders):
            Order.objects.filter(pk=order.pk).update(created_at=now - timedelta(days=offset))
        result = repo.skip_presenter().all()
        assert [o.pk for o in result] == [o.pk for o in orders]

    def test_explicit_order(self, repo, customer, make_order):
        make_order(customer, number="B")
        make_order(customer, number="A")
        result = repo.skip_presenter().order_by("number").all()
        assert [o.number for o in result] == ["A", "B"]


class TestCustomerOrdersCriterion:
    def test_scopes_to_customer(self, repo, customer, make_customer, make_order):
        make_order(customer)
        make_order(make_customer())
        repo.push_criteria(CustomerOrdersCriterion(customer.id))
        result = repo.all()
        assert len(result["data"]) == 1
        assert result["data"][0]["customer"] == customer.id

    def test_customer_joined(self, repo, customer, make_order, django_assert_num_queries):
        make_order(customer)
        make_order(customer)
        repo.skip_presenter().push_criteria(CustomerOrdersCriterion(customer.id))
        with django_assert_num_queries(1):
            names = [o.customer.name for o in repo.all()]
        assert names == ["Alice", "Alice"]
