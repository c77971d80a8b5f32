"""Order repository backed by ``BaseRepository``.

Newest orders come first unless the caller orders explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from repository import BaseRepository, Criterion

from modules.orders.models import Order
from modules.orders.presenters import OrderPresenter
from modules.orders.validators import OrderValidator


@dataclass(frozen=True)
class CustomerOrdersCriterion(Criterion):
    """Orders of one customer, with the customer joined in."""

    customer_id: Any

    def apply(self, queryset, repository):
        return queryset.filter(customer_id=self.customer_id).select_related("customer")


class OrderRepository(BaseRepository):
    model = Order
    presenter_class = OrderPresenter
    validator_class = OrderValidator
    searchable_fields = ["number", "notes"]
    order_field = "created_at"
    order_direction = "desc"
