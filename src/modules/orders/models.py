"""Order model.

- Customer FK uses PROTECT to preserve financial history.
- Orders are hard-deleted (plain ``BaseModel``).
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel
from modules.orders.constants import OrderStatus


class Order(BaseModel):
    number = models.CharField(max_length=20, unique=True)
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    total_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "orders"
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.number} [{self.status}]"
