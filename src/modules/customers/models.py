"""Customer model used to exercise the repository layer.

- Email must be unique (checked up-front by ``CustomerRepository`` rules
  and enforced by the database).
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

from django.db import models

from modules.core.models import SoftDeleteModel


class CustomerStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Customer(SoftDeleteModel):
    name = models.CharField(max_length=255)
    email = models.EmailField(max_length=254, unique=True)
    phone = models.CharField(max_length=20, blank=True, default="")
    status = models.CharField(
        max_length=20,
        choices=CustomerStatus.choices,
        default=CustomerStatus.ACTIVE,
    )

    class Meta:
        db_table = "customers"
        indexes = [
            models.Index(fields=["status"], name="customers_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"
