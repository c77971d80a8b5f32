"""Customer repository backed by ``BaseRepository``.

Input rules:
- ``name`` is required on create and may not be blank.
- ``email`` must be a valid address, unique among customers (the
  customer being updated is excluded from the check).
- ``status`` must be one of ``CustomerStatus``.
"""

from __future__ import annotations

from rest_framework import serializers

from repository import BaseRepository, Unique

from modules.customers.models import Customer, CustomerStatus
from modules.customers.presenters import CustomerPresenter


class CustomerRepository(BaseRepository):
    model = "customers.Customer"
    presenter_class = CustomerPresenter
    searchable_fields = {"name": "like", "email": "="}
    rules = {
        "name": serializers.CharField(max_length=255),
        "email": serializers.EmailField(
            max_length=254,
            validators=[Unique(Customer.objects.all(), lookup="iexact")],
        ),
        "phone": serializers.CharField(max_length=20, required=False, allow_blank=True),
        "status": serializers.ChoiceField(choices=CustomerStatus.choices, required=False),
    }
