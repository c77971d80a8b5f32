"""Order DRF serializers.

``OrderSerializer`` renders orders for ``OrderPresenter``; the input
serializers hold the create/update rules of ``OrderValidator``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from repository import Unique

from modules.customers.models import Customer
from modules.orders.constants import OrderStatus
from modules.orders.models import Order


class OrderSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source="customer.name", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "number",
            "customer",
            "customer_name",
            "status",
            "total_amount",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class CreateOrderInputSerializer(serializers.Serializer):
    number = serializers.CharField(max_length=20, validators=[Unique(Order.objects.all())])
    customer_id = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.alive())
    total_amount = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0.00")
    )
    notes = serializers.CharField(required=False, allow_blank=True)


class UpdateOrderInputSerializer(serializers.Serializer):
    """Only status and notes may change once an order exists."""

    status = serializers.ChoiceField(choices=OrderStatus.choices)
    notes = serializers.CharField(allow_blank=True)

    def validate(self, attrs):
        forbidden = sorted(set(self.initial_data) - set(self.fields))
        if forbidden:
            raise serializers.ValidationError(
                {name: ["This field cannot be updated."] for name in forbidden}
            )
        return attrs
