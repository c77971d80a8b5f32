"""Order repositories package."""

from modules.orders.repositories.django_repository import CustomerOrdersCriterion, OrderRepository

__all__ = ["CustomerOrdersCriterion", "OrderRepository"]
