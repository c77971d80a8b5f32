"""Customer repositories package."""

from modules.customers.repositories.django_repository import CustomerRepository

__all__ = ["CustomerRepository"]
