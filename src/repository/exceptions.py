"""Repository layer exceptions.

Raised by ``BaseRepository`` and its collaborators.  Storage errors coming
from the ORM (``IntegrityError``, ``DatabaseError``, ``FieldError``) are
never caught or re-wrapped here; they reach the caller unmodified.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from django.core.exceptions import ObjectDoesNotExist


class RepositoryException(Exception):
    """Base class for every error raised by the repository layer."""


class ConstructionError(RepositoryException):
    """A bound model, presenter or validator does not satisfy its contract.

    Raised eagerly while binding (constructor, ``make_model``,
    ``make_presenter``, ``make_validator``), never deferred to a query.
    """


class ValidationFailed(RepositoryException):
    """Input attributes were rejected before any storage mutation.

    ``errors`` maps each offending field to its list of messages.
    """

    def __init__(self, errors: Optional[Dict[str, List[str]]] = None) -> None:
        self.errors: Dict[str, List[str]] = dict(errors or {})
        fields = ", ".join(sorted(self.errors)) or "input"
        super().__init__(f"Validation failed for: {fields}.")


class EntityNotFound(RepositoryException, ObjectDoesNotExist):
    """No entity matches the requested primary key.

    Also an ``ObjectDoesNotExist`` so Django-aware callers (e.g. DRF's
    exception handler) keep treating it as a 404.
    """


class InvalidCondition(RepositoryException, ValueError):
    """A ``find_where`` condition or operator is malformed."""
