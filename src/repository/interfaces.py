"""Repository contracts (Dependency Inversion Principle).

Provides the abstract collaborators that ``BaseRepository`` binds to:

- ``Criterion``: one composable query-shaping step.
- ``Presenter``: post-fetch transform into an external representation.
- ``Validator``: pre-mutation rule check scoped by ``RuleScope``.
- ``IRepository`` / ``IRepositoryCriteria``: the public repository surface.

Binding is checked with ``isinstance`` against these classes, so a
collaborator must subclass the matching contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence

from django.db import models

if TYPE_CHECKING:
    from repository.criteria import CriteriaQueue


class RuleScope(models.TextChoices):
    CREATE = "create", "Create"
    UPDATE = "update", "Update"


class Criterion(ABC):
    """A single query-modification unit.

    Implementations must not keep per-call state: the same criterion may be
    pushed onto several repositories.
    """

    @abstractmethod
    def apply(self, queryset: models.QuerySet, repository: Any) -> models.QuerySet:
        """Return ``queryset`` narrowed or re-ordered by this criterion."""


class Presenter(ABC):
    @abstractmethod
    def present(self, result: Any) -> Any:
        """Transform an entity, a collection or a page of entities."""


class Validator(ABC):
    """Rule checker fed with attributes, then asked to pass a scope."""

    @abstractmethod
    def with_data(self, attributes: Dict[str, Any]) -> "Validator":
        """Set the attributes to validate."""

    @abstractmethod
    def set_id(self, id: Any) -> "Validator":
        """Set the id of the entity being updated (excluded from uniqueness)."""

    @abstractmethod
    def passes(self, scope: Optional[str] = None) -> bool:
        """Run the rules of ``scope`` and record the errors."""

    @abstractmethod
    def pass_or_fail(self, scope: Optional[str] = None) -> bool:
        """Like ``passes`` but raise ``ValidationFailed`` on error."""

    @property
    @abstractmethod
    def errors(self) -> Dict[str, List[str]]:
        """Errors recorded by the last run."""


class IRepository(ABC):
    """CRUD and query surface every repository exposes."""

    @abstractmethod
    def all(self, columns: Optional[Sequence[str]] = None, count: bool = False) -> Any:
        """Retrieve every entity (or their count)."""

    @abstractmethod
    def paginate(
        self,
        limit: Optional[int] = None,
        columns: Optional[Sequence[str]] = None,
        page: int = 1,
    ) -> Any:
        """Retrieve one page of entities."""

    @abstractmethod
    def find(self, id: Any, columns: Optional[Sequence[str]] = None) -> Any:
        """Retrieve an entity by primary key or raise ``EntityNotFound``."""

    @abstractmethod
    def find_by(
        self,
        field: str,
        value: Any,
        columns: Optional[Sequence[str]] = None,
        count: bool = False,
    ) -> Any:
        """Retrieve entities whose ``field`` equals ``value``."""

    @abstractmethod
    def find_where(
        self,
        conditions: Dict[str, Any],
        columns: Optional[Sequence[str]] = None,
        count: bool = False,
    ) -> Any:
        """Retrieve entities matching every condition."""

    @abstractmethod
    def create(self, attributes: Dict[str, Any]) -> Any:
        """Validate and persist a new entity."""

    @abstractmethod
    def first_or_create(self, attributes: Dict[str, Any]) -> Any:
        """Return the first exact match or create it."""

    @abstractmethod
    def update(self, attributes: Dict[str, Any], id: Any) -> Any:
        """Validate and persist changes on an existing entity."""

    @abstractmethod
    def delete(self, id: Any) -> int:
        """Delete one entity or a collection of ids."""

    @abstractmethod
    def take(self, limit: int) -> "IRepository":
        """Limit the next query."""

    @abstractmethod
    def order_by(self, column: str, direction: str = "asc") -> "IRepository":
        """Order the next query."""

    @abstractmethod
    def with_relations(self, *relations: Any) -> "IRepository":
        """Eager-load relations on the next query."""

    @abstractmethod
    def hidden(self, fields: Iterable[str]) -> "IRepository":
        """Leave ``fields`` out of the serialized raw entities."""

    @abstractmethod
    def visible(self, fields: Iterable[str]) -> "IRepository":
        """Keep only ``fields`` in the serialized raw entities."""

    @abstractmethod
    def skip_presenter(self, status: bool = True) -> "IRepository":
        """Toggle presentation of results."""


class IRepositoryCriteria(ABC):
    """Criteria management surface."""

    @abstractmethod
    def push_criteria(self, criterion: Criterion) -> "IRepositoryCriteria":
        """Queue a criterion for the next query."""

    @abstractmethod
    def get_criteria(self) -> CriteriaQueue:
        """Return the pending criteria."""

    @abstractmethod
    def get_by_criteria(self, criterion: Criterion) -> Any:
        """Run a single criterion immediately."""

    @abstractmethod
    def skip_criteria(self, status: bool = True) -> "IRepositoryCriteria":
        """Toggle criteria application."""

    @abstractmethod
    def apply_criteria(self) -> "IRepositoryCriteria":
        """Apply and drain the pending criteria."""

    @abstractmethod
    def reset_criteria(self) -> "IRepositoryCriteria":
        """Drop the pending criteria."""
