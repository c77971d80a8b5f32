"""Criteria queue and stock criteria.

``CriteriaQueue`` is owned by a repository: criteria are pushed between
queries and drained (applied in FIFO order, then cleared) by the next read.

Stock criteria are frozen dataclasses so a pushed criterion can never
change after it was queued.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from functools import reduce
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union

import structlog
from django.db import models
from django.db.models import Q

from repository.conditions import build_q
from repository.exceptions import InvalidCondition, ValidationFailed
from repository.interfaces import Criterion

if TYPE_CHECKING:
    from repository.base import BaseRepository

logger = structlog.get_logger(__name__)


class CriteriaQueue:
    """Ordered, drain-once collection of ``Criterion`` instances."""

    def __init__(self) -> None:
        self._items: List[Criterion] = []

    def push(self, criterion: Criterion) -> None:
        if not isinstance(criterion, Criterion):
            raise TypeError(
                f"{type(criterion).__name__} must be an instance of repository.Criterion."
            )
        self._items.append(criterion)

    def reset(self) -> None:
        self._items = []

    def drain_into(
        self, queryset: models.QuerySet, repository: BaseRepository
    ) -> models.QuerySet:
        """Apply every queued criterion to ``queryset`` and empty the queue.

        When the repository skips criteria the queryset is returned as is
        and the queue keeps its content.
        """
        if repository.is_skipping_criteria:
            return queryset

        applied = len(self._items)
        try:
            for criterion in self._items:
                queryset = criterion.apply(queryset, repository)
        finally:
            self.reset()

        if applied:
            logger.debug(
                "repository.criteria_applied",
                repository=type(repository).__name__,
                count=applied,
            )
        return queryset

    def __iter__(self) -> Iterator[Criterion]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self) -> str:
        names = ", ".join(type(c).__name__ for c in self._items)
        return f"<CriteriaQueue [{names}]>"


# ---------------------------------------------------------------------------
# Stock criteria
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WhereCriterion(Criterion):
    """Filter on one ``(field, operator, value)`` condition."""

    field: str
    value: Any
    operator: str = "="

    def apply(self, queryset, repository):
        return queryset.filter(build_q(self.field, self.operator, self.value))


@dataclass(frozen=True)
class OrderByCriterion(Criterion):
    field: str
    direction: str = "asc"

    def apply(self, queryset, repository):
        prefix = "" if self.direction.lower() == "asc" else "-"
        return queryset.order_by(f"{prefix}{self.field}")


@dataclass(frozen=True)
class SearchCriterion(Criterion):
    """Case-insensitive search of ``term`` across searchable fields.

    ``fields`` defaults to ``repository.get_searchable_fields()``.  Fields
    are either a list of names (partial match) or a mapping of name to
    ``"like"`` (partial match) / ``"="`` (exact, case-insensitive).
    Matches on any field are ORed.
    """

    term: str
    fields: Optional[Union[Sequence[str], Mapping[str, str]]] = None

    def apply(self, queryset, repository):
        term = (self.term or "").strip()
        if not term:
            return queryset

        fields = self.fields if self.fields is not None else repository.get_searchable_fields()
        if isinstance(fields, Mapping):
            pairs = list(fields.items())
        else:
            pairs = [(name, "like") for name in fields]
        if not pairs:
            return queryset

        conditions = [Q(**{f"{name}__{_search_lookup(name, op)}": term}) for name, op in pairs]
        return queryset.filter(reduce(operator.or_, conditions))


_SEARCH_LOOKUPS = {"=": "iexact", "like": "icontains"}


def _search_lookup(field: str, op: str) -> str:
    try:
        return _SEARCH_LOOKUPS[str(op).strip().lower()]
    except KeyError:
        raise InvalidCondition(
            f"Searchable field {field!r} has unsupported operator {op!r}; "
            "expected \"like\" or \"=\"."
        ) from None


@dataclass(frozen=True)
class FilterSetCriterion(Criterion):
    """Narrow the query with a ``django_filters.FilterSet``.

    Invalid filter input raises ``ValidationFailed`` with the filter set's
    field errors.
    """

    filterset_class: type
    data: Dict[str, Any] = field(default_factory=dict)

    def apply(self, queryset, repository):
        filterset = self.filterset_class(self.data, queryset=queryset)
        if not filterset.is_valid():
            errors = {
                name: [str(message) for message in messages]
                for name, messages in filterset.errors.items()
            }
            raise ValidationFailed(errors)
        return filterset.qs
