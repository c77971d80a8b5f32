"""Criteria shared by the example repositories."""

from __future__ import annotations

from dataclasses import dataclass

from repository import Criterion


@dataclass(frozen=True)
class AliveCriterion(Criterion):
    """Exclude soft-deleted rows (``deleted_at`` set)."""

    def apply(self, queryset, repository):
        return queryset.filter(deleted_at__isnull=True)
