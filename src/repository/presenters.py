"""Presenters built on Django REST framework serializers.

A presenter turns whatever a repository operation produced (one entity, a
collection or a ``Page``) into the external representation::

    entity      -> {"data": {...}}
    collection  -> {"data": [{...}, ...]}
    page        -> {"data": [...], "meta": {"pagination": {...}}}
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from django.core.paginator import Page
from django.db import models
from rest_framework import serializers

from repository.exceptions import ConstructionError
from repository.interfaces import Presenter


class SerializerPresenter(Presenter):
    """Present results through a DRF serializer.

    Subclasses usually only declare ``serializer_class``::

        class CustomerPresenter(SerializerPresenter):
            serializer_class = CustomerSerializer
    """

    serializer_class: Optional[type] = None

    def __init__(
        self,
        serializer_class: Optional[type] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        serializer_class = serializer_class or self.serializer_class
        if not (
            isinstance(serializer_class, type)
            and issubclass(serializer_class, serializers.BaseSerializer)
        ):
            raise ConstructionError(
                f"{type(self).__name__}.serializer_class must be a "
                f"rest_framework BaseSerializer subclass, got {serializer_class!r}."
            )
        self.serializer_class = serializer_class
        self.context = dict(context or {})

    def present(self, result: Any) -> Dict[str, Any]:
        if isinstance(result, Page):
            return {
                "data": self.serialize(result.object_list, many=True),
                "meta": {"pagination": self.pagination_meta(result)},
            }
        if result is None or isinstance(result, models.Model):
            return {"data": self.serialize(result) if result is not None else None}
        return {"data": self.serialize(result, many=True)}

    def serialize(self, instance: Any, many: bool = False) -> Any:
        return self.serializer_class(instance, many=many, context=self.context).data

    @staticmethod
    def pagination_meta(page: Page) -> Dict[str, int]:
        paginator = page.paginator
        return {
            "total": paginator.count,
            "count": len(page.object_list),
            "per_page": paginator.per_page,
            "current_page": page.number,
            "total_pages": paginator.num_pages,
        }
