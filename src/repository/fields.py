"""Field restrictions for raw entities.

``BaseRepository.hidden`` / ``visible`` record a ``FieldRestriction`` that
the next read stamps onto every entity it returns.  The restriction only
affects the entity's own serialized form (``entity_to_dict`` and
``serialize``); presenters are unaffected and keep receiving the entity.

    repo.skip_presenter().hidden(["email"]).find(1)
    entity_to_dict(entity)   # {"id": 1, "name": ..., "phone": ..., ...}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Optional

from django.core import serializers as django_serializers
from django.db import models

ATTRIBUTE = "_field_restriction"


@dataclass(frozen=True)
class FieldRestriction:
    """Fields left out of (``hidden``) or kept in (``visible``) serialized entities."""

    hidden: FrozenSet[str] = frozenset()
    visible: Optional[FrozenSet[str]] = None

    def hide(self, fields: Iterable[str]) -> FieldRestriction:
        return FieldRestriction(self.hidden | frozenset(fields), self.visible)

    def show(self, fields: Iterable[str]) -> FieldRestriction:
        return FieldRestriction(self.hidden, (self.visible or frozenset()) | frozenset(fields))

    def allows(self, field: models.Field) -> bool:
        names = {field.name, field.attname}
        if names & self.hidden:
            return False
        return self.visible is None or bool(names & self.visible)

    def __bool__(self) -> bool:
        return bool(self.hidden) or self.visible is not None


def restrict(result: Any, restriction: FieldRestriction) -> Any:
    """Stamp ``restriction`` onto an entity, a list of entities or a page."""
    if not restriction:
        return result
    entities = getattr(result, "object_list", result)
    if isinstance(entities, models.Model):
        entities = [entities]
    for entity in entities:
        setattr(entity, ATTRIBUTE, restriction)
    return result


def restriction_of(entity: models.Model) -> FieldRestriction:
    return getattr(entity, ATTRIBUTE, None) or FieldRestriction()


def entity_to_dict(entity: models.Model) -> Dict[str, Any]:
    """Concrete field values of ``entity``, minus restricted fields.

    Foreign keys are rendered as their raw id, like ``model_to_dict``.
    """
    restriction = restriction_of(entity)
    return {
        field.name: field.value_from_object(entity)
        for field in entity._meta.concrete_fields
        if restriction.allows(field)
    }


def serialize(format: str, entities: Iterable[models.Model], **options: Any) -> str:
    """``django.core.serializers.serialize`` honouring the entities' restriction.

    Entities returned by one repository call share a restriction, so the
    first entity's restriction selects the fields for all of them.
    """
    entities = list(entities)
    restriction = restriction_of(entities[0]) if entities else FieldRestriction()
    if restriction and "fields" not in options:
        options["fields"] = [
            field.name
            for field in entities[0]._meta.local_fields
            if field.serialize and restriction.allows(field)
        ]
    return django_serializers.serialize(format, entities, **options)
