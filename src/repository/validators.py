"""Validators built on Django REST framework serializers.

Rules may be declared three ways::

    rules = CustomerInputSerializer                       # same rules for both scopes
    rules = {"name": serializers.CharField(), ...}        # same rules for both scopes
    rules = {
        RuleScope.CREATE: {"email": serializers.EmailField(), ...},
        RuleScope.UPDATE: CustomerUpdateSerializer,
    }

The ``update`` scope validates partially: only the supplied attributes are
checked, but every supplied attribute must pass its rule.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import structlog
from django.db import models
from rest_framework import serializers

from repository.exceptions import ConstructionError, ValidationFailed
from repository.interfaces import RuleScope, Validator

logger = structlog.get_logger(__name__)

_SCOPES = frozenset(scope.value for scope in RuleScope)


def scope_key(scope: Any) -> str:
    """Normalise a ``RuleScope`` member or plain string to its value."""
    if isinstance(scope, RuleScope):
        return scope.value
    return str(scope).lower()


class Unique:
    """Field validator rejecting values already stored in ``queryset``.

    The id set on the validator (``Validator.set_id``) is excluded, so an
    entity may keep its own value on update.
    """

    requires_context = True
    message = "This field must be unique."

    def __init__(
        self,
        queryset: models.QuerySet,
        lookup: str = "exact",
        message: Optional[str] = None,
    ) -> None:
        self.queryset = queryset
        self.lookup = lookup
        self.message = message or self.message

    def __call__(self, value: Any, serializer_field: serializers.Field) -> None:
        field_name = serializer_field.source_attrs[-1]
        queryset = self.queryset.filter(**{f"{field_name}__{self.lookup}": value})
        excluded = serializer_field.context.get("id")
        if excluded is not None:
            queryset = queryset.exclude(pk=excluded)
        if queryset.exists():
            raise serializers.ValidationError(self.message, code="unique")

    def __repr__(self) -> str:
        return f"<Unique(queryset={self.queryset.model.__name__}, lookup={self.lookup!r})>"


class SerializerValidator(Validator):
    """Validate attributes with a DRF serializer chosen by scope."""

    def __init__(self, rules: Any) -> None:
        self._serializers: Dict[str, type] = self._build(rules)
        self._data: Dict[str, Any] = {}
        self._id: Any = None
        self._errors: Dict[str, List[str]] = {}

    # ------------------------------------------------------------------
    # Rule compilation
    # ------------------------------------------------------------------

    @classmethod
    def _build(cls, rules: Any) -> Dict[str, type]:
        if isinstance(rules, Mapping) and rules and all(
            scope_key(key) in _SCOPES for key in rules
        ):
            return {scope_key(key): cls._compile(value) for key, value in rules.items()}
        compiled = cls._compile(rules)
        return {scope: compiled for scope in _SCOPES}

    @staticmethod
    def _compile(rules: Any) -> type:
        if isinstance(rules, type) and issubclass(rules, serializers.BaseSerializer):
            return rules
        if isinstance(rules, Mapping) and rules and all(
            isinstance(f, serializers.Field) for f in rules.values()
        ):
            return type("RulesSerializer", (serializers.Serializer,), dict(rules))
        raise ConstructionError(
            "Validation rules must be a rest_framework serializer class or a "
            f"mapping of field name to serializer field, got {rules!r}."
        )

    # ------------------------------------------------------------------
    # Validator contract
    # ------------------------------------------------------------------

    def with_data(self, attributes: Dict[str, Any]) -> SerializerValidator:
        self._data = dict(attributes)
        return self

    def set_id(self, id: Any) -> SerializerValidator:
        self._id = id
        return self

    def passes(self, scope: Optional[str] = None) -> bool:
        key = scope_key(scope or RuleScope.CREATE)
        serializer_class = self._serializers.get(key)
        if serializer_class is None:
            self._errors = {}
            return True

        serializer = serializer_class(
            data=self._data,
            partial=key == RuleScope.UPDATE.value,
            context={"id": self._id, "scope": key},
        )
        if serializer.is_valid():
            self._errors = {}
            return True

        self._errors = {
            name: _messages(detail) for name, detail in serializer.errors.items()
        }
        return False

    def pass_or_fail(self, scope: Optional[str] = None) -> bool:
        if not self.passes(scope):
            logger.info(
                "repository.validation_failed",
                scope=scope_key(scope or RuleScope.CREATE),
                fields=sorted(self._errors),
            )
            raise ValidationFailed(self._errors)
        return True

    @property
    def errors(self) -> Dict[str, List[str]]:
        return dict(self._errors)


def _messages(detail: Any) -> List[str]:
    if isinstance(detail, (list, tuple)):
        return [str(message) for message in detail]
    if isinstance(detail, Mapping):
        return [f"{key}: {message}" for key, value in detail.items() for message in _messages(value)]
    return [str(detail)]
