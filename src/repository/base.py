"""Generic Django ORM repository.

``BaseRepository`` binds one model class and runs every operation through
the same pipeline::

    pending criteria -> default ordering (reads) -> ORM -> fresh queryset -> presenter

The live ``queryset`` is never reused across operations: every terminal
call rebinds it to ``Model._default_manager.all()`` on exit, also when the
call raised, so no filter, ordering or limit leaks into the next query.

Subclasses declare the binding as class attributes::

    class CustomerRepository(BaseRepository):
        model = "customers.Customer"
        presenter_class = CustomerPresenter
        rules = {RuleScope.CREATE: {...}, RuleScope.UPDATE: {...}}
        searchable_fields = {"name": "like", "email": "="}
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Union

import structlog
from django.apps import apps
from django.core.exceptions import ValidationError
from django.core.paginator import Page, Paginator
from django.db import models, transaction

from repository.conditions import condition_to_q
from repository.conf import RepositoryConfig
from repository.criteria import CriteriaQueue
from repository.exceptions import ConstructionError, EntityNotFound
from repository.fields import FieldRestriction, restrict
from repository.interfaces import (
    Criterion,
    IRepository,
    IRepositoryCriteria,
    Presenter,
    RuleScope,
    Validator,
)
from repository.validators import SerializerValidator

logger = structlog.get_logger(__name__)

_ID_COLLECTIONS = (list, tuple, set, frozenset)


class BaseRepository(IRepository, IRepositoryCriteria):
    """Concrete repository pipeline; subclass and set ``model``."""

    model: Union[type, str, None] = None
    presenter_class: Optional[type] = None
    validator_class: Optional[type] = None
    rules: Any = None
    searchable_fields: Union[Sequence[str], Mapping[str, str]] = ()
    order_field: Optional[str] = None
    order_direction: str = "asc"

    def __init__(
        self,
        config: Optional[RepositoryConfig] = None,
        presenter: Any = None,
        validator: Any = None,
    ) -> None:
        self.config = config or RepositoryConfig.from_settings()
        self._criteria = CriteriaQueue()
        self._skip_criteria = False
        self._skip_presenter = False
        self._limit: Optional[int] = None
        self.presenter: Optional[Presenter] = None
        self.validator: Optional[Validator] = None

        self.model_class: type = self._resolve_model(self.model)
        self.make_model()
        self.make_presenter(presenter)
        self.make_validator(validator)
        self.boot()

    def boot(self) -> None:
        """Hook for subclasses, e.g. to push default criteria."""

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    def _resolve_model(self, model: Any) -> type:
        name = type(self).__name__
        if model is None:
            raise ConstructionError(f"{name}.model is not set.")
        if isinstance(model, str):
            try:
                model = apps.get_model(model)
            except (LookupError, ValueError) as exc:
                raise ConstructionError(f"{name}.model {model!r} is not an installed model.") from exc
        if not (isinstance(model, type) and issubclass(model, models.Model)):
            raise ConstructionError(f"{name}.model must be a django.db.models.Model subclass, got {model!r}.")
        if model._meta.abstract:
            raise ConstructionError(f"{name}.model {model.__name__} is abstract.")
        return model

    def make_model(self) -> models.QuerySet:
        """Rebind the live queryset to a fresh, unfiltered one."""
        self._limit = None
        self._restriction = FieldRestriction()
        self.queryset = self.model_class._default_manager.all()
        return self.queryset

    def make_presenter(self, presenter: Any = None) -> Optional[Presenter]:
        presenter = presenter if presenter is not None else self.presenter_class
        if presenter is None:
            return None
        self.presenter = _instantiate(presenter, Presenter, "presenter")
        return self.presenter

    def set_presenter(self, presenter: Any) -> BaseRepository:
        self.make_presenter(presenter)
        return self

    def get_validator(self) -> Optional[Validator]:
        """Validator used when none is given explicitly."""
        if self.validator_class is not None:
            return _instantiate(self.validator_class, Validator, "validator")
        if self.rules is not None:
            return SerializerValidator(self.rules)
        return None

    def make_validator(self, validator: Any = None) -> Optional[Validator]:
        if validator is None:
            validator = self.get_validator()
        if validator is None:
            return None
        self.validator = _instantiate(validator, Validator, "validator")
        return self.validator

    @contextmanager
    def _resetting(self) -> Iterator[None]:
        try:
            yield
        finally:
            self.make_model()

    @contextmanager
    def _presenter_skipped(self) -> Iterator[None]:
        previous = self._skip_presenter
        self.skip_presenter(True)
        try:
            yield
        finally:
            self.skip_presenter(previous)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def all(self, columns: Optional[Sequence[str]] = None, count: bool = False) -> Any:
        """Retrieve every entity matching the pending criteria.

        With ``count=True`` the raw row count is returned: no ordering is
        applied and the presenter is bypassed.
        """
        with self._resetting():
            self.apply_criteria()
            if count:
                return self._limited().count()
            self.apply_order()
            results = self._restricted(list(_select(self._limited(), columns)))
        return self.parse_result(results)

    def paginate(
        self,
        limit: Optional[int] = None,
        columns: Optional[Sequence[str]] = None,
        page: int = 1,
    ) -> Any:
        """Retrieve one page; ``limit`` defaults to the configured page size.

        Raises ``InvalidPage`` for a page number out of range.
        """
        with self._resetting():
            self.apply_criteria().apply_order()
            limit = limit or self.config.pagination_limit
            paginator = Paginator(_select(self._limited(), columns), limit)
            results: Page = paginator.page(page)
            results.object_list = list(results.object_list)
            self._restricted(results)
        return self.parse_result(results)

    def find(self, id: Any, columns: Optional[Sequence[str]] = None) -> Any:
        """Retrieve an entity by primary key.

        Raises ``EntityNotFound`` if no row matches or ``id`` is malformed.
        """
        with self._resetting():
            self.apply_criteria().apply_order()
            try:
                entity = _select(self.queryset, columns).get(pk=id)
            except (self.model_class.DoesNotExist, ValueError, ValidationError) as exc:
                logger.info("repository.not_found", model=self.model_class.__name__, id=str(id))
                raise EntityNotFound(f"{self.model_class.__name__} {id} not found.") from exc
            self._restricted(entity)
        return self.parse_result(entity)

    def find_by(
        self,
        field: str,
        value: Any,
        columns: Optional[Sequence[str]] = None,
        count: bool = False,
    ) -> Any:
        """Retrieve entities whose ``field`` equals ``value`` (Django lookups allowed)."""
        with self._resetting():
            self.apply_criteria()
            self.queryset = self.queryset.filter(**{field: value})
            if count:
                return self._limited().count()
            self.apply_order()
            results = self._restricted(list(_select(self._limited(), columns)))
        return self.parse_result(results)

    def find_where(
        self,
        conditions: Dict[str, Any],
        columns: Optional[Sequence[str]] = None,
        count: bool = False,
    ) -> Any:
        """Retrieve entities matching every condition (ANDed).

        Values are either compared for equality with their key or are a
        ``(field, operator, value)`` triple; see ``repository.conditions``.
        """
        with self._resetting():
            self.apply_criteria()
            for key, value in conditions.items():
                self.queryset = self.queryset.filter(condition_to_q(key, value))
            if count:
                return self._limited().count()
            self.apply_order()
            results = self._restricted(list(_select(self._limited(), columns)))
        return self.parse_result(results)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, attributes: Dict[str, Any]) -> Any:
        """Validate ``attributes`` under the create scope and persist a new entity.

        Raises ``ValidationFailed`` before touching storage.
        """
        log = logger.bind(model=self.model_class.__name__)
        with self._resetting():
            if self.validator is not None:
                self.validator.with_data(attributes).set_id(None).pass_or_fail(RuleScope.CREATE)
            with transaction.atomic():
                entity = self.model_class._default_manager.create(**attributes)
            self._restricted(entity)
        log.info("repository.created", id=str(entity.pk))
        return self.parse_result(entity)

    def first_or_create(self, attributes: Dict[str, Any]) -> Any:
        """Return the first entity matching all ``attributes`` exactly, or create it."""
        restriction = self._restriction
        with self._presenter_skipped():
            matches = self.take(1).find_where(attributes)
        if matches:
            return self.parse_result(matches[0])
        self.make_model()
        self._restriction = restriction
        return self.create(attributes)

    def update(self, attributes: Dict[str, Any], id: Any) -> Any:
        """Validate ``attributes`` under the update scope, then apply them to entity ``id``.

        Validation runs before the entity is fetched. Raises
        ``EntityNotFound`` if the entity does not exist.
        """
        log = logger.bind(model=self.model_class.__name__, id=str(id))
        with self._resetting():
            if self.validator is not None:
                self.validator.with_data(attributes).set_id(id).pass_or_fail(RuleScope.UPDATE)
            with self._presenter_skipped(), transaction.atomic():
                entity = self.find(id)
                self._fill(entity, attributes)
                entity.save()
        log.info("repository.updated", fields=sorted(attributes))
        return self.parse_result(entity)

    def delete(self, id: Any) -> int:
        """Delete one entity or a collection of ids; returns the number removed.

        Each entity's own ``delete()`` runs, so soft deletes are honoured.
        Missing or malformed ids are skipped. Pending criteria are ignored.
        """
        ids = self._valid_keys(id if isinstance(id, _ID_COLLECTIONS) else [id])
        deleted = 0
        with self._resetting():
            self.make_model()
            with transaction.atomic():
                for entity in self.queryset.filter(pk__in=ids):
                    removed, _ = entity.delete()
                    if removed:
                        deleted += 1
        logger.info("repository.deleted", model=self.model_class.__name__, count=deleted)
        return deleted

    def _valid_keys(self, ids: Iterable[Any]) -> List[Any]:
        pk = self.model_class._meta.pk
        keys = []
        for value in ids:
            try:
                keys.append(pk.to_python(value))
            except ValidationError:
                logger.info("repository.not_found", model=self.model_class.__name__, id=str(value))
        return keys

    def _fill(self, entity: models.Model, attributes: Dict[str, Any]) -> None:
        fields = entity._meta.concrete_fields
        allowed = {f.name for f in fields} | {f.attname for f in fields}
        unknown = sorted(set(attributes) - allowed)
        if unknown:
            raise TypeError(
                f"{type(entity).__name__} got unexpected field(s): {', '.join(unknown)}."
            )
        for name, value in attributes.items():
            setattr(entity, name, value)

    # ------------------------------------------------------------------
    # Modifiers
    # ------------------------------------------------------------------

    def take(self, limit: int) -> BaseRepository:
        """Return at most ``limit`` rows from the next query."""
        self._limit = limit
        return self

    def order_by(self, column: str, direction: str = "asc") -> BaseRepository:
        """Append an ordering key; any direction other than ``"asc"`` is descending."""
        prefix = "" if direction.lower() == "asc" else "-"
        self.queryset = self.queryset.order_by(*self.queryset.query.order_by, f"{prefix}{column}")
        return self

    def apply_order(self) -> BaseRepository:
        """Order by ``order_field`` (or the primary key) unless ordered explicitly."""
        if not self.queryset.query.order_by:
            field = self.order_field if self.order_field is not None else self.get_key_name()
            self.order_by(field, self.order_direction)
        return self

    def get_key_name(self) -> str:
        return self.model_class._meta.pk.name

    def with_relations(self, *relations: Any) -> BaseRepository:
        """Prefetch relations, given as names or as a single sequence."""
        if len(relations) == 1 and isinstance(relations[0], (list, tuple, set)):
            relations = tuple(relations[0])
        self.queryset = self.queryset.prefetch_related(*relations)
        return self

    def hidden(self, fields: Iterable[str]) -> BaseRepository:
        """Leave ``fields`` out of the serialized form of the next raw entities.

        The columns are deferred as well, so they are not loaded.
        """
        fields = list(fields)
        self._restriction = self._restriction.hide(fields)
        self.queryset = self.queryset.defer(*fields)
        return self

    def visible(self, fields: Iterable[str]) -> BaseRepository:
        """Keep only ``fields`` in the serialized form of the next raw entities."""
        fields = list(fields)
        self._restriction = self._restriction.show(fields)
        self.queryset = self.queryset.only(*fields)
        return self

    def get_searchable_fields(self) -> Union[Sequence[str], Mapping[str, str]]:
        return self.searchable_fields

    def _limited(self) -> models.QuerySet:
        if self._limit is None:
            return self.queryset
        return self.queryset[: self._limit]

    def _restricted(self, result: Any) -> Any:
        return restrict(result, self._restriction)

    # ------------------------------------------------------------------
    # Criteria & presenter
    # ------------------------------------------------------------------

    def skip_presenter(self, status: bool = True) -> BaseRepository:
        """Return raw entities instead of presented output until turned back off."""
        self._skip_presenter = status
        return self

    @property
    def is_skipping_presenter(self) -> bool:
        return self._skip_presenter

    def push_criteria(self, criterion: Criterion) -> BaseRepository:
        """Queue ``criterion`` for the next read."""
        self._criteria.push(criterion)
        return self

    def get_criteria(self) -> CriteriaQueue:
        return self._criteria

    def get_by_criteria(self, criterion: Criterion) -> Any:
        """Run ``criterion`` alone, leaving the pending queue untouched."""
        if not isinstance(criterion, Criterion):
            raise TypeError(f"{type(criterion).__name__} must be an instance of repository.Criterion.")
        with self._resetting():
            self.queryset = criterion.apply(self.queryset, self)
            results = self._restricted(list(self._limited()))
        return self.parse_result(results)

    def skip_criteria(self, status: bool = True) -> BaseRepository:
        """Ignore (but keep) pending criteria until turned back off."""
        self._skip_criteria = status
        return self

    @property
    def is_skipping_criteria(self) -> bool:
        return self._skip_criteria

    def reset_criteria(self) -> BaseRepository:
        self._criteria.reset()
        return self

    def apply_criteria(self) -> BaseRepository:
        """Drain pending criteria into the live queryset."""
        self.queryset = self._criteria.drain_into(self.queryset, self)
        return self

    def parse_result(self, result: Any) -> Any:
        """Present ``result`` unless the presenter is skipped or absent."""
        if not self._skip_presenter and self.presenter is not None:
            return self.presenter.present(result)
        return result


def _select(queryset: models.QuerySet, columns: Optional[Sequence[str]]) -> models.QuerySet:
    if not columns or list(columns) == ["*"]:
        return queryset
    return queryset.only(*columns)


def _instantiate(candidate: Any, contract: type, role: str) -> Any:
    """Instantiate ``candidate`` if it is a class and check it fulfils ``contract``."""
    if isinstance(candidate, type):
        if not issubclass(candidate, contract):
            raise ConstructionError(
                f"Class {candidate.__name__} must be a subclass of repository.{contract.__name__}."
            )
        candidate = candidate()
    if not isinstance(candidate, contract):
        raise ConstructionError(
            f"{type(candidate).__name__} is not a valid {role}: "
            f"expected an instance of repository.{contract.__name__}."
        )
    return candidate

