"""Generic repository layer for the Django ORM.

Criteria shape the query, validators guard writes, presenters shape the
output; ``BaseRepository`` orchestrates all three for one model.
"""

from repository.base import BaseRepository
from repository.conf import RepositoryConfig
from repository.criteria import (
    CriteriaQueue,
    FilterSetCriterion,
    OrderByCriterion,
    SearchCriterion,
    WhereCriterion,
)
from repository.exceptions import (
    ConstructionError,
    EntityNotFound,
    InvalidCondition,
    RepositoryException,
    ValidationFailed,
)
from repository.fields import FieldRestriction, entity_to_dict, serialize
from repository.interfaces import (
    Criterion,
    IRepository,
    IRepositoryCriteria,
    Presenter,
    RuleScope,
    Validator,
)
from repository.presenters import SerializerPresenter
from repository.validators import SerializerValidator, Unique

__all__ = [
    # Repository
    "BaseRepository",
    "RepositoryConfig",
    # Contracts
    "Criterion",
    "IRepository",
    "IRepositoryCriteria",
    "Presenter",
    "RuleScope",
    "Validator",
    # Criteria
    "CriteriaQueue",
    "FilterSetCriterion",
    "OrderByCriterion",
    "SearchCriterion",
    "WhereCriterion",
    # Collaborators
    "FieldRestriction",
    "entity_to_dict",
    "serialize",
    "SerializerPresenter",
    "SerializerValidator",
    "Unique",
    # Exceptions
    "ConstructionError",
    "EntityNotFound",
    "InvalidCondition",
    "RepositoryException",
    "ValidationFailed",
]
