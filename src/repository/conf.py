"""Repository configuration.

Defaults live in the Django setting ``REPOSITORY``::

    REPOSITORY = {
        "PAGINATION": {"LIMIT": 15},
    }

``RepositoryConfig.from_settings()`` reads it once; repositories receive the
resulting immutable object at construction instead of reading settings on
every call.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from django.conf import settings
from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_PAGINATION_LIMIT = 15


class RepositoryConfig(BaseModel):
    """Immutable repository defaults."""

    model_config = ConfigDict(frozen=True)

    pagination_limit: int = DEFAULT_PAGINATION_LIMIT

    @field_validator("pagination_limit")
    @classmethod
    def limit_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Pagination limit must be greater than zero.")
        return v

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> RepositoryConfig:
        pagination = (data or {}).get("PAGINATION") or {}
        return cls(pagination_limit=pagination.get("LIMIT", DEFAULT_PAGINATION_LIMIT))

    @classmethod
    def from_settings(cls) -> RepositoryConfig:
        return cls.from_mapping(getattr(settings, "REPOSITORY", None))
