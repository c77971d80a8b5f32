"""Translate ``(field, operator, value)`` conditions into Django ``Q`` objects.

SQL-style operators are mapped onto ORM lookups::

    ("price", ">=", 10)          -> Q(price__gte=10)
    ("status", "!=", "draft")    -> ~Q(status="draft")
    ("name", "like", "Ac%")      -> Q(name__startswith="Ac")
    ("id", "in", [1, 2])         -> Q(id__in=[1, 2])

Any other operator that is a plain identifier is used as a Django lookup
name as-is (``"icontains"``, ``"year"``, ``"date__gte"``).  Whether the
lookup exists on the field is left to the ORM (``FieldError``).
"""

from __future__ import annotations

import re
from typing import Any, Dict, Tuple

from django.db.models import Q

from repository.exceptions import InvalidCondition

# operator -> (lookup, negated)
OPERATORS: Dict[str, Tuple[str, bool]] = {
    "=": ("exact", False),
    "==": ("exact", False),
    "!=": ("exact", True),
    "<>": ("exact", True),
    ">": ("gt", False),
    ">=": ("gte", False),
    "<": ("lt", False),
    "<=": ("lte", False),
    "in": ("in", False),
    "not in": ("in", True),
    "between": ("range", False),
    "not between": ("range", True),
}

LIKE_OPERATORS: Dict[str, Tuple[bool, bool]] = {
    # operator -> (case_insensitive, negated)
    "like": (False, False),
    "not like": (False, True),
    "ilike": (True, False),
    "not ilike": (True, True),
}


def build_q(field: str, operator: str, value: Any) -> Q:
    """Return the ``Q`` object for a single condition."""
    if not isinstance(field, str) or not field:
        raise InvalidCondition(f"Condition field must be a non-empty string, got {field!r}.")
    if not isinstance(operator, str) or not operator.strip():
        raise InvalidCondition(f"Condition operator must be a string, got {operator!r}.")

    op = " ".join(operator.lower().split())

    if op in LIKE_OPERATORS:
        insensitive, negated = LIKE_OPERATORS[op]
        lookup, value = _like_lookup(value, insensitive)
    elif op in OPERATORS:
        lookup, negated = OPERATORS[op]
        if lookup == "range" and not _is_pair(value):
            raise InvalidCondition(
                f"Operator {operator!r} expects a (low, high) pair, got {value!r}."
            )
    elif op.isidentifier():
        lookup, negated = op, False
    else:
        raise InvalidCondition(f"Unsupported operator {operator!r}.")

    q = Q(**{f"{field}__{lookup}": value})
    return ~q if negated else q


def condition_to_q(key: str, value: Any) -> Q:
    """Interpret one ``find_where`` entry.

    A list/tuple value is a ``(field, operator, value)`` triple and ``key``
    is ignored; anything else is equality on ``key``.
    """
    if isinstance(value, (list, tuple)):
        if len(value) != 3:
            raise InvalidCondition(
                f"Condition {key!r} must be a (field, operator, value) triple, "
                f"got {len(value)} element(s)."
            )
        field, operator, operand = value
        return build_q(field, operator, operand)
    return build_q(key, "=", value)


def _is_pair(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and len(value) == 2


def _like_lookup(pattern: Any, insensitive: bool) -> Tuple[str, str]:
    """Map a SQL ``LIKE`` pattern onto the closest ORM lookup."""
    if not isinstance(pattern, str):
        raise InvalidCondition(f"LIKE pattern must be a string, got {pattern!r}.")

    prefix = "i" if insensitive else ""
    starts = pattern.startswith("%")
    ends = pattern.endswith("%") and len(pattern) > 1
    core = pattern[1 if starts else 0 : len(pattern) - 1 if ends else len(pattern)]

    if "%" in core or "_" in core:
        regex = "".join(
            ".*" if ch == "%" else "." if ch == "_" else re.escape(ch) for ch in pattern
        )
        return f"{prefix}regex", f"^{regex}$"
    if starts and ends:
        return f"{prefix}contains", core
    if ends:
        return f"{prefix}startswith", core
    if starts:
        return f"{prefix}endswith", core
    return f"{prefix}exact", core
