"""Filter expressions understood by the relational store.

A ``Where`` is a sequence of terms that must all hold. Each term is either a
single ``Condition`` on one column or an ``AnyOf`` group whose conditions are
OR-ed together. Terms are plain data; ``compile_where`` turns them into
SQLAlchemy clauses for a given mapped class.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy import ColumnElement, func, inspect, or_


class Op(str, Enum):
    """Comparison operators supported in conditions."""

    EQ = "eq"
    IEQ = "ieq"
    ICONTAINS = "icontains"


@dataclass(frozen=True)
class Condition:
    field: str
    op: Op
    value: Any


@dataclass(frozen=True)
class AnyOf:
    conditions: tuple[Condition, ...]


@dataclass(frozen=True)
class Sort:
    field: str
    descending: bool = False


Term = Condition | AnyOf
Where = Sequence[Term]


def eq(field: str, value: Any) -> Condition:
    """Exact equality. ``None`` matches SQL ``NULL``."""
    return Condition(field, Op.EQ, value)


def ieq(field: str, value: str) -> Condition:
    """Case-insensitive equality."""
    return Condition(field, Op.IEQ, value)


def icontains(field: str, value: str) -> Condition:
    """Case-insensitive literal substring match."""
    return Condition(field, Op.ICONTAINS, value)


def any_of(*conditions: Condition) -> AnyOf:
    return AnyOf(tuple(conditions))


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _column(model: type[Any], field: str) -> Any:
    if field not in inspect(model).columns:
        raise ValueError(f"Unknown field {field!r} for {model.__name__}")
    return getattr(model, field)


def compile_condition(model: type[Any], condition: Condition) -> ColumnElement[bool]:
    column = _column(model, condition.field)
    if condition.op is Op.EQ:
        if condition.value is None:
            return column.is_(None)
        return column == condition.value
    if condition.op is Op.IEQ:
        # Lower both sides in SQL so the lookup agrees with the unique index.
        return func.lower(column) == func.lower(condition.value)
    if condition.op is Op.ICONTAINS:
        return column.ilike(f"%{_escape_like(condition.value)}%", escape="\\")
    raise ValueError(f"Unsupported operator {condition.op!r}")


def compile_where(model: type[Any], where: Where) -> list[ColumnElement[bool]]:
    """Compile terms into clauses suitable for ``Select.where(*clauses)``."""
    clauses: list[ColumnElement[bool]] = []
    for term in where:
        if isinstance(term, AnyOf):
            if not term.conditions:
                raise ValueError("AnyOf requires at least one condition")
            clauses.append(
                or_(*(compile_condition(model, cond) for cond in term.conditions))
            )
        else:
            clauses.append(compile_condition(model, term))
    return clauses


def compile_order(model: type[Any], order_by: Sequence[Sort]) -> list[Any]:
    return [
        _column(model, sort.field).desc()
        if sort.descending
        else _column(model, sort.field).asc()
        for sort in order_by
    ]
