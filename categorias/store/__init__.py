"""Persistence layer: filter expressions and the relational store."""

from categorias.store.filters import (
    AnyOf,
    Condition,
    Op,
    Sort,
    Term,
    Where,
    any_of,
    eq,
    icontains,
    ieq,
)
from categorias.store.relational import RelationalStore, Row, SqlAlchemyStore

__all__ = [
    "AnyOf",
    "Condition",
    "Op",
    "RelationalStore",
    "Row",
    "Sort",
    "SqlAlchemyStore",
    "Term",
    "Where",
    "any_of",
    "eq",
    "icontains",
    "ieq",
]
