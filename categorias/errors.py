"""Errors raised by the category store and its persistence layer."""

from __future__ import annotations


class CategoryError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(CategoryError):
    """Input rejected before reaching the database."""


class NotFoundError(CategoryError):
    """The row does not exist or is not visible in the caller's tenant scope."""

    def __init__(self, message: str = "Categoria não encontrada") -> None:
        super().__init__(message)


class StoreError(CategoryError):
    """Generic persistence failure (connectivity, constraints, driver errors)."""


class UniqueConstraintViolation(StoreError):
    """An insert or update collided with a unique index."""


class MissingRowError(StoreError):
    """A keyed update or delete found no row to act on."""
