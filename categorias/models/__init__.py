"""Database models for the category store."""

from categorias.models.base import Base
from categorias.models.category import Category

__all__ = ["Base", "Category"]
