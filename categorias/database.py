"""Database session management."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from categorias.config import config
from categorias.models import Base, Category
from categorias.services.categories import CategoryStore
from categorias.store import SqlAlchemyStore


logger = logging.getLogger(__name__)


def _to_async_url(url: str) -> str:
    if url.startswith("sqlite+aiosqlite:"):
        return url
    if url.startswith("sqlite:"):
        return url.replace("sqlite:", "sqlite+aiosqlite:", 1)
    if url.startswith("postgresql+asyncpg:"):
        return url
    if url.startswith("postgresql:"):
        return url.replace("postgresql:", "postgresql+asyncpg:", 1)
    return url


def _unicode_lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def install_unicode_lower(engine: AsyncEngine) -> None:
    """Make ``lower()`` fold non-ASCII letters on SQLite connections.

    SQLite's built-in ``lower()`` only folds ASCII, so ``Saúde`` and ``SAÚDE``
    would count as different names. The unique name index, ``ieq`` lookups and
    ``ilike`` searches all go through ``lower()``, so overriding it on every
    connection keeps them in agreement. Other backends are left alone.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _register_lower(dbapi_connection: Any, _connection_record: Any) -> None:
        dbapi_connection.create_function(
            "lower", 1, _unicode_lower, deterministic=True
        )


database_url = _to_async_url(config.DATABASE_URL)

engine = create_async_engine(database_url)
install_unicode_lower(engine)
AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def init_db() -> None:
    """Create missing tables and indexes."""
    logger.info("Ensuring schema on %s", engine.url.render_as_string())
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def create_category_store(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> CategoryStore:
    """Build a :class:`CategoryStore` over the given (or default) sessions."""
    return CategoryStore(
        SqlAlchemyStore(session_factory or AsyncSessionLocal, Category)
    )
