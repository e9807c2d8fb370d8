import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from categorias.database import create_category_store, install_unicode_lower
from categorias.models import Base
from categorias.services.categories import CategoryStore


@pytest.fixture
async def category_env(
    tmp_path,
) -> tuple[CategoryStore, async_sessionmaker[AsyncSession]]:
    # File-backed so concurrent sessions see each other's commits.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'categorias.db'}")
    install_unicode_lower(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    yield create_category_store(session_factory), session_factory

    await engine.dispose()
