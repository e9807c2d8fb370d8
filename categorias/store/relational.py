"""Relational store backed by SQLAlchemy async sessions."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any, Protocol

from sqlalchemy import func, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from categorias.errors import MissingRowError, StoreError, UniqueConstraintViolation
from categorias.store.filters import Sort, Where, compile_order, compile_where

Row = dict[str, Any]

_UNIQUE_SQLSTATE = "23505"
_UNIQUE_MESSAGES = (
    "UNIQUE constraint failed",
    "duplicate key value violates unique constraint",
)


class RelationalStore(Protocol):
    """Persistence capability the category store depends on."""

    async def find_one(self, where: Where) -> Row | None: ...

    async def find_many(
        self,
        where: Where = (),
        order_by: Sequence[Sort] = (),
        skip: int | None = None,
        take: int | None = None,
    ) -> list[Row]: ...

    async def count(self, where: Where = ()) -> int: ...

    async def create(self, fields: Mapping[str, Any]) -> Row: ...

    async def update(self, key: Any, fields: Mapping[str, Any]) -> Row: ...

    async def delete(self, key: Any) -> None: ...


def is_unique_violation(exc: IntegrityError) -> bool:
    """Tell a unique-index collision apart from other integrity failures."""
    candidates = [exc.orig, getattr(exc.orig, "__cause__", None)]
    for candidate in candidates:
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(
            candidate, "pgcode", None
        )
        if code == _UNIQUE_SQLSTATE:
            return True
    message = str(exc.orig)
    return any(fragment in message for fragment in _UNIQUE_MESSAGES)


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except IntegrityError as exc:
        if is_unique_violation(exc):
            raise UniqueConstraintViolation(f"{action}: {exc.orig}") from exc
        raise StoreError(f"{action}: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        raise StoreError(f"{action}: {exc}") from exc


def _to_row(instance: Any) -> Row:
    mapper = inspect(type(instance))
    return {attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs}


class SqlAlchemyStore:
    """``RelationalStore`` over one mapped class.

    Every call runs in its own session and commits its own write, so calls are
    independent units of work and may be awaited concurrently.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        model: type[Any],
    ) -> None:
        self._session_factory = session_factory
        self._model = model

    def _check_fields(self, fields: Mapping[str, Any]) -> None:
        columns = inspect(self._model).columns
        unknown = sorted(name for name in fields if name not in columns)
        if unknown:
            raise ValueError(
                f"Unknown fields for {self._model.__name__}: {', '.join(unknown)}"
            )

    async def find_one(self, where: Where) -> Row | None:
        stmt = select(self._model).where(*compile_where(self._model, where)).limit(1)
        with _translate_errors(f"find {self._model.__name__}"):
            async with self._session_factory() as db:
                result = await db.execute(stmt)
                instance = result.scalar_one_or_none()
                return _to_row(instance) if instance is not None else None

    async def find_many(
        self,
        where: Where = (),
        order_by: Sequence[Sort] = (),
        skip: int | None = None,
        take: int | None = None,
    ) -> list[Row]:
        stmt = (
            select(self._model)
            .where(*compile_where(self._model, where))
            .order_by(*compile_order(self._model, order_by))
        )
        if skip:
            stmt = stmt.offset(skip)
        if take is not None:
            stmt = stmt.limit(take)

        with _translate_errors(f"list {self._model.__name__}"):
            async with self._session_factory() as db:
                result = await db.execute(stmt)
                return [_to_row(instance) for instance in result.scalars()]

    async def count(self, where: Where = ()) -> int:
        stmt = (
            select(func.count())
            .select_from(self._model)
            .where(*compile_where(self._model, where))
        )
        with _translate_errors(f"count {self._model.__name__}"):
            async with self._session_factory() as db:
                result = await db.execute(stmt)
                return int(result.scalar_one())

    async def create(self, fields: Mapping[str, Any]) -> Row:
        self._check_fields(fields)
        instance = self._model(**fields)
        with _translate_errors(f"create {self._model.__name__}"):
            async with self._session_factory() as db:
                db.add(instance)
                await db.commit()
                # Reload so values read back the same way later lookups see them.
                await db.refresh(instance)
                return _to_row(instance)

    async def update(self, key: Any, fields: Mapping[str, Any]) -> Row:
        self._check_fields(fields)
        with _translate_errors(f"update {self._model.__name__}"):
            async with self._session_factory() as db:
                instance = await db.get(self._model, key)
                if instance is None:
                    raise MissingRowError(
                        f"{self._model.__name__} {key!r} not found"
                    )
                for name, value in fields.items():
                    setattr(instance, name, value)
                await db.flush()
                row = _to_row(instance)
                await db.commit()
        return row

    async def delete(self, key: Any) -> None:
        with _translate_errors(f"delete {self._model.__name__}"):
            async with self._session_factory() as db:
                instance = await db.get(self._model, key)
                if instance is None:
                    raise MissingRowError(
                        f"{self._model.__name__} {key!r} not found"
                    )
                await db.delete(instance)
                await db.commit()
