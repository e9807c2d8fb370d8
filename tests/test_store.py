from typing import TYPE_CHECKING

import pytest
from sqlalchemy.exc import IntegrityError

from categorias.errors import MissingRowError, StoreError, UniqueConstraintViolation
from categorias.models import Category
from categorias.store import SqlAlchemyStore, Sort, any_of, eq, icontains, ieq
from categorias.store.filters import AnyOf, compile_where
from categorias.store.relational import is_unique_violation

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from categorias.services.categories import CategoryStore

    CategoryEnv = tuple[CategoryStore, async_sessionmaker[AsyncSession]]


class _DriverError(Exception):
    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


def test_is_unique_violation_by_sqlstate() -> None:
    exc = IntegrityError("INSERT", {}, _DriverError("boom", sqlstate="23505"))
    assert is_unique_violation(exc)


def test_is_unique_violation_by_message() -> None:
    exc = IntegrityError(
        "INSERT", {}, _DriverError("UNIQUE constraint failed: categories.nome")
    )
    assert is_unique_violation(exc)


def test_is_unique_violation_rejects_other_integrity_errors() -> None:
    not_null = IntegrityError(
        "INSERT", {}, _DriverError("NOT NULL constraint failed", sqlstate="23502")
    )
    assert not is_unique_violation(not_null)


def test_compile_where_rejects_unknown_fields() -> None:
    with pytest.raises(ValueError, match="Unknown field"):
        compile_where(Category, [eq("color", "#fff")])


def test_compile_where_rejects_empty_any_of() -> None:
    with pytest.raises(ValueError):
        compile_where(Category, [AnyOf(())])


def test_compile_where_builds_one_clause_per_term() -> None:
    clauses = compile_where(
        Category,
        [
            eq("tenant_id", None),
            any_of(icontains("nome", "a"), icontains("descricao", "a")),
        ],
    )
    assert len(clauses) == 2
    assert "IS NULL" in str(clauses[0])
    assert " OR " in str(clauses[1])


@pytest.mark.asyncio
async def test_create_and_lookup_rows(category_env: "CategoryEnv") -> None:
    _, session_factory = category_env
    store = SqlAlchemyStore(session_factory, Category)

    row = await store.create({"nome": "Coffee", "cor": "#6F4E37", "tenant_id": "t1"})
    assert isinstance(row, dict)
    assert row["id"]
    assert row["criado_em"] is not None

    assert await store.find_one([ieq("nome", "COFFEE"), eq("tenant_id", "t1")])
    assert await store.find_one([eq("nome", "coffee")]) is None
    assert await store.count([eq("tenant_id", "t1")]) == 1
    assert await store.count([eq("tenant_id", "t2")]) == 0


@pytest.mark.asyncio
async def test_find_many_orders_and_slices(category_env: "CategoryEnv") -> None:
    _, session_factory = category_env
    store = SqlAlchemyStore(session_factory, Category)
    for nome in ("b", "c", "a"):
        await store.create({"nome": nome, "cor": "#000"})

    rows = await store.find_many(order_by=[Sort("nome")], skip=1, take=1)
    assert [row["nome"] for row in rows] == ["b"]

    rows = await store.find_many(order_by=[Sort("nome", descending=True)])
    assert [row["nome"] for row in rows] == ["c", "b", "a"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("stored", "clashing"),
    [("Pets", "PETS"), ("Saúde", "SAÚDE"), ("Educação", "EDUCAÇÃO")],
)
async def test_unique_index_is_case_insensitive_per_tenant(
    category_env: "CategoryEnv", stored: str, clashing: str
) -> None:
    _, session_factory = category_env
    store = SqlAlchemyStore(session_factory, Category)

    await store.create({"nome": stored, "cor": "#000", "tenant_id": "t1"})
    with pytest.raises(UniqueConstraintViolation):
        await store.create({"nome": clashing, "cor": "#000", "tenant_id": "t1"})

    await store.create({"nome": clashing, "cor": "#000", "tenant_id": "t2"})
    assert await store.find_one([ieq("nome", stored), eq("tenant_id", "t2")])


@pytest.mark.asyncio
async def test_unique_index_covers_global_rows(category_env: "CategoryEnv") -> None:
    _, session_factory = category_env
    store = SqlAlchemyStore(session_factory, Category)

    await store.create({"nome": "Pets", "cor": "#000", "tenant_id": None})
    with pytest.raises(UniqueConstraintViolation):
        await store.create({"nome": "pets", "cor": "#000", "tenant_id": None})


@pytest.mark.asyncio
async def test_other_integrity_errors_are_generic(category_env: "CategoryEnv") -> None:
    _, session_factory = category_env
    store = SqlAlchemyStore(session_factory, Category)

    with pytest.raises(StoreError) as exc_info:
        await store.create({"nome": None, "cor": "#000"})
    assert not isinstance(exc_info.value, UniqueConstraintViolation)
    assert isinstance(exc_info.value.__cause__, IntegrityError)


@pytest.mark.asyncio
async def test_update_and_delete_missing_rows(category_env: "CategoryEnv") -> None:
    _, session_factory = category_env
    store = SqlAlchemyStore(session_factory, Category)

    with pytest.raises(MissingRowError):
        await store.update("missing", {"nome": "x"})
    with pytest.raises(MissingRowError):
        await store.delete("missing")


@pytest.mark.asyncio
async def test_update_rename_collision_raises(category_env: "CategoryEnv") -> None:
    _, session_factory = category_env
    store = SqlAlchemyStore(session_factory, Category)

    await store.create({"nome": "A", "cor": "#000", "tenant_id": "t1"})
    other = await store.create({"nome": "B", "cor": "#000", "tenant_id": "t1"})

    with pytest.raises(UniqueConstraintViolation):
        await store.update(other["id"], {"nome": "a"})

    assert (await store.find_one([eq("id", other["id"])]))["nome"] == "B"


@pytest.mark.asyncio
async def test_unknown_fields_rejected(category_env: "CategoryEnv") -> None:
    _, session_factory = category_env
    store = SqlAlchemyStore(session_factory, Category)

    with pytest.raises(ValueError, match="color"):
        await store.create({"nome": "A", "color": "#000"})
