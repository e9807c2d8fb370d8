"""Tenant-scoped category management."""

from __future__ import annotations

import asyncio
import logging
import math
import random
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Final, Literal

from categorias.errors import (
    MissingRowError,
    NotFoundError,
    UniqueConstraintViolation,
    ValidationError,
)
from categorias.store import (
    RelationalStore,
    Row,
    Sort,
    Term,
    any_of,
    eq,
    icontains,
    ieq,
)

logger = logging.getLogger(__name__)


class Scope(Enum):
    UNSCOPED = "unscoped"


# Default tenant argument: no tenant filter at all (super-admin view).
# Passing ``None`` instead scopes to global rows only.
UNSCOPED: Final = Scope.UNSCOPED

TenantScope = str | None | Literal[Scope.UNSCOPED]

DEFAULT_COLORS: Final[tuple[str, ...]] = (
    "#1e3a5f",  # dark blue
    "#4a9eff",  # light blue
    "#10B981",  # green
    "#F59E0B",  # yellow
    "#EF4444",  # red
    "#8B5CF6",  # purple
    "#F97316",  # orange
    "#06B6D4",  # cyan
    "#84CC16",  # lime
    "#EC4899",  # pink
)

# ``id`` breaks timestamp ties so offset pages never overlap.
_NEWEST_FIRST: Final = (
    Sort("criado_em", descending=True),
    Sort("id", descending=True),
)


@dataclass(frozen=True)
class CategoryInput:
    nome: str
    cor: str
    descricao: str | None = None


@dataclass(frozen=True)
class CategoryRecord:
    id: str
    nome: str
    cor: str
    descricao: str | None
    tenant_id: str | None
    criado_em: datetime

    @classmethod
    def from_row(cls, row: Row) -> CategoryRecord:
        return cls(
            id=row["id"],
            nome=row["nome"],
            cor=row["cor"],
            descricao=row["descricao"],
            tenant_id=row["tenant_id"],
            criado_em=row["criado_em"],
        )

    def to_dict(self) -> dict[str, object]:
        """Serialize for JSON output."""
        return {
            "id": self.id,
            "nome": self.nome,
            "cor": self.cor,
            "descricao": self.descricao,
            "tenant_id": self.tenant_id,
            "criado_em": self.criado_em.isoformat(),
        }


@dataclass(frozen=True)
class CategoryPage:
    categories: list[CategoryRecord]
    total: int
    page: int
    page_size: int
    total_pages: int

    def to_dict(self) -> dict[str, object]:
        return {
            "categories": [category.to_dict() for category in self.categories],
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
        }


def _tenant_terms(tenant_id: TenantScope) -> list[Term]:
    if tenant_id is UNSCOPED:
        return []
    return [eq("tenant_id", tenant_id)]


def _stored_tenant(tenant_id: TenantScope) -> str | None:
    return None if tenant_id is UNSCOPED else tenant_id


class CategoryStore:
    """Category CRUD, search and find-or-create over a ``RelationalStore``.

    Holds no state between calls besides the injected store, so one instance
    can serve any number of concurrent requests.
    """

    def __init__(
        self,
        store: RelationalStore,
        *,
        palette: Sequence[str] = DEFAULT_COLORS,
        rng: random.Random | None = None,
    ) -> None:
        if not palette:
            raise ValueError("palette must contain at least one color")
        self._store = store
        self._palette = tuple(palette)
        self._rng = rng or random.Random()

    async def _require_visible(self, category_id: str, tenant_id: TenantScope) -> Row:
        row = await self._store.find_one(
            [eq("id", category_id), *_tenant_terms(tenant_id)]
        )
        if row is None:
            raise NotFoundError()
        return row

    async def get_categories(
        self,
        search: str | None = None,
        page: int = 1,
        page_size: int = 10,
        tenant_id: TenantScope = UNSCOPED,
    ) -> CategoryPage:
        """Return one page of categories, newest first."""
        if page < 1:
            raise ValidationError("Página deve ser maior que zero")
        if page_size < 1:
            raise ValidationError("Tamanho da página deve ser maior que zero")

        where = _tenant_terms(tenant_id)
        if search:
            where.append(
                any_of(icontains("nome", search), icontains("descricao", search))
            )

        try:
            async with asyncio.TaskGroup() as tg:
                rows_task = tg.create_task(
                    self._store.find_many(
                        where,
                        _NEWEST_FIRST,
                        skip=(page - 1) * page_size,
                        take=page_size,
                    )
                )
                total_task = tg.create_task(self._store.count(where))
        except ExceptionGroup as group:
            # The sibling query has been cancelled; surface the store error.
            raise group.exceptions[0] from None

        rows, total = rows_task.result(), total_task.result()
        return CategoryPage(
            categories=[CategoryRecord.from_row(row) for row in rows],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size),
        )

    async def get_category_by_id(
        self, category_id: str, tenant_id: TenantScope = UNSCOPED
    ) -> CategoryRecord:
        return CategoryRecord.from_row(
            await self._require_visible(category_id, tenant_id)
        )

    async def create_category(
        self, data: CategoryInput, tenant_id: TenantScope = UNSCOPED
    ) -> CategoryRecord:
        """Insert a category; a name collision raises UniqueConstraintViolation."""
        row = await self._store.create(
            {
                "nome": data.nome,
                "cor": data.cor,
                "descricao": data.descricao or None,
                "tenant_id": _stored_tenant(tenant_id),
            }
        )
        return CategoryRecord.from_row(row)

    async def update_category(
        self,
        category_id: str,
        data: CategoryInput,
        tenant_id: TenantScope = UNSCOPED,
    ) -> CategoryRecord:
        await self._require_visible(category_id, tenant_id)
        try:
            row = await self._store.update(
                category_id,
                {
                    "nome": data.nome,
                    "cor": data.cor,
                    "descricao": data.descricao or None,
                },
            )
        except MissingRowError as exc:
            # Deleted by someone else after the visibility check.
            raise NotFoundError() from exc
        return CategoryRecord.from_row(row)

    async def delete_category(
        self, category_id: str, tenant_id: TenantScope = UNSCOPED
    ) -> None:
        await self._require_visible(category_id, tenant_id)
        try:
            await self._store.delete(category_id)
        except MissingRowError as exc:
            raise NotFoundError() from exc

    async def get_all_categories(
        self, tenant_id: TenantScope = UNSCOPED
    ) -> list[CategoryRecord]:
        rows = await self._store.find_many(_tenant_terms(tenant_id), _NEWEST_FIRST)
        return [CategoryRecord.from_row(row) for row in rows]

    async def find_or_create_category_by_name(
        self, nome: str, tenant_id: TenantScope = UNSCOPED
    ) -> str:
        """Return the id of the category called ``nome``, creating it if needed.

        The name is trimmed and matched case-insensitively within the tenant
        scope. Nothing is locked: the insert is attempted optimistically and a
        unique-index collision means a concurrent caller created the row first,
        in which case that row is looked up and returned instead. Every caller
        racing on the same name therefore gets the same id.
        """
        cleaned = (nome or "").strip()
        if not cleaned:
            raise ValidationError("Nome da categoria é obrigatório")

        scope = _tenant_terms(tenant_id)
        lookup = [ieq("nome", cleaned), *scope]

        existing = await self._store.find_one(lookup)
        if existing is not None:
            return existing["id"]

        try:
            created = await self._store.create(
                {
                    "nome": cleaned,
                    "cor": self._rng.choice(self._palette),
                    "descricao": None,
                    "tenant_id": _stored_tenant(tenant_id),
                }
            )
        except UniqueConstraintViolation:
            winner = await self._store.find_one(lookup)
            if winner is None:
                # Index and query may disagree on case folding; try exact.
                winner = await self._store.find_one([eq("nome", cleaned), *scope])
            if winner is None:
                raise
            logger.debug(
                "Category %r was created concurrently, resolved to %s",
                cleaned,
                winner["id"],
            )
            return winner["id"]

        return created["id"]
