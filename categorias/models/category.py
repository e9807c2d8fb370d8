"""Category model."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, String, Text, func, literal_column
from sqlalchemy.orm import Mapped, mapped_column

from categorias.models.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Category(Base):
    """Tenant-owned category. ``tenant_id`` null means a global category."""

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    nome: Mapped[str] = mapped_column(String(100))
    cor: Mapped[str] = mapped_column(String(20))
    descricao: Mapped[str | None] = mapped_column(Text, nullable=True)
    tenant_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    criado_em: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(UTC), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id!r}, nome={self.nome!r})>"


# One name per tenant, compared case-insensitively. Global rows (null tenant)
# share a single scope. On SQLite this relies on the Unicode-aware ``lower()``
# installed by ``categorias.database.install_unicode_lower``.
Index(
    "uq_categories_tenant_nome",
    func.coalesce(Category.tenant_id, literal_column("''")),
    func.lower(Category.nome),
    unique=True,
)
