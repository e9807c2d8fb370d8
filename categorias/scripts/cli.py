"""CLI tool for managing categories."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Coroutine
from typing import Any

from categorias.config import config
from categorias.database import AsyncSessionLocal, create_category_store, init_db
from categorias.errors import CategoryError
from categorias.logging_config import configure_logging
from categorias.services.categories import UNSCOPED, CategoryInput, TenantScope


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


async def list_categories(
    tenant_id: TenantScope,
    search: str | None,
    page: int,
    page_size: int,
) -> None:
    """Print one page of categories."""
    await init_db()
    store = create_category_store(AsyncSessionLocal)
    result = await store.get_categories(search, page, page_size, tenant_id)
    _print_json(result.to_dict())


async def show_category(category_id: str, tenant_id: TenantScope) -> None:
    await init_db()
    store = create_category_store(AsyncSessionLocal)
    category = await store.get_category_by_id(category_id, tenant_id)
    _print_json(category.to_dict())


async def create_category(
    tenant_id: TenantScope, nome: str, cor: str, descricao: str | None
) -> None:
    await init_db()
    store = create_category_store(AsyncSessionLocal)
    category = await store.create_category(
        CategoryInput(nome=nome, cor=cor, descricao=descricao), tenant_id
    )
    _print_json(category.to_dict())


async def update_category(
    category_id: str,
    tenant_id: TenantScope,
    nome: str,
    cor: str,
    descricao: str | None,
) -> None:
    await init_db()
    store = create_category_store(AsyncSessionLocal)
    category = await store.update_category(
        category_id, CategoryInput(nome=nome, cor=cor, descricao=descricao), tenant_id
    )
    _print_json(category.to_dict())


async def delete_category(category_id: str, tenant_id: TenantScope) -> None:
    await init_db()
    store = create_category_store(AsyncSessionLocal)
    await store.delete_category(category_id, tenant_id)
    print(f"Deleted category {category_id}")


async def ensure_category(nome: str, tenant_id: TenantScope) -> None:
    """Print the id of ``nome``, creating the category on first use."""
    await init_db()
    store = create_category_store(AsyncSessionLocal)
    print(await store.find_or_create_category_by_name(nome, tenant_id))


def _tenant_scope(args: argparse.Namespace) -> TenantScope:
    if args.global_scope:
        return None
    if args.tenant:
        return args.tenant
    return UNSCOPED


def _run(coro: Coroutine[Any, Any, None]) -> None:
    try:
        asyncio.run(coro)
    except CategoryError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


def main() -> None:
    parser = argparse.ArgumentParser(description="Category management CLI.")
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--tenant", help="Tenant id (omit to see every tenant)")
    scope.add_argument(
        "--global",
        dest="global_scope",
        action="store_true",
        help="Only categories without a tenant",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create database tables")

    list_parser = subparsers.add_parser("list", help="List categories")
    list_parser.add_argument("--search", help="Match name or description")
    list_parser.add_argument("--page", type=int, default=1)
    list_parser.add_argument(
        "--page-size", type=int, default=config.DEFAULT_PAGE_SIZE
    )

    show_parser = subparsers.add_parser("show", help="Show one category")
    show_parser.add_argument("id")

    for name, help_text in (
        ("create", "Create a category"),
        ("update", "Replace a category's fields"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        if name == "update":
            sub.add_argument("id")
        sub.add_argument("--nome", required=True, help="Category name")
        sub.add_argument("--cor", required=True, help="Color, e.g. #FF0000")
        sub.add_argument("--descricao", help="Optional description")

    delete_parser = subparsers.add_parser("delete", help="Delete a category")
    delete_parser.add_argument("id")

    ensure_parser = subparsers.add_parser(
        "ensure", help="Find a category by name or create it"
    )
    ensure_parser.add_argument("nome")

    args = parser.parse_args()
    configure_logging(debug=config.DEBUG)
    tenant_id = _tenant_scope(args)

    if args.command == "init-db":
        _run(init_db())
    elif args.command == "list":
        _run(list_categories(tenant_id, args.search, args.page, args.page_size))
    elif args.command == "show":
        _run(show_category(args.id, tenant_id))
    elif args.command == "create":
        _run(create_category(tenant_id, args.nome, args.cor, args.descricao))
    elif args.command == "update":
        _run(
            update_category(args.id, tenant_id, args.nome, args.cor, args.descricao)
        )
    elif args.command == "delete":
        _run(delete_category(args.id, tenant_id))
    elif args.command == "ensure":
        _run(ensure_category(args.nome, tenant_id))


if __name__ == "__main__":
    main()
