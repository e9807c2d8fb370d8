"""Logging configuration helpers for the category store."""

from __future__ import annotations

import logging
import os
from typing import Final


_DEFAULT_FORMAT: Final[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DEFAULT_DATEFMT: Final[str] = "%Y-%m-%d %H:%M:%S"

APP_LOGGER: Final[str] = "categorias"
# INFO on this logger prints every statement SQLAlchemy emits.
SQL_LOGGER: Final[str] = "sqlalchemy.engine"


def _resolve_level(level_name: str | None, default: int) -> int:
    """Parse a level name or number; blank or unknown values give ``default``."""
    if not level_name or not level_name.strip():
        return default

    value = level_name.strip()
    if value.isdigit():
        return int(value)

    numeric = logging.getLevelName(value.upper())
    return numeric if isinstance(numeric, int) else default


def _attach_console(name: str, level: int) -> logging.Logger:
    target = logging.getLogger(name)
    if not target.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT, _DEFAULT_DATEFMT))
        target.addHandler(handler)
    target.setLevel(level)
    target.propagate = False
    return target


def configure_logging(*, debug: bool = False) -> None:
    """Stream the ``categorias`` and SQLAlchemy engine loggers to the console.

    ``LOG_LEVEL`` overrides the package level (DEBUG when ``debug`` is set,
    otherwise INFO). SQL statements are echoed only in debug mode unless
    ``SQL_LOG_LEVEL`` says otherwise.
    """
    app_default = logging.DEBUG if debug else logging.INFO
    sql_default = logging.INFO if debug else logging.WARNING

    _attach_console(APP_LOGGER, _resolve_level(os.getenv("LOG_LEVEL"), app_default))
    _attach_console(
        SQL_LOGGER, _resolve_level(os.getenv("SQL_LOG_LEVEL"), sql_default)
    )
