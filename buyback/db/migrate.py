"""Small idempotent migrations for SQLite databases.

Databases created by the first (hard delete) release have an ``assets`` table
without ``updated_at``/``status_log``. ``run_migrations`` adds the columns and
backfills them so those rows show up as active in the audit export.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


def _column_names(engine: Engine, table: str) -> set[str]:
    return {column["name"] for column in inspect(engine).get_columns(table)}


def _add_column(engine: Engine, table: str, col_def: str) -> None:
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col_def}"))


def _create_index_if_not_exists(engine: Engine, table: str, name: str, cols: Iterable[str]) -> None:
    cols_sql = ", ".join(cols)
    with engine.begin() as conn:
        conn.execute(text(f"CREATE INDEX IF NOT EXISTS {name} ON {table} ({cols_sql})"))


def run_migrations(engine: Engine) -> None:
    if engine.dialect.name != "sqlite":
        return
    if not inspect(engine).has_table("assets"):
        return

    columns = _column_names(engine, "assets")
    if "updated_at" not in columns:
        logger.info("migrate.add_column", extra={"extra_data": {"column": "updated_at"}})
        _add_column(engine, "assets", "updated_at TEXT")
        with engine.begin() as conn:
            conn.execute(text("UPDATE assets SET updated_at = created_at WHERE updated_at IS NULL"))
    if "status_log" not in columns:
        logger.info("migrate.add_column", extra={"extra_data": {"column": "status_log"}})
        _add_column(engine, "assets", "status_log TEXT NOT NULL DEFAULT 'Active'")
    _create_index_if_not_exists(engine, "assets", "ix_assets_status_log", ["status_log"])
