from __future__ import annotations

import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


def _existing_columns(engine: Engine, table: str) -> set[str] | None:
    inspector = inspect(engine)
    try:
        return {column["name"] for column in inspector.get_columns(table)}
    except SQLAlchemyError as exc:  # pragma: no cover
        logger.error("Failed to inspect %s table: %s", table, exc)
        return None


def _ensure_user_locale_column(engine: Engine, default_locale: str) -> None:
    columns = _existing_columns(engine, "users")
    if columns is None or "locale" in columns:
        return

    logger.info("Adding locale column to users table (default %s).", default_locale)

    dialect = engine.dialect.name.lower()
    add_column_sql = "ALTER TABLE users ADD COLUMN locale VARCHAR(8)"

    try:
        with engine.begin() as connection:
            if dialect == "sqlite":
                connection.execute(text(f"{add_column_sql} NOT NULL DEFAULT '{default_locale}'"))
            else:
                connection.execute(text(add_column_sql))
                connection.execute(
                    text("UPDATE users SET locale = :locale WHERE locale IS NULL"),
                    {"locale": default_locale},
                )
                connection.execute(text(f"ALTER TABLE users ALTER COLUMN locale SET DEFAULT '{default_locale}'"))
                connection.execute(text("ALTER TABLE users ALTER COLUMN locale SET NOT NULL"))
    except SQLAlchemyError as exc:  # pragma: no cover
        logger.error("Failed to add locale column: %s", exc)


def _ensure_expense_vendor_column(engine: Engine) -> None:
    columns = _existing_columns(engine, "expenses")
    if columns is None or "vendor" in columns:
        return

    logger.info("Adding vendor column to expenses table.")
    try:
        with engine.begin() as connection:
            connection.execute(text("ALTER TABLE expenses ADD COLUMN vendor VARCHAR(255)"))
    except SQLAlchemyError as exc:  # pragma: no cover
        logger.error("Failed to add vendor column: %s", exc)


def run_migrations(engine: Engine, default_locale: str = "es") -> None:
    """Execute lightweight, idempotent migrations on application start."""
    _ensure_user_locale_column(engine, default_locale)
    _ensure_expense_vendor_column(engine)
