"""Idempotent startup upkeep for the request history table.

Alembic revisions are the primary way to evolve the schema. This module keeps
a database that was created by an older build usable without running them:
the table is created when absent and any optional column it lacks is added.
Existing rows are never rewritten.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, inspect, text

from app.models.base import Base
from app.models.request_history import RequestHistory

logger = logging.getLogger(__name__)


def ensure_history_schema(engine: Engine) -> list[str]:
    """Create ``request_history`` or add its missing nullable columns.

    Returns the names of the columns that were added.
    """

    table = RequestHistory.__table__
    inspector = inspect(engine)
    if not inspector.has_table(table.name):
        Base.metadata.create_all(engine, tables=[table])
        logger.info("history.schema_created table=%s", table.name)
        return []

    existing = {column["name"] for column in inspector.get_columns(table.name)}
    added: list[str] = []
    with engine.begin() as conn:
        for column in table.columns:
            if column.name in existing:
                continue
            if not column.nullable:
                raise RuntimeError(
                    f"Cannot add required column {column.name!r} to {table.name}; run the Alembic migrations."
                )
            column_type = column.type.compile(dialect=engine.dialect)
            conn.execute(text(f"ALTER TABLE {table.name} ADD COLUMN {column.name} {column_type}"))
            added.append(column.name)
    if added:
        logger.info("history.schema_columns_added table=%s columns=%s", table.name, ",".join(added))
    return added
