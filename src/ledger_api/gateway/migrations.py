"""Database migrations for the ledger schema.

All DDL is stored in schema.sql; columns added after the first release are listed in
INCREMENTAL_STATEMENTS so that existing databases pick them up on start.
"""

from pathlib import Path

import asyncpg
from loguru import logger

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Idempotent statements run on every start against an existing schema
INCREMENTAL_STATEMENTS = (
    "ALTER TABLE ledger.projects ADD COLUMN IF NOT EXISTS archived BOOLEAN NOT NULL DEFAULT false",
    "ALTER TABLE ledger.invoices ADD COLUMN IF NOT EXISTS file_url TEXT",
    "ALTER TABLE ledger.invoices ADD COLUMN IF NOT EXISTS due_date DATE",
)


async def run_migrations(conn: asyncpg.Connection) -> None:
    """Create the ledger schema and every table from schema.sql.

    Raises
    ------
    FileNotFoundError
        If schema.sql is missing from the package
    """
    if not SCHEMA_PATH.exists():
        raise FileNotFoundError(f"Schema file not found: {SCHEMA_PATH}")

    schema_sql = SCHEMA_PATH.read_text(encoding="utf-8")
    logger.info(f"Loaded schema from {SCHEMA_PATH}")

    await conn.execute(schema_sql)
    logger.success("Ledger schema created")


async def run_incremental_migrations(conn: asyncpg.Connection) -> None:
    """Apply INCREMENTAL_STATEMENTS. Safe to call on every startup."""
    for statement in INCREMENTAL_STATEMENTS:
        await conn.execute(statement)
    logger.debug(f"Applied {len(INCREMENTAL_STATEMENTS)} incremental migration statement(s)")
