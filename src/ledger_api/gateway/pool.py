"""
Ledger Database Connection Pool

Manages the asyncpg connection pool of the ledger database and runs migrations on initialization.

Schema Evolution:
-----------------
When adding/removing tables in schema.sql:
1. Update schema.sql
2. Update LedgerDBPool.EXPECTED_TABLES
3. For existing deployments add the change to migrations.INCREMENTAL_STATEMENTS, or drop and
   recreate the schema: DROP SCHEMA ledger CASCADE; (then restart the app)
"""

from typing import Optional

import asyncpg
from loguru import logger

from ledger_api.gateway.migrations import run_incremental_migrations
from ledger_api.gateway.migrations import run_migrations

SCHEMA_NAME = "ledger"


class LedgerDBPool:
    """Ledger database connection pool manager."""

    EXPECTED_TABLES = {
        "user_profiles",
        "projects",
        "contractors",
        "project_contractors",
        "change_orders",
        "invoices",
        "project_members",
        "project_invitations",
    }

    def __init__(self, connection_string: str):
        """
        Initialize the pool manager. No connection is opened until initialize().

        Args:
            connection_string: PostgreSQL DSN of the ledger database
        """
        self.connection_string = connection_string
        self.pool: Optional[asyncpg.Pool] = None
        self._pool_initialized = False

    async def initialize(self) -> None:
        """Create the connection pool, validate it and run migrations."""
        if self._pool_initialized and self.pool is not None:
            logger.debug("Ledger DB pool already initialized")
            return

        try:
            logger.info("Initializing ledger database pool")

            self.pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=2,
                max_size=10,
                command_timeout=60,
                timeout=15,
            )

            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                if result != 1:
                    raise RuntimeError("Pool validation query failed")

            await self._run_migrations()

            self._pool_initialized = True
            logger.success("Ledger database initialized successfully")

        except Exception as e:
            logger.opt(exception=e).error("Failed to initialize ledger DB pool: {}", e)
            if self.pool:
                pool, self.pool = self.pool, None
                await pool.close()
            raise

    async def _existing_tables(self, conn: asyncpg.Connection) -> set:
        rows = await conn.fetch(
            "SELECT table_name FROM information_schema.tables WHERE table_schema = $1",
            SCHEMA_NAME,
        )
        return {row["table_name"] for row in rows}

    async def _run_migrations(self) -> None:
        """
        Create the schema from schema.sql when it is missing, otherwise apply incremental migrations.

        A schema holding only part of the expected tables is a failed earlier migration and needs
        manual intervention.
        """
        async with self.pool.acquire() as conn:
            existing_tables = await self._existing_tables(conn)

            if existing_tables >= self.EXPECTED_TABLES:
                logger.info(
                    f"Ledger schema and all {len(self.EXPECTED_TABLES)} expected tables exist - "
                    "running incremental migrations only"
                )
                await run_incremental_migrations(conn)
                return

            if existing_tables:
                missing_tables = self.EXPECTED_TABLES - existing_tables
                logger.error(
                    f"Ledger schema exists but {len(missing_tables)} table(s) are missing: {missing_tables}. "
                    f"Please manually drop the schema and restart: DROP SCHEMA {SCHEMA_NAME} CASCADE;"
                )
                raise RuntimeError(f"Incomplete database schema: missing tables {missing_tables}")

            logger.info("Ledger schema not found - running migrations")
            await run_migrations(conn)

            created = await self._existing_tables(conn)
            if not created >= self.EXPECTED_TABLES:
                raise RuntimeError(f"Migration incomplete: missing {self.EXPECTED_TABLES - created}")

            logger.success(f"All {len(self.EXPECTED_TABLES)} ledger tables verified successfully")

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if self.pool:
            logger.info("Closing ledger database pool")
            await self.pool.close()
            self.pool = None
            self._pool_initialized = False

    def acquire(self):
        """
        Acquire a database connection from the pool.

        Usage:
            async with pool.acquire() as conn:
                result = await conn.fetchrow("SELECT * FROM ...")
        """
        if not self.pool:
            raise RuntimeError("Ledger DB pool not initialized - call initialize() first")
        return self.pool.acquire()

    async def health_check(self) -> bool:
        """
        Check if the database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise
        """
        if not self.pool:
            return False
        try:
            async with self.pool.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
                return result == 1
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Ledger DB health check failed: {e}")
            return False
