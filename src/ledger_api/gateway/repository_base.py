"""
Base Repository

Common CRUD operations over one table of the ledger schema. Concrete repositories set the row
model and the writable columns and add their domain-specific queries.

Row store failures are translated here:
- unique violation (SQLSTATE 23505) -> AlreadyExistsError
- any other database or connection failure -> GatewayError
"""

from contextlib import asynccontextmanager
from typing import Any
from typing import AsyncIterator
from typing import Dict
from typing import FrozenSet
from typing import List
from typing import Optional
from typing import Type
from uuid import UUID

import asyncpg
from loguru import logger

from ledger_api.errors import AlreadyExistsError
from ledger_api.errors import GatewayError
from ledger_api.gateway.pool import SCHEMA_NAME
from ledger_api.ledger.models import LedgerModel


class BaseRepository:
    """
    Base repository with generic CRUD operations.

    Subclasses define:
        model: pydantic model each row is validated into
        columns: columns callers may write
    """

    model: Type[LedgerModel] = LedgerModel
    columns: FrozenSet[str] = frozenset()

    def __init__(self, pool, table_name: str):
        """
        Initialize base repository.

        Args:
            pool: asyncpg pool (or LedgerDBPool) exposing acquire()
            table_name: Table name without schema prefix
        """
        self.pool = pool
        self.table = table_name

    @property
    def qualified_table(self) -> str:
        return f"{SCHEMA_NAME}.{self.table}"

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[asyncpg.Connection]:
        """Acquire a connection and translate row store failures into ledger errors."""
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except asyncpg.UniqueViolationError as e:
            logger.warning(
                "Unique constraint violated",
                table=self.table,
                constraint=getattr(e, "constraint_name", None),
                error=str(e),
            )
            raise AlreadyExistsError(f"A {self.table} record with these details already exists") from e
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error("Row store call failed", table=self.table, error_type=type(e).__name__, error=str(e))
            raise GatewayError(f"Database error on {self.table}: {e}") from e

    def _to_model(self, row: Optional[asyncpg.Record]):
        return self.model.model_validate(dict(row)) if row else None

    def _check_columns(self, fields: Dict[str, Any]) -> None:
        unknown = set(fields) - self.columns
        if unknown:
            raise ValueError(f"Unknown column(s) for {self.table}: {sorted(unknown)}")

    async def insert(self, fields: Dict[str, Any]):
        """
        Insert one row.

        Args:
            fields: Column -> value; every key must be in `columns`

        Returns:
            The inserted row as `model`
        """
        self._check_columns(fields)
        names = list(fields)
        placeholders = ", ".join(f"${i}" for i in range(1, len(names) + 1))
        async with self.connection() as conn:
            row = await conn.fetchrow(
                f"INSERT INTO {self.qualified_table} ({', '.join(names)}) VALUES ({placeholders}) RETURNING *",
                *fields.values(),
            )
        logger.debug(f"Inserted into {self.table}", record_id=row["id"])
        return self._to_model(row)

    async def get(self, record_id: UUID):
        async with self.connection() as conn:
            row = await conn.fetchrow(f"SELECT * FROM {self.qualified_table} WHERE id = $1", record_id)
        return self._to_model(row)

    async def list(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order_by: str = "created_at",
        descending: bool = False,
    ) -> List:
        """
        List rows matching every equality filter.

        Args:
            filters: Column -> value equality filters (AND-ed)
            order_by: Sort column
            descending: Sort direction
        """
        filters = filters or {}
        self._check_columns({k: v for k, v in filters.items() if k != "id"})
        if order_by not in self.columns | {"id", "created_at"}:
            raise ValueError(f"Cannot order {self.table} by {order_by}")

        where = " AND ".join(f"{name} = ${i}" for i, name in enumerate(filters, start=1))
        query = f"SELECT * FROM {self.qualified_table}"
        if where:
            query += f" WHERE {where}"
        query += f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}, id"

        async with self.connection() as conn:
            rows = await conn.fetch(query, *filters.values())
        return [self._to_model(row) for row in rows]

    async def update(self, record_id: UUID, fields: Dict[str, Any]):
        """
        Update the given columns of one row.

        Returns:
            The updated row, or None when no row has that id
        """
        if not fields:
            return await self.get(record_id)
        self._check_columns(fields)
        assignments = ", ".join(f"{name} = ${i}" for i, name in enumerate(fields, start=2))
        async with self.connection() as conn:
            row = await conn.fetchrow(
                f"UPDATE {self.qualified_table} SET {assignments} WHERE id = $1 RETURNING *",
                record_id,
                *fields.values(),
            )
        return self._to_model(row)

    async def delete(self, record_id: UUID) -> bool:
        async with self.connection() as conn:
            result = await conn.execute(f"DELETE FROM {self.qualified_table} WHERE id = $1", record_id)
        return result.endswith(" 1")
