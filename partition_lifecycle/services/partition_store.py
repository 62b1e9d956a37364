"""PostgreSQL access layer for partition lifecycle operations.

Every statement the lifecycle services issue against the database lives
here, behind the ``PartitionStore`` protocol. Each call runs in its own
session and transaction: a failed DDL statement aborts only its own
transaction, so batch operations can record the failure and continue with
the next table or partition.

Identifier handling:
    Table, partition and schema names are interpolated into DDL, which
    cannot take bind parameters. Names are validated against a plain
    identifier pattern and double-quoted, which also preserves the
    application's mixed-case table names (e.g. "StudySession").
"""

from __future__ import annotations

import re
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sqlalchemy import text

from partition_lifecycle.core.database import get_session
from partition_lifecycle.core.exceptions import InvalidTableNameError, NotFoundError
from partition_lifecycle.core.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager["AsyncSession"]]

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_MAX_IDENTIFIER_LENGTH = 63  # PostgreSQL NAMEDATALEN - 1


def quote_identifier(name: str) -> str:
    """Validate and double-quote a SQL identifier.

    Args:
        name: Raw table, partition or schema name

    Returns:
        Quoted identifier safe for interpolation into DDL

    Raises:
        InvalidTableNameError: If the name is not a plain identifier
    """
    if (
        not name
        or len(name) > _MAX_IDENTIFIER_LENGTH
        or not _IDENTIFIER_PATTERN.match(name)
    ):
        raise InvalidTableNameError(name)
    return f'"{name}"'


@dataclass(frozen=True, slots=True)
class PartitionRow:
    """Raw catalog entry for one child partition.

    Attributes:
        name: Partition table name
        bounds: Boundary expression as rendered by pg_get_expr
        row_estimate: Planner row estimate, None if the partition was never analyzed
        size_bytes: Physical size of the partition
    """

    name: str
    bounds: str | None
    row_estimate: int | None = None
    size_bytes: int | None = None


@dataclass(frozen=True, slots=True)
class TableStats:
    """Live volume of a parent table, summed over all of its partitions."""

    row_count: int
    size_bytes: int
    is_partitioned: bool

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)


@runtime_checkable
class PartitionStore(Protocol):
    """Storage operations consumed by the lifecycle services."""

    async def partition_exists(self, partition_name: str) -> bool: ...

    async def create_partition(
        self, table_name: str, partition_name: str, start: date, end: date
    ) -> bool: ...

    async def drop_partition(self, partition_name: str) -> None: ...

    async def list_partitions(self, table_name: str) -> list[PartitionRow]: ...

    async def count_rows(self, partition_name: str) -> int: ...

    async def get_table_stats(self, table_name: str) -> TableStats: ...


class PostgresPartitionStore:
    """``PartitionStore`` backed by PostgreSQL declarative range partitioning."""

    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        schema: str = "public",
    ) -> None:
        """Initialize the store.

        Args:
            session_factory: Callable returning an async session context manager.
                Defaults to the application's global ``get_session``.
            schema: Schema holding the parent tables and their partitions.
        """
        self._session_factory = session_factory or get_session
        self.schema = schema
        self._schema_sql = quote_identifier(schema)

    def _qualified(self, name: str) -> str:
        return f"{self._schema_sql}.{quote_identifier(name)}"

    async def _relkind(self, session: AsyncSession, name: str) -> str | None:
        result = await session.execute(
            text(
                """
                SELECT c.relkind
                FROM pg_catalog.pg_class c
                JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
                WHERE c.relname = :name
                AND n.nspname = :schema
                """
            ),
            {"name": name, "schema": self.schema},
        )
        kind = result.scalar_one_or_none()
        # asyncpg returns the "char" type as bytes
        if isinstance(kind, bytes):
            return kind.decode()
        return kind

    async def partition_exists(self, partition_name: str) -> bool:
        """Check if a partition table exists.

        Args:
            partition_name: Name of partition to check

        Returns:
            True if a plain or partitioned table with that name exists
        """
        async with self._session_factory() as session:
            return await self._relkind(session, partition_name) in ("r", "p")

    async def create_partition(
        self, table_name: str, partition_name: str, start: date, end: date
    ) -> bool:
        """Create a partition covering ``[start, end)`` if it does not exist.

        A transaction-scoped advisory lock keyed on the parent table
        serializes concurrent provisioning of the same table, so the
        existence check and the conditional DDL act as one step.

        Args:
            table_name: Parent partitioned table
            partition_name: Name for the new partition
            start: Start of partition range (inclusive)
            end: End of partition range (exclusive)

        Returns:
            True if the partition was created, False if it already existed
        """
        parent = self._qualified(table_name)
        child = self._qualified(partition_name)
        # Explicit UTC literals keep bounds independent of the session TimeZone
        start_str = f"{start.isoformat()} 00:00:00+00"
        end_str = f"{end.isoformat()} 00:00:00+00"

        async with self._session_factory() as session:
            await session.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
                {"key": f"partition_lifecycle:{self.schema}.{table_name}"},
            )
            if await self._relkind(session, partition_name) in ("r", "p"):
                return False

            # DDL requires dynamic SQL - identifiers are validated and quoted,
            # bounds are rendered from date objects
            await session.execute(
                text(
                    f"CREATE TABLE IF NOT EXISTS {child} "
                    f"PARTITION OF {parent} "
                    f"FOR VALUES FROM ('{start_str}') TO ('{end_str}')"
                )
            )

        logger.info(
            f"Created partition {partition_name}",
            extra={
                "table": table_name,
                "partition": partition_name,
                "start": start.isoformat(),
                "end": end.isoformat(),
            },
        )
        return True

    async def drop_partition(self, partition_name: str) -> None:
        """Drop a partition table and its dependent objects.

        Args:
            partition_name: Name of partition to drop
        """
        child = self._qualified(partition_name)
        async with self._session_factory() as session:
            await session.execute(text(f"DROP TABLE IF EXISTS {child} CASCADE"))

        logger.info(f"Dropped partition {partition_name}")

    async def list_partitions(self, table_name: str) -> list[PartitionRow]:
        """List the child partitions of a parent table.

        Args:
            table_name: Parent partitioned table

        Returns:
            Catalog rows including the default partition, if any
        """
        async with self._session_factory() as session:
            result = await session.execute(
                text(
                    """
                    SELECT
                        c.relname AS partition_name,
                        pg_catalog.pg_get_expr(c.relpartbound, c.oid) AS bounds,
                        c.reltuples::bigint AS row_estimate,
                        pg_catalog.pg_table_size(c.oid) AS size_bytes
                    FROM pg_catalog.pg_inherits i
                    JOIN pg_catalog.pg_class c ON c.oid = i.inhrelid
                    JOIN pg_catalog.pg_class p ON p.oid = i.inhparent
                    JOIN pg_catalog.pg_namespace n ON n.oid = p.relnamespace
                    WHERE p.relname = :table_name
                    AND n.nspname = :schema
                    AND c.relispartition
                    ORDER BY c.relname
                    """
                ),
                {"table_name": table_name, "schema": self.schema},
            )
            rows = result.fetchall()

        partitions = []
        for row in rows:
            # reltuples is -1 for partitions that have never been analyzed
            estimate = int(row[2]) if row[2] is not None and row[2] >= 0 else None
            size = int(row[3]) if row[3] is not None else None
            partitions.append(
                PartitionRow(name=row[0], bounds=row[1], row_estimate=estimate, size_bytes=size)
            )
        return partitions

    async def count_rows(self, partition_name: str) -> int:
        """Count the rows stored directly in one partition."""
        child = self._qualified(partition_name)
        async with self._session_factory() as session:
            result = await session.execute(
                text(f"SELECT count(*) FROM ONLY {child}")  # noqa: S608
            )
            return int(result.scalar_one())

    async def get_table_stats(self, table_name: str) -> TableStats:
        """Get live row count and total physical size of a table.

        Size includes indexes and TOAST of every partition in the tree.

        Raises:
            NotFoundError: If the table does not exist
        """
        parent = self._qualified(table_name)
        async with self._session_factory() as session:
            kind = await self._relkind(session, table_name)
            if kind is None:
                raise NotFoundError(
                    f"Table {self.schema}.{table_name} does not exist",
                    details={"table_name": table_name, "schema": self.schema},
                )

            count_result = await session.execute(
                text(f"SELECT count(*) FROM {parent}")  # noqa: S608
            )
            row_count = int(count_result.scalar_one())

            size_result = await session.execute(
                text(
                    """
                    SELECT COALESCE(SUM(pg_catalog.pg_total_relation_size(relid)), 0)
                    FROM pg_catalog.pg_partition_tree(CAST(:relation AS regclass))
                    """
                ),
                {"relation": parent},
            )
            size_bytes = int(size_result.scalar_one())

        return TableStats(row_count=row_count, size_bytes=size_bytes, is_partitioned=kind == "p")
