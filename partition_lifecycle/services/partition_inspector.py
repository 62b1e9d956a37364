"""Reflect the physical partition layout of a table into descriptors.

The catalog renders partition bounds as a range literal such as::

    FOR VALUES FROM ('2025-01-01 00:00:00+00') TO ('2025-02-01 00:00:00+00')

Parsing that string is confined to this module; every other service works
with the typed ``PartitionDescriptor`` dates it returns. Partitions without
date bounds (the DEFAULT partition, MINVALUE/MAXVALUE ranges) are left out.
"""

from __future__ import annotations

import re
from datetime import date, datetime

from partition_lifecycle.core.exceptions import ValidationError
from partition_lifecycle.core.logging import get_logger, sanitize_error
from partition_lifecycle.core.time_utils import as_date
from partition_lifecycle.models.partition import PartitionDescriptor
from partition_lifecycle.services.partition_store import PartitionStore

logger = get_logger(__name__)

_BOUNDS_PATTERN = re.compile(
    r"FOR\s+VALUES\s+FROM\s+\(\s*'([^']+)'\s*\)\s+TO\s+\(\s*'([^']+)'\s*\)",
    re.IGNORECASE,
)
_DATE_ONLY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SHORT_OFFSET_PATTERN = re.compile(r"([+-]\d{2})$")


def month_partition_name(table_name: str, month_start: date) -> str:
    """Generate the partition name for a month.

    Args:
        table_name: Parent table name
        month_start: Any date within the month

    Returns:
        Partition name (e.g., 'StudySession_2025_03')
    """
    return f"{table_name}_{month_start.year}_{month_start.month:02d}"


def _parse_bound_literal(literal: str) -> date:
    value = literal.strip()
    if _DATE_ONLY_PATTERN.match(value):
        return date.fromisoformat(value)

    # PostgreSQL renders whole-hour offsets as '+00'; normalize to '+00:00'
    value = _SHORT_OFFSET_PATTERN.sub(r"\1:00", value.replace(" ", "T", 1))
    return as_date(datetime.fromisoformat(value))


def parse_partition_bounds(bounds: str | None) -> tuple[date | None, date | None]:
    """Parse partition bounds from a PostgreSQL boundary expression.

    Args:
        bounds: Boundary expression as returned by pg_get_expr

    Returns:
        Tuple of (start_date, end_date) or (None, None) if the bounds carry
        no date range
    """
    if not bounds or "DEFAULT" in bounds.upper():
        return None, None

    match = _BOUNDS_PATTERN.search(bounds)
    if not match:
        return None, None

    try:
        return _parse_bound_literal(match.group(1)), _parse_bound_literal(match.group(2))
    except ValueError:
        logger.warning(f"Failed to parse partition bounds: {bounds}", exc_info=True)
        return None, None


class PartitionInspector:
    """Reads partition descriptors for a parent table from the store.

    Failures never propagate: an unreadable catalog yields an empty list,
    which callers treat the same as a table without partitions.
    """

    def __init__(self, store: PartitionStore, exact_row_counts: bool = False) -> None:
        """Initialize the inspector.

        Args:
            store: Partition store to read the catalog from
            exact_row_counts: Count rows per partition instead of using
                the planner estimate
        """
        self._store = store
        self.exact_row_counts = exact_row_counts

    async def get_partition_info(self, table_name: str) -> list[PartitionDescriptor]:
        """List the dated partitions of a table.

        Args:
            table_name: Parent table name

        Returns:
            Partition descriptors in no particular order; empty if the table
            has no dated partitions or the catalog could not be read

        Raises:
            ValidationError: If the table name is not a valid identifier
        """
        try:
            rows = await self._store.list_partitions(table_name)
        except ValidationError:
            raise
        except Exception as e:
            logger.error(
                f"Failed to get partition info for {table_name}: {sanitize_error(e)}",
                exc_info=True,
            )
            return []

        partitions: list[PartitionDescriptor] = []
        for row in rows:
            start, end = parse_partition_bounds(row.bounds)
            if start is None or end is None:
                logger.debug(
                    f"Skipping partition {row.name} without date bounds",
                    extra={"table": table_name, "partition": row.name, "bounds": row.bounds},
                )
                continue

            row_count = row.row_estimate
            if self.exact_row_counts:
                try:
                    row_count = await self._store.count_rows(row.name)
                except Exception as e:
                    logger.warning(
                        f"Failed to count rows in {row.name}: {sanitize_error(e)}",
                        extra={"table": table_name, "partition": row.name},
                    )

            partitions.append(
                PartitionDescriptor(
                    table_name=table_name,
                    partition_name=row.name,
                    start_date=start,
                    end_date=end,
                    row_count=row_count,
                    size_bytes=row.size_bytes,
                )
            )

        return partitions
