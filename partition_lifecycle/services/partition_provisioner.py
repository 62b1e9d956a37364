"""Create calendar-month partitions for a table across a date range."""

from __future__ import annotations

from datetime import date, datetime

from partition_lifecycle.core.exceptions import (
    DateRangeValidationError,
    PartitionLifecycleError,
    PartitionProvisioningError,
)
from partition_lifecycle.core.logging import get_logger, sanitize_error
from partition_lifecycle.core.time_utils import add_months, as_date, iter_month_starts
from partition_lifecycle.models.partition import PartitionDescriptor, ProvisionResult
from partition_lifecycle.services.partition_inspector import (
    PartitionInspector,
    month_partition_name,
)
from partition_lifecycle.services.partition_store import PartitionStore, quote_identifier

logger = get_logger(__name__)


class PartitionProvisioner:
    """Guarantees a partition exists for every month intersecting a range.

    Provisioning is idempotent: a month is skipped when a partition with its
    name exists or an existing partition already covers it, and the store's
    creation statement is itself conditional. There is no transaction
    spanning months; a failure leaves earlier months in place and a retry
    resumes from there.
    """

    def __init__(self, store: PartitionStore, inspector: PartitionInspector | None = None) -> None:
        self._store = store
        self._inspector = inspector or PartitionInspector(store)

    async def create_monthly_partitions(
        self,
        table_name: str,
        start_date: date | datetime,
        end_date: date | datetime,
    ) -> ProvisionResult:
        """Ensure monthly partitions exist from start_date's month through end_date.

        Args:
            table_name: Parent partitioned table
            start_date: Start of the range; day-of-month is ignored
            end_date: End of the range (inclusive)

        Returns:
            Names of partitions created and of months already present

        Raises:
            DateRangeValidationError: If start_date is after end_date
            InvalidTableNameError: If the table name is not a valid identifier
            PartitionProvisioningError: If the store rejects a creation
        """
        start = as_date(start_date)
        end = as_date(end_date)
        if start > end:
            raise DateRangeValidationError(start_date=start, end_date=end)
        quote_identifier(table_name)

        existing = await self._inspector.get_partition_info(table_name)
        existing_names = {p.partition_name for p in existing}

        result = ProvisionResult(table_name=table_name)
        for month_start in iter_month_starts(start, end):
            partition_name = month_partition_name(table_name, month_start)

            if partition_name in existing_names or _is_covered(existing, month_start):
                result.skipped.append(partition_name)
                continue

            try:
                created = await self._store.create_partition(
                    table_name,
                    partition_name,
                    month_start,
                    add_months(month_start, 1),
                )
            except PartitionLifecycleError:
                raise
            except Exception as e:
                logger.error(
                    f"Failed to create partition {partition_name} for {table_name}: "
                    f"{sanitize_error(e)}",
                    exc_info=True,
                    extra={"table": table_name, "partitions_created": result.created},
                )
                raise PartitionProvisioningError(
                    f"Failed to create partition {partition_name}: {sanitize_error(e)}",
                    table_name=table_name,
                    partition_name=partition_name,
                    created=result.created,
                ) from e

            if created:
                result.created.append(partition_name)
            else:
                result.skipped.append(partition_name)

        logger.info(
            f"Provisioned {result.months} monthly partitions for {table_name}",
            extra={
                "table": table_name,
                "partitions_created": result.created,
                "total_created": len(result.created),
                "total_skipped": len(result.skipped),
            },
        )
        return result


def _is_covered(partitions: list[PartitionDescriptor], month_start: date) -> bool:
    """Check whether the whole month is already held by existing partitions."""
    month_end = add_months(month_start, 1)
    return any(p.start_date <= month_start and p.end_date >= month_end for p in partitions)
