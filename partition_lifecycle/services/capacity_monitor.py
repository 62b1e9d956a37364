"""Extend partition coverage of tables that outgrow their capacity thresholds.

A table exceeds its threshold when its live row count is above
``max_rows`` or its total size is above ``max_size_mb``; either is enough.
Coverage is then extended forward from the end of the newest partition
(or from today when the table has none) by ``auto_extend_months``.

Repeated runs are safe: the provisioner skips months that already have a
partition, so no extra guard is kept here.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from partition_lifecycle.core.logging import get_logger, sanitize_error
from partition_lifecycle.core.time_utils import add_months, as_date, utc_now
from partition_lifecycle.models.partition import (
    CapacityAction,
    CapacityCheckResult,
    LifecyclePolicies,
    PartitionFailure,
    SizeThreshold,
)
from partition_lifecycle.services.partition_inspector import PartitionInspector
from partition_lifecycle.services.partition_provisioner import PartitionProvisioner
from partition_lifecycle.services.partition_store import PartitionStore, TableStats

logger = get_logger(__name__)


def describe_exceedance(threshold: SizeThreshold, stats: TableStats) -> tuple[str, str] | None:
    """Compare table volume against a threshold.

    Args:
        threshold: Capacity threshold of the table
        stats: Live table statistics

    Returns:
        Tuple of (trigger, reason) where trigger is 'rows', 'size' or 'both',
        or None if the table is within its limits
    """
    rows_exceeded = stats.row_count > threshold.max_rows
    size_exceeded = stats.size_mb > threshold.max_size_mb

    reasons = []
    if rows_exceeded:
        reasons.append(f"rows {stats.row_count} > {threshold.max_rows}")
    if size_exceeded:
        reasons.append(f"size {stats.size_mb:.2f}MB > {threshold.max_size_mb:g}MB")

    if rows_exceeded and size_exceeded:
        return "both", " and ".join(reasons)
    if rows_exceeded:
        return "rows", reasons[0]
    if size_exceeded:
        return "size", reasons[0]
    return None


class CapacityMonitor:
    """Checks monitored tables against their thresholds and extends partitions."""

    def __init__(
        self,
        store: PartitionStore,
        policies: LifecyclePolicies,
        inspector: PartitionInspector | None = None,
        provisioner: PartitionProvisioner | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._policies = policies
        self._inspector = inspector or PartitionInspector(store)
        self._provisioner = provisioner or PartitionProvisioner(store, self._inspector)
        self._clock = clock

    async def check_table(self, threshold: SizeThreshold) -> CapacityAction | None:
        """Check one table and extend its partitions if it is over threshold.

        Args:
            threshold: Capacity threshold of the table

        Returns:
            The extension performed, or None if the table is within its limits
        """
        table_name = threshold.table_name
        stats = await self._store.get_table_stats(table_name)

        exceedance = describe_exceedance(threshold, stats)
        if exceedance is None:
            logger.debug(
                f"Table {table_name} within capacity",
                extra={"table": table_name, "row_count": stats.row_count, "size_mb": stats.size_mb},
            )
            return None
        trigger, reason = exceedance

        logger.info(
            f"Table {table_name} size large: {reason}, "
            f"extending partitions by {threshold.auto_extend_months} months",
            extra={"table": table_name, "trigger": trigger},
        )

        partitions = await self._inspector.get_partition_info(table_name)
        if partitions:
            base = max(p.end_date for p in partitions)
        else:
            base = as_date(self._clock())
        extend_to = add_months(base, threshold.auto_extend_months)

        provisioned = await self._provisioner.create_monthly_partitions(
            table_name, base, extend_to - timedelta(days=1)
        )

        if partitions:
            description = (
                f"Extended {table_name} partitions by {threshold.auto_extend_months} months "
                f"due to: {reason}"
            )
        else:
            description = (
                f"Created initial {threshold.auto_extend_months} months of partitions "
                f"for {table_name} due to: {reason}"
            )

        return CapacityAction(
            table_name=table_name,
            trigger=trigger,
            row_count=stats.row_count,
            size_mb=stats.size_mb,
            extended_from=base,
            extended_to=extend_to,
            created_partitions=provisioned.created,
            description=description,
        )

    async def check_and_extend_partitions_if_needed(self) -> CapacityCheckResult:
        """Check every monitored table, extending partitions where needed.

        A failure on one table is recorded and the remaining tables are
        still checked.

        Returns:
            Extensions performed and per-table failures
        """
        result = CapacityCheckResult()

        for threshold in self._policies.size_thresholds:
            try:
                action = await self.check_table(threshold)
            except Exception as e:
                logger.error(
                    f"Error checking table {threshold.table_name}: {sanitize_error(e)}",
                    exc_info=True,
                )
                result.failures.append(
                    PartitionFailure(
                        operation="capacity_check",
                        table_name=threshold.table_name,
                        message=sanitize_error(e),
                    )
                )
                continue

            if action is not None:
                result.actions.append(action)

        if result.actions:
            logger.info(
                f"Capacity check triggered {len(result.actions)} partition extensions",
                extra={"actions": result.triggered_actions},
            )

        return result
