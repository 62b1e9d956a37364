"""Read-only diagnostics over the partition layout of monitored tables."""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import date, datetime

from partition_lifecycle.core.logging import get_logger
from partition_lifecycle.core.time_utils import add_months, as_date, iter_month_starts, utc_now
from partition_lifecycle.models.partition import (
    HealthReport,
    LifecyclePolicies,
    PartitionDescriptor,
    TableHealth,
)
from partition_lifecycle.services.partition_inspector import (
    PartitionInspector,
    month_partition_name,
)
from partition_lifecycle.services.retention_enforcer import retention_cutoff

logger = get_logger(__name__)

DAYS_PER_MONTH_ESTIMATE = 30


def find_missing_partitions(table_name: str, partitions: list[PartitionDescriptor]) -> list[str]:
    """Identify months without a partition inside the provisioned span.

    Gaps in partition coverage make inserts for those months fail (or land
    in the default partition).

    Args:
        table_name: Parent table name
        partitions: Existing partitions of the table

    Returns:
        Names the missing monthly partitions would have, oldest first
    """
    if not partitions:
        return []

    span_start = min(p.start_date for p in partitions)
    span_end = max(p.end_date for p in partitions)

    missing = []
    for month_start in iter_month_starts(span_start, span_end):
        if month_start >= span_end:
            break
        if not any(p.covers(month_start) for p in partitions):
            missing.append(month_partition_name(table_name, month_start))
    return missing


def future_partitions_needed(newest_end: date, today: date) -> int:
    """Months of coverage to add so partitions reach one month past today.

    Returns:
        0 if coverage already extends a month ahead, otherwise the gap in
        months rounded up
    """
    horizon = add_months(today, 1)
    if newest_end >= horizon:
        return 0
    gap_days = (horizon - newest_end).days
    return max(1, math.ceil(gap_days / DAYS_PER_MONTH_ESTIMATE))


class HealthReporter:
    """Builds per-table health summaries and maintenance recommendations.

    Never mutates state; safe to call at any frequency.
    """

    def __init__(
        self,
        policies: LifecyclePolicies,
        inspector: PartitionInspector,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._policies = policies
        self._inspector = inspector
        self._clock = clock

    async def get_table_health(self, table_name: str) -> TableHealth:
        now = self._clock()
        partitions = await self._inspector.get_partition_info(table_name)

        health = TableHealth(table_name=table_name, partition_count=len(partitions))
        if not partitions:
            health.recommended_actions.append("No partitions found - create initial partitions")
            return health

        health.largest_partition = max(partitions, key=lambda p: p.row_count or 0).partition_name
        health.oldest_partition = min(partitions, key=lambda p: p.start_date).partition_name
        newest = max(partitions, key=lambda p: p.end_date)
        health.newest_partition = newest.partition_name

        policy = self._policies.retention_for(table_name)
        if policy is not None:
            cutoff = retention_cutoff(policy, now)
            expired = [p for p in partitions if p.is_expired(cutoff)]
            if expired:
                health.recommended_actions.append(
                    f"Remove {len(expired)} partitions older than {policy.retention_days} days"
                )

        needed = future_partitions_needed(newest.end_date, as_date(now))
        if needed:
            health.recommended_actions.append(f"Create {needed} additional future partitions")

        health.missing_partitions = find_missing_partitions(table_name, partitions)
        if health.missing_partitions:
            health.recommended_actions.append(
                f"Fill {len(health.missing_partitions)} missing partitions"
            )

        return health

    async def get_partition_health_report(self) -> HealthReport:
        """Summarize the partition layout of every monitored table.

        Returns:
            One health entry per monitored table
        """
        report = HealthReport()
        for table_name in self._policies.table_names:
            report.tables.append(await self.get_table_health(table_name))

        needing_attention = [t.table_name for t in report.tables if t.recommended_actions]
        logger.debug(
            f"Partition health report built for {len(report.tables)} tables",
            extra={"tables_needing_attention": needing_attention},
        )
        return report
