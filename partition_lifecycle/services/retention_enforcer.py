"""Drop partitions that have aged out of their table's retention window.

Cleanup is best effort: archival runs once up front and may fail without
stopping the pass, and each partition drop is attempted independently.
Unbounded table growth is the worse outcome, so nothing short of a bug
aborts the whole pass.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timedelta

from partition_lifecycle.core.logging import get_logger, sanitize_error
from partition_lifecycle.core.time_utils import as_date, utc_now
from partition_lifecycle.models.partition import (
    CleanupResult,
    LifecyclePolicies,
    PartitionDescriptor,
    PartitionFailure,
    RetentionPolicy,
)
from partition_lifecycle.services.archival import ArchivalAggregator
from partition_lifecycle.services.partition_inspector import PartitionInspector
from partition_lifecycle.services.partition_store import PartitionStore

logger = get_logger(__name__)


def retention_cutoff(policy: RetentionPolicy, now: datetime) -> date:
    """Date before which a table's data may be removed."""
    return as_date(now - timedelta(days=policy.retention_days))


class RetentionEnforcer:
    """Applies retention policies by dropping expired partitions."""

    def __init__(
        self,
        store: PartitionStore,
        policies: LifecyclePolicies,
        inspector: PartitionInspector | None = None,
        archiver: ArchivalAggregator | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the enforcer.

        Args:
            store: Partition store used for drops
            policies: Lifecycle policies holding the retention rules
            inspector: Partition inspector, built from the store if omitted
            archiver: Aggregator run before dropping; archival is skipped if None
            clock: Returns the current time (UTC)
        """
        self._store = store
        self._policies = policies
        self._inspector = inspector or PartitionInspector(store)
        self._archiver = archiver
        self._clock = clock

    async def find_expired_partitions(self, policy: RetentionPolicy) -> list[PartitionDescriptor]:
        """List partitions whose whole range lies before the policy's cutoff.

        Args:
            policy: Retention policy of the table

        Returns:
            Expired partitions, oldest first
        """
        cutoff = retention_cutoff(policy, self._clock())
        partitions = await self._inspector.get_partition_info(policy.table_name)
        expired = [p for p in partitions if p.is_expired(cutoff)]
        return sorted(expired, key=lambda p: p.start_date)

    async def _archive(self, result: CleanupResult) -> None:
        if self._archiver is None:
            return
        try:
            result.archived_rows = await self._archiver.archive_operational_data()
        except Exception as e:
            logger.error(f"Error archiving operational data: {sanitize_error(e)}", exc_info=True)
            result.archive_error = sanitize_error(e)

    async def cleanup_old_partitions(self) -> CleanupResult:
        """Remove partitions beyond their table's retention period.

        Returns:
            Dropped partition names plus any failures encountered
        """
        result = CleanupResult()

        await self._archive(result)

        for policy in self._policies.retention_policies:
            if not policy.cleanup_enabled:
                logger.debug(f"Cleanup disabled for {policy.table_name}, skipping")
                continue

            for partition in await self.find_expired_partitions(policy):
                try:
                    await self._store.drop_partition(partition.partition_name)
                except Exception as e:
                    logger.error(
                        f"Failed to drop partition {partition.partition_name}: {sanitize_error(e)}",
                        exc_info=True,
                        extra={"table": policy.table_name},
                    )
                    result.failures.append(
                        PartitionFailure(
                            operation="drop",
                            table_name=policy.table_name,
                            partition_name=partition.partition_name,
                            message=sanitize_error(e),
                        )
                    )
                    continue
                result.deleted_partitions.append(partition.partition_name)

        if result.deleted_partitions:
            logger.info(
                f"Dropped {len(result.deleted_partitions)} old partitions",
                extra={"partitions": result.deleted_partitions},
            )
        if result.failures:
            logger.warning(
                f"Partition cleanup finished with {len(result.failures)} failures",
                extra={"failures": [f.to_dict() for f in result.failures]},
            )

        return result
