"""Partition lifecycle management for PostgreSQL time-series tables.

This service manages calendar-month range partitions for the high-volume,
append-only tables of the study platform (StudySession, ProgressSnapshot,
SecurityLog, Session).

Features:
    - Idempotent monthly partition creation over a date range
    - Partition inspection with parsed date bounds
    - Retention cleanup with archival of monthly aggregates before dropping
    - Automatic extension of partitions when tables outgrow thresholds
    - Health and efficiency reports for operators

Usage:
    manager = PartitionLifecycleManager.from_settings()
    await manager.create_monthly_partitions("StudySession", start, end)
    await manager.check_and_extend_partitions_if_needed()
    await manager.cleanup_old_partitions()
    report = await manager.get_partition_health_report()

The manager holds no state of its own beyond its configuration; every
result is derived from the database on each call. Scheduling is left to
the caller (cron, the admin API, or the CLI).
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import date, datetime
from functools import lru_cache

from partition_lifecycle.core.config import Settings, get_settings
from partition_lifecycle.core.logging import get_logger, get_run_id, sanitize_error, set_run_id
from partition_lifecycle.core.time_utils import utc_now
from partition_lifecycle.models.partition import (
    CapacityCheckResult,
    CleanupResult,
    EfficiencyReport,
    HealthReport,
    LifecyclePolicies,
    MaintenanceResult,
    PartitionDescriptor,
    ProvisionResult,
)
from partition_lifecycle.services.archival import ArchivalAggregator
from partition_lifecycle.services.capacity_monitor import CapacityMonitor
from partition_lifecycle.services.health_reporter import HealthReporter
from partition_lifecycle.services.partition_inspector import PartitionInspector
from partition_lifecycle.services.partition_provisioner import PartitionProvisioner
from partition_lifecycle.services.partition_store import PartitionStore, PostgresPartitionStore
from partition_lifecycle.services.retention_enforcer import RetentionEnforcer

logger = get_logger(__name__)

DEFAULT_EFFICIENCY_SIZE_WARNING_MB = 500.0


class PartitionLifecycleManager:
    """Facade over the partition lifecycle services.

    All collaborators share one store, one inspector and one clock, so a
    test can drive the whole lifecycle against a fake store and a fixed
    point in time.
    """

    def __init__(
        self,
        policies: LifecyclePolicies,
        store: PartitionStore,
        archiver: ArchivalAggregator | None = None,
        clock: Callable[[], datetime] = utc_now,
        exact_row_counts: bool = False,
        efficiency_size_warning_mb: float = DEFAULT_EFFICIENCY_SIZE_WARNING_MB,
    ) -> None:
        """Initialize the manager.

        Args:
            policies: Retention policies and capacity thresholds
            store: Partition store (PostgreSQL in production)
            archiver: Aggregator run before retention drops; None disables archival
            clock: Returns the current time (UTC)
            exact_row_counts: Count rows per partition instead of using estimates
            efficiency_size_warning_mb: Table size reported as a performance issue
        """
        self.policies = policies
        self.store = store
        self.efficiency_size_warning_mb = efficiency_size_warning_mb

        self.inspector = PartitionInspector(store, exact_row_counts=exact_row_counts)
        self.provisioner = PartitionProvisioner(store, self.inspector)
        self.retention = RetentionEnforcer(
            store, policies, inspector=self.inspector, archiver=archiver, clock=clock
        )
        self.capacity = CapacityMonitor(
            store,
            policies,
            inspector=self.inspector,
            provisioner=self.provisioner,
            clock=clock,
        )
        self.health = HealthReporter(policies, self.inspector, clock=clock)

        logger.info(
            "PartitionLifecycleManager initialized",
            extra={"tables": policies.table_names, "archival": archiver is not None},
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> PartitionLifecycleManager:
        """Build a manager wired to the application database and configuration."""
        settings = settings or get_settings()
        return cls(
            policies=settings.lifecycle_policies(),
            store=PostgresPartitionStore(schema=settings.partition_schema),
            archiver=ArchivalAggregator(
                horizon_days=settings.archive_horizon_days,
                source_schema=settings.partition_schema,
                archive_schema=settings.archive_schema,
            ),
            exact_row_counts=settings.exact_row_counts,
            efficiency_size_warning_mb=settings.efficiency_size_warning_mb,
        )

    async def create_monthly_partitions(
        self,
        table_name: str,
        start_date: date | datetime,
        end_date: date | datetime,
    ) -> ProvisionResult:
        """Create monthly partitions for a specific date range."""
        return await self.provisioner.create_monthly_partitions(table_name, start_date, end_date)

    async def get_partition_info(self, table_name: str) -> list[PartitionDescriptor]:
        """Get information about existing partitions for a table."""
        return await self.inspector.get_partition_info(table_name)

    async def get_partition_info_for_all(self) -> dict[str, list[PartitionDescriptor]]:
        """Get partition information for every monitored table."""
        return {
            table_name: await self.inspector.get_partition_info(table_name)
            for table_name in self.policies.table_names
        }

    async def cleanup_old_partitions(self) -> CleanupResult:
        """Cleanup old partitions based on retention policies."""
        return await self.retention.cleanup_old_partitions()

    async def check_and_extend_partitions_if_needed(self) -> CapacityCheckResult:
        """Check data size and extend partitions where thresholds are exceeded."""
        return await self.capacity.check_and_extend_partitions_if_needed()

    async def get_partition_health_report(self) -> HealthReport:
        """Monitor partition health and generate maintenance recommendations."""
        return await self.health.get_partition_health_report()

    async def verify_partitioning_efficiency(self) -> EfficiencyReport:
        """Check that monitored tables are partitioned and not oversized.

        Returns:
            Performance issues found plus partition usage counts
        """
        report = EfficiencyReport()

        for table_name in self.policies.table_names:
            try:
                stats = await self.store.get_table_stats(table_name)
            except Exception as e:
                logger.warning(
                    f"Failed to analyze partitioning of {table_name}: {sanitize_error(e)}",
                    exc_info=True,
                )
                report.performance_issues.append(
                    f"Failed to analyze partitioning efficiency for {table_name}: "
                    f"{sanitize_error(e)}"
                )
                continue

            if stats.is_partitioned:
                report.partitioned_tables.append(table_name)
            else:
                report.performance_issues.append(f"{table_name} is not partitioned")

            if stats.size_mb > self.efficiency_size_warning_mb:
                report.performance_issues.append(
                    f"{table_name} is large ({stats.size_mb:.0f}MB) - ensure proper partitioning"
                )

            partitions = await self.inspector.get_partition_info(table_name)
            report.partitions_with_data += sum(1 for p in partitions if (p.row_count or 0) > 0)

        return report

    async def run_maintenance(self) -> MaintenanceResult:
        """Run full partition maintenance.

        Extends partitions that are over capacity, cleans up expired ones,
        then reports the resulting health.

        Returns:
            Combined results of the three steps
        """
        previous_run_id = get_run_id()
        set_run_id(previous_run_id or uuid.uuid4().hex[:12])
        logger.info("Starting partition maintenance")

        try:
            capacity = await self.check_and_extend_partitions_if_needed()
            cleanup = await self.cleanup_old_partitions()
            health = await self.get_partition_health_report()
        finally:
            set_run_id(previous_run_id)

        result = MaintenanceResult(capacity=capacity, cleanup=cleanup, health=health)

        logger.info(
            "Partition maintenance completed",
            extra={
                "partitions_extended": [a.table_name for a in capacity.actions],
                "partitions_dropped": cleanup.deleted_partitions,
                "total_failures": len(capacity.failures) + len(cleanup.failures),
            },
        )
        return result


@lru_cache
def get_partition_manager() -> PartitionLifecycleManager:
    """Get the application-wide partition lifecycle manager."""
    return PartitionLifecycleManager.from_settings()
