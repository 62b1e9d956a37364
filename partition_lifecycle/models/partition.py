"""Partition lifecycle data model.

Plain dataclasses describing partitions, the static lifecycle policies and
the structured results returned by the lifecycle operations. Nothing here
touches the database; descriptors are rebuilt from the catalog on every
call.

Partition Naming Convention:
    {table}_{year}_{month:02d}  (e.g., StudySession_2025_03)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any


@dataclass(slots=True)
class PartitionDescriptor:
    """An existing monthly partition of a parent table.

    Attributes:
        table_name: Parent (logical) table name
        partition_name: Physical partition table name
        start_date: Start of partition range (inclusive)
        end_date: End of partition range (exclusive)
        row_count: Observed row count, None when unknown
        size_bytes: Physical size of the partition, None when unknown
    """

    table_name: str
    partition_name: str
    start_date: date
    end_date: date
    row_count: int | None = None
    size_bytes: int | None = None

    def is_expired(self, cutoff: date) -> bool:
        """Check whether the whole partition range lies before the cutoff.

        Args:
            cutoff: Retention cutoff date

        Returns:
            True if every row the partition can hold is older than the cutoff
        """
        return self.end_date <= cutoff

    def covers(self, day: date) -> bool:
        """Check whether a day falls inside the partition range."""
        return self.start_date <= day < self.end_date

    def to_dict(self) -> dict[str, Any]:
        return {
            "table_name": self.table_name,
            "partition_name": self.partition_name,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "row_count": self.row_count,
            "size_bytes": self.size_bytes,
        }


@dataclass(frozen=True, slots=True)
class RetentionPolicy:
    """How long rows of a table are kept before their partitions are dropped."""

    table_name: str
    retention_days: int
    cleanup_enabled: bool = True


@dataclass(frozen=True, slots=True)
class SizeThreshold:
    """Row/size limits that trigger forward extension of a table's partitions."""

    table_name: str
    max_rows: int
    max_size_mb: float
    auto_extend_months: int


@dataclass(frozen=True, slots=True)
class LifecyclePolicies:
    """Immutable set of per-table lifecycle rules.

    Loaded once from configuration and injected into every lifecycle
    service, so tests can supply synthetic policies.
    """

    retention_policies: tuple[RetentionPolicy, ...] = ()
    size_thresholds: tuple[SizeThreshold, ...] = ()

    @property
    def table_names(self) -> list[str]:
        """Monitored tables: retention tables first, then threshold-only tables."""
        names: list[str] = []
        for name in [p.table_name for p in self.retention_policies] + [
            t.table_name for t in self.size_thresholds
        ]:
            if name not in names:
                names.append(name)
        return names

    def retention_for(self, table_name: str) -> RetentionPolicy | None:
        for policy in self.retention_policies:
            if policy.table_name == table_name:
                return policy
        return None


@dataclass(frozen=True, slots=True)
class PartitionFailure:
    """A single failed step inside a best-effort batch operation.

    Attributes:
        operation: Step that failed ('drop' or 'capacity_check')
        table_name: Parent table being processed
        message: Sanitized description of the underlying error
        partition_name: Partition involved, if any
    """

    operation: str
    table_name: str
    message: str
    partition_name: str | None = None

    def describe(self) -> str:
        target = self.table_name
        if self.partition_name:
            target = f"{self.table_name}.{self.partition_name}"
        return f"{self.operation} failed for {target}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "table_name": self.table_name,
            "partition_name": self.partition_name,
            "message": self.message,
        }


@dataclass
class ProvisionResult:
    """Outcome of provisioning monthly partitions for one table."""

    table_name: str
    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def months(self) -> int:
        return len(self.created) + len(self.skipped)

    def to_dict(self) -> dict[str, Any]:
        return {
            "table_name": self.table_name,
            "created": self.created,
            "skipped": self.skipped,
            "total_created": len(self.created),
        }


@dataclass
class CleanupResult:
    """Outcome of a retention cleanup pass.

    Attributes:
        deleted_partitions: Names of partitions dropped during the pass
        failures: Partition drops that did not succeed
        archived_rows: Aggregate rows written before dropping, None if archival
            did not run or failed
        archive_error: Why archival failed; archival failures never fail the pass
    """

    deleted_partitions: list[str] = field(default_factory=list)
    failures: list[PartitionFailure] = field(default_factory=list)
    archived_rows: int | None = None
    archive_error: str | None = None

    @property
    def error(self) -> str | None:
        """Single aggregated error message, None when every step succeeded."""
        if not self.failures:
            return None
        return "; ".join(f.describe() for f in self.failures)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "deleted_partitions": self.deleted_partitions,
            "archived_rows": self.archived_rows,
        }
        if self.archive_error:
            result["archive_error"] = self.archive_error
        if self.failures:
            result["error"] = self.error
            result["failures"] = [f.to_dict() for f in self.failures]
        return result


@dataclass
class CapacityAction:
    """A partition extension triggered by a capacity threshold."""

    table_name: str
    trigger: str  # "rows", "size" or "both"
    row_count: int
    size_mb: float
    extended_from: date
    extended_to: date
    created_partitions: list[str] = field(default_factory=list)
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "table_name": self.table_name,
            "trigger": self.trigger,
            "row_count": self.row_count,
            "size_mb": round(self.size_mb, 2),
            "extended_from": self.extended_from.isoformat(),
            "extended_to": self.extended_to.isoformat(),
            "created_partitions": self.created_partitions,
            "description": self.description,
        }


@dataclass
class CapacityCheckResult:
    """Outcome of a capacity check across all monitored tables."""

    actions: list[CapacityAction] = field(default_factory=list)
    failures: list[PartitionFailure] = field(default_factory=list)

    @property
    def triggered_actions(self) -> list[str]:
        return [a.description for a in self.actions]

    @property
    def errors(self) -> list[str] | None:
        if not self.failures:
            return None
        return [f.describe() for f in self.failures]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "triggered_actions": self.triggered_actions,
            "actions": [a.to_dict() for a in self.actions],
        }
        if self.failures:
            result["errors"] = self.errors
            result["failures"] = [f.to_dict() for f in self.failures]
        return result


@dataclass
class TableHealth:
    """Diagnostic summary of one monitored table."""

    table_name: str
    partition_count: int
    largest_partition: str | None = None
    oldest_partition: str | None = None
    newest_partition: str | None = None
    missing_partitions: list[str] = field(default_factory=list)
    recommended_actions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "table_name": self.table_name,
            "partition_count": self.partition_count,
            "largest_partition": self.largest_partition,
            "oldest_partition": self.oldest_partition,
            "newest_partition": self.newest_partition,
            "missing_partitions": self.missing_partitions,
            "recommended_actions": self.recommended_actions,
        }


@dataclass
class HealthReport:
    tables: list[TableHealth] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"table_health": [t.to_dict() for t in self.tables]}


@dataclass
class EfficiencyReport:
    """Partitioning sanity checks over the monitored tables."""

    performance_issues: list[str] = field(default_factory=list)
    partitioned_tables: list[str] = field(default_factory=list)
    partitions_with_data: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "performance_issues": self.performance_issues,
            "partitioned_tables": self.partitioned_tables,
            "partitions_with_data": self.partitions_with_data,
        }


@dataclass
class MaintenanceResult:
    """Combined outcome of a full maintenance run."""

    capacity: CapacityCheckResult
    cleanup: CleanupResult
    health: HealthReport

    def to_dict(self) -> dict[str, Any]:
        return {
            "capacity": self.capacity.to_dict(),
            "cleanup": self.cleanup.to_dict(),
            "health": self.health.to_dict(),
        }
