"""Unit tests for the partition lifecycle facade."""

from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from partition_lifecycle.core.logging import get_run_id
from partition_lifecycle.services.partition_manager import PartitionLifecycleManager
from partition_lifecycle.tests.fakes import fixed_clock


@pytest.fixture
def manager(store, policies):
    return PartitionLifecycleManager(
        policies=policies,
        store=store,
        clock=fixed_clock(2025, 2, 1),
        efficiency_size_warning_mb=500,
    )


@pytest.mark.asyncio
async def test_create_and_inspect_partitions(manager):
    result = await manager.create_monthly_partitions(
        "StudySession", date(2025, 1, 1), date(2025, 2, 28)
    )
    partitions = await manager.get_partition_info("StudySession")

    assert result.to_dict()["total_created"] == 2
    assert sorted(p.partition_name for p in partitions) == result.created


@pytest.mark.asyncio
async def test_get_partition_info_for_all_lists_every_monitored_table(manager, store):
    store.add_month_partitions("SecurityLog", date(2025, 1, 1), 1)

    info = await manager.get_partition_info_for_all()

    assert list(info) == ["StudySession", "SecurityLog"]
    assert info["StudySession"] == []
    assert [p.partition_name for p in info["SecurityLog"]] == ["SecurityLog_2025_01"]


# verify_partitioning_efficiency tests


@pytest.mark.asyncio
async def test_efficiency_reports_unpartitioned_and_large_tables(manager, store):
    store.add_month_partitions("StudySession", date(2025, 1, 1), 3, rows=0)
    store.partitions["StudySession_2025_01"].rows = 1200
    store.set_stats("StudySession", row_count=1200, size_mb=750)
    store.set_stats("SecurityLog", row_count=5, size_mb=1, is_partitioned=False)

    report = await manager.verify_partitioning_efficiency()

    assert report.partitioned_tables == ["StudySession"]
    assert report.partitions_with_data == 1
    assert report.performance_issues == [
        "StudySession is large (750MB) - ensure proper partitioning",
        "SecurityLog is not partitioned",
    ]


@pytest.mark.asyncio
async def test_efficiency_records_unreadable_table_and_continues(manager, store):
    store.fail_stats.add("StudySession")

    report = await manager.verify_partitioning_efficiency()

    assert report.partitioned_tables == ["SecurityLog"]
    assert len(report.performance_issues) == 1
    assert report.performance_issues[0].startswith(
        "Failed to analyze partitioning efficiency for StudySession"
    )


# run_maintenance tests


@pytest.mark.asyncio
async def test_run_maintenance_runs_capacity_then_cleanup_then_health(manager, store):
    store.add_month_partitions("SecurityLog", date(2024, 1, 1), 2)  # expired under 90 days
    store.set_stats("StudySession", row_count=2_000_000)

    result = await manager.run_maintenance()

    stats_calls = [i for i, call in enumerate(store.calls) if call[0] == "stats"]
    drop_calls = [i for i, call in enumerate(store.calls) if call[0] == "drop"]
    assert max(stats_calls) < min(drop_calls)

    assert [a.table_name for a in result.capacity.actions] == ["StudySession"]
    assert result.cleanup.deleted_partitions == ["SecurityLog_2024_01", "SecurityLog_2024_02"]
    security_log = next(t for t in result.health.tables if t.table_name == "SecurityLog")
    assert security_log.recommended_actions == ["No partitions found - create initial partitions"]
    assert set(result.to_dict()) == {"capacity", "cleanup", "health"}


@pytest.mark.asyncio
async def test_run_maintenance_sets_and_restores_run_id(manager):
    seen: list[str | None] = []

    async def capture():
        seen.append(get_run_id())
        return await original()

    original = manager.check_and_extend_partitions_if_needed
    with patch.object(
        manager, "check_and_extend_partitions_if_needed", AsyncMock(side_effect=capture)
    ):
        await manager.run_maintenance()

    assert seen[0] is not None
    assert get_run_id() is None


def test_from_settings_builds_manager_from_configuration():
    manager = PartitionLifecycleManager.from_settings()

    assert manager.policies.table_names == [
        "StudySession",
        "ProgressSnapshot",
        "SecurityLog",
        "Session",
    ]
    assert manager.retention._archiver is not None
    assert manager.efficiency_size_warning_mb == 500.0
