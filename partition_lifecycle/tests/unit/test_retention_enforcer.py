"""Unit tests for retention cleanup."""

from datetime import UTC, date, datetime
from unittest.mock import AsyncMock

import pytest

from partition_lifecycle.core.time_utils import add_months
from partition_lifecycle.models.partition import LifecyclePolicies, RetentionPolicy
from partition_lifecycle.services.retention_enforcer import RetentionEnforcer, retention_cutoff
from partition_lifecycle.tests.fakes import fixed_clock

STUDY_SESSION_365 = LifecyclePolicies(
    retention_policies=(RetentionPolicy(table_name="StudySession", retention_days=365),)
)


def _expected_names(first: date, count: int) -> list[str]:
    names = []
    for i in range(count):
        month = add_months(first, i)
        names.append(f"StudySession_{month.year}_{month.month:02d}")
    return names


def test_retention_cutoff():
    policy = RetentionPolicy(table_name="Session", retention_days=30)
    assert retention_cutoff(policy, datetime(2025, 3, 31, tzinfo=UTC)) == date(2025, 3, 1)


@pytest.mark.asyncio
async def test_drops_exactly_the_partitions_older_than_retention(store):
    store.add_month_partitions("StudySession", date(2023, 1, 1), 25)  # 2023-01 .. 2025-01
    enforcer = RetentionEnforcer(store, STUDY_SESSION_365, clock=fixed_clock(2025, 2, 1))

    result = await enforcer.cleanup_old_partitions()

    dropped = _expected_names(date(2023, 1, 1), 13)  # 2023-01 .. 2024-01
    assert result.deleted_partitions == dropped
    assert result.failures == []
    assert result.error is None
    assert store.names_for("StudySession") == sorted(_expected_names(date(2024, 2, 1), 12))


@pytest.mark.asyncio
async def test_partition_straddling_cutoff_is_kept(store):
    store.add_month_partitions("StudySession", date(2024, 1, 1), 3)
    # cutoff = 2024-02-15; January ends before it, February straddles it
    enforcer = RetentionEnforcer(store, STUDY_SESSION_365, clock=fixed_clock(2025, 2, 14))

    result = await enforcer.cleanup_old_partitions()

    assert result.deleted_partitions == ["StudySession_2024_01"]


@pytest.mark.asyncio
async def test_default_partition_is_never_dropped(store):
    store.add_partition("StudySession", "StudySession_default", None, None)
    enforcer = RetentionEnforcer(store, STUDY_SESSION_365, clock=fixed_clock(2030, 1, 1))

    result = await enforcer.cleanup_old_partitions()

    assert result.deleted_partitions == []
    assert "StudySession_default" in store.partitions


@pytest.mark.asyncio
async def test_cleanup_disabled_policy_is_skipped(store):
    store.add_month_partitions("StudySession", date(2020, 1, 1), 2)
    policies = LifecyclePolicies(
        retention_policies=(
            RetentionPolicy(table_name="StudySession", retention_days=30, cleanup_enabled=False),
        )
    )

    enforcer = RetentionEnforcer(store, policies, clock=fixed_clock(2025, 1, 1))

    result = await enforcer.cleanup_old_partitions()

    assert result.deleted_partitions == []
    assert len(store.names_for("StudySession")) == 2


@pytest.mark.asyncio
async def test_drop_failure_does_not_stop_remaining_drops(store):
    names = store.add_month_partitions("StudySession", date(2022, 1, 1), 3)
    store.fail_drop.add(names[1])
    enforcer = RetentionEnforcer(store, STUDY_SESSION_365, clock=fixed_clock(2025, 1, 1))

    result = await enforcer.cleanup_old_partitions()

    assert result.deleted_partitions == [names[0], names[2]]
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert failure.operation == "drop"
    assert failure.partition_name == names[1]
    assert names[1] in result.error
    assert result.to_dict()["failures"][0]["partition_name"] == names[1]


@pytest.mark.asyncio
async def test_archives_before_dropping(store):
    store.add_month_partitions("StudySession", date(2022, 1, 1), 1)
    order: list[str] = []

    async def archive() -> int:
        order.append("archive")
        assert "StudySession_2022_01" in store.partitions
        return 4

    archiver = AsyncMock()
    archiver.archive_operational_data.side_effect = archive
    enforcer = RetentionEnforcer(
        store, STUDY_SESSION_365, archiver=archiver, clock=fixed_clock(2025, 1, 1)
    )

    result = await enforcer.cleanup_old_partitions()

    assert order == ["archive"]
    assert result.archived_rows == 4
    assert result.deleted_partitions == ["StudySession_2022_01"]
    archiver.archive_operational_data.assert_awaited_once()


@pytest.mark.asyncio
async def test_archive_failure_does_not_fail_cleanup(store):
    store.add_month_partitions("StudySession", date(2022, 1, 1), 2)
    archiver = AsyncMock()
    archiver.archive_operational_data.side_effect = RuntimeError(
        "connection to postgresql://app:secret@db:5432/app refused"
    )
    enforcer = RetentionEnforcer(
        store, STUDY_SESSION_365, archiver=archiver, clock=fixed_clock(2025, 1, 1)
    )

    result = await enforcer.cleanup_old_partitions()

    assert result.deleted_partitions == ["StudySession_2022_01", "StudySession_2022_02"]
    assert result.failures == []
    assert result.error is None
    assert result.archived_rows is None
    assert "secret" not in result.archive_error
    assert result.to_dict()["archive_error"] == result.archive_error


@pytest.mark.asyncio
async def test_find_expired_partitions_sorted_oldest_first(store):
    store.add_partition("StudySession", "StudySession_2022_03", date(2022, 3, 1), date(2022, 4, 1))
    store.add_partition("StudySession", "StudySession_2022_01", date(2022, 1, 1), date(2022, 2, 1))
    enforcer = RetentionEnforcer(store, STUDY_SESSION_365, clock=fixed_clock(2025, 1, 1))

    expired = await enforcer.find_expired_partitions(STUDY_SESSION_365.retention_policies[0])

    assert [p.partition_name for p in expired] == ["StudySession_2022_01", "StudySession_2022_03"]
