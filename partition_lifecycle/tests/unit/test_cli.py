"""Unit tests for the operator command line."""

from datetime import date

import pytest

from partition_lifecycle.cli import build_parser, run_command
from partition_lifecycle.services.partition_manager import PartitionLifecycleManager
from partition_lifecycle.tests.fakes import fixed_clock


@pytest.fixture
def manager(store, policies):
    return PartitionLifecycleManager(policies=policies, store=store, clock=fixed_clock(2025, 2, 1))


def test_parse_create_command():
    parsed = build_parser().parse_args(["create", "StudySession", "2025-01-01", "2025-06-30"])

    assert parsed.command == "create"
    assert parsed.table_name == "StudySession"
    assert parsed.start_date == date(2025, 1, 1)
    assert parsed.end_date == date(2025, 6, 30)
    assert parsed.init_schema is False


def test_parse_rejects_bad_date():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["create", "StudySession", "January", "2025-06-30"])


def test_parse_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


@pytest.mark.asyncio
async def test_run_create(manager, store):
    parsed = build_parser().parse_args(["create", "Session", "2025-01-01", "2025-02-01"])

    result, failed = await run_command(manager, parsed)

    assert failed is False
    assert result["created"] == ["Session_2025_01", "Session_2025_02"]


@pytest.mark.asyncio
async def test_run_info_for_one_table(manager, store):
    store.add_month_partitions("SecurityLog", date(2025, 1, 1), 1)
    parsed = build_parser().parse_args(["info", "--table", "SecurityLog"])

    result, failed = await run_command(manager, parsed)

    assert failed is False
    assert [p["partition_name"] for p in result["partitions"]["SecurityLog"]] == [
        "SecurityLog_2025_01"
    ]


@pytest.mark.asyncio
async def test_run_cleanup_reports_failures(manager, store):
    store.add_month_partitions("SecurityLog", date(2024, 1, 1), 1)
    store.fail_drop.add("SecurityLog_2024_01")
    parsed = build_parser().parse_args(["cleanup"])

    result, failed = await run_command(manager, parsed)

    assert failed is True
    assert result["failures"][0]["partition_name"] == "SecurityLog_2024_01"


@pytest.mark.asyncio
async def test_run_maintain(manager):
    parsed = build_parser().parse_args(["maintain"])

    result, failed = await run_command(manager, parsed)

    assert failed is False
    assert set(result) == {"capacity", "cleanup", "health"}
