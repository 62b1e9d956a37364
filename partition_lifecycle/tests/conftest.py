"""Pytest configuration and shared fixtures.

Unit tests run against ``FakePartitionStore`` and a fixed clock; no
database is needed. Integration tests in ``integration/`` use a real
PostgreSQL instance and are skipped when none is reachable (configure
``TEST_DATABASE_URL`` to point them elsewhere).
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from partition_lifecycle.models.partition import LifecyclePolicies, RetentionPolicy, SizeThreshold
from partition_lifecycle.tests.fakes import FakePartitionStore

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path) -> Generator[None]:
    """Keep settings and log files of each test away from the working tree."""
    from partition_lifecycle.core.config import get_settings

    original_log_path = os.environ.get("LOG_FILE_PATH")
    os.environ["LOG_FILE_PATH"] = str(tmp_path / "logs" / "partition_lifecycle.log")
    get_settings.cache_clear()

    yield

    if original_log_path is None:
        os.environ.pop("LOG_FILE_PATH", None)
    else:
        os.environ["LOG_FILE_PATH"] = original_log_path
    get_settings.cache_clear()


@pytest.fixture
def store() -> FakePartitionStore:
    return FakePartitionStore()


@pytest.fixture
def policies() -> LifecyclePolicies:
    """Two-table policy set small enough to reason about in assertions."""
    return LifecyclePolicies(
        retention_policies=(
            RetentionPolicy(table_name="StudySession", retention_days=365),
            RetentionPolicy(table_name="SecurityLog", retention_days=90),
        ),
        size_thresholds=(
            SizeThreshold(
                table_name="StudySession",
                max_rows=1_000_000,
                max_size_mb=500,
                auto_extend_months=12,
            ),
            SizeThreshold(
                table_name="SecurityLog",
                max_rows=100_000,
                max_size_mb=100,
                auto_extend_months=6,
            ),
        ),
    )
