"""Partition lifecycle services."""

from partition_lifecycle.services.partition_manager import (
    PartitionLifecycleManager,
    get_partition_manager,
)
from partition_lifecycle.services.partition_store import (
    PartitionStore,
    PostgresPartitionStore,
)

__all__ = [
    "PartitionLifecycleManager",
    "PartitionStore",
    "PostgresPartitionStore",
    "get_partition_manager",
]
