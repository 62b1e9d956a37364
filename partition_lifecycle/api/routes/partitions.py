"""Admin API routes for partition lifecycle operations.

Each endpoint runs one lifecycle operation against the live database and
returns its structured result. Batch operations (cleanup, capacity check,
maintenance) report per-table failures in the response body with a 200
status; only request errors and unexpected exceptions produce error
responses.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from partition_lifecycle.api.schemas.partitions import CreatePartitionsRequest
from partition_lifecycle.core.exceptions import UnknownTableError
from partition_lifecycle.services.partition_manager import (
    PartitionLifecycleManager,
    get_partition_manager,
)

router = APIRouter(prefix="/api/admin/partitions", tags=["partitions"])


@router.get("/health")
async def get_partition_health(
    manager: PartitionLifecycleManager = Depends(get_partition_manager),
) -> dict[str, Any]:
    """Get the partition health report for all monitored tables."""
    report = await manager.get_partition_health_report()
    return report.to_dict()


@router.get("/info")
async def get_partition_info(
    table: str | None = Query(None, description="Limit to one monitored table"),
    manager: PartitionLifecycleManager = Depends(get_partition_manager),
) -> dict[str, Any]:
    """List the partitions of one or all monitored tables."""
    if table is None:
        info = await manager.get_partition_info_for_all()
    else:
        if table not in manager.policies.table_names:
            raise UnknownTableError(table)
        info = {table: await manager.get_partition_info(table)}

    return {
        "partitions": {
            table_name: [p.to_dict() for p in partitions]
            for table_name, partitions in info.items()
        }
    }


@router.get("/efficiency")
async def get_partitioning_efficiency(
    manager: PartitionLifecycleManager = Depends(get_partition_manager),
) -> dict[str, Any]:
    """Report unpartitioned or oversized monitored tables."""
    report = await manager.verify_partitioning_efficiency()
    return report.to_dict()


@router.post("/check-size")
async def check_partition_size(
    manager: PartitionLifecycleManager = Depends(get_partition_manager),
) -> dict[str, Any]:
    """Extend partitions of tables that exceed their capacity thresholds."""
    result = await manager.check_and_extend_partitions_if_needed()
    return result.to_dict()


@router.post("/create")
async def create_partitions(
    request: CreatePartitionsRequest,
    manager: PartitionLifecycleManager = Depends(get_partition_manager),
) -> dict[str, Any]:
    """Create monthly partitions for a table over a date range."""
    result = await manager.create_monthly_partitions(
        request.table_name, request.start_date, request.end_date
    )
    return result.to_dict()


@router.post("/cleanup")
async def cleanup_partitions(
    manager: PartitionLifecycleManager = Depends(get_partition_manager),
) -> dict[str, Any]:
    """Archive old data and drop partitions past their retention period."""
    result = await manager.cleanup_old_partitions()
    return result.to_dict()


@router.post("/maintain")
async def run_partition_maintenance(
    manager: PartitionLifecycleManager = Depends(get_partition_manager),
) -> dict[str, Any]:
    """Run capacity extension, retention cleanup and a health check."""
    result = await manager.run_maintenance()
    return result.to_dict()
