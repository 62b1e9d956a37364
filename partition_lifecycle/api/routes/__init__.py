"""API route modules."""

from partition_lifecycle.api.routes.partitions import router as partitions_router

__all__ = ["partitions_router"]
