"""Request schemas for the admin API."""

from partition_lifecycle.api.schemas.partitions import CreatePartitionsRequest

__all__ = ["CreatePartitionsRequest"]
