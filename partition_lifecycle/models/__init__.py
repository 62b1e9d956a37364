"""Data model for the partition lifecycle manager."""

from .archive import ARCHIVE_SCHEMA, StudySessionMonthlyArchive
from .base import Base
from .partition import (
    CapacityAction,
    CapacityCheckResult,
    CleanupResult,
    EfficiencyReport,
    HealthReport,
    LifecyclePolicies,
    MaintenanceResult,
    PartitionDescriptor,
    PartitionFailure,
    ProvisionResult,
    RetentionPolicy,
    SizeThreshold,
    TableHealth,
)
from .study_session import StudySession

__all__ = [
    "ARCHIVE_SCHEMA",
    "Base",
    "CapacityAction",
    "CapacityCheckResult",
    "CleanupResult",
    "EfficiencyReport",
    "HealthReport",
    "LifecyclePolicies",
    "MaintenanceResult",
    "PartitionDescriptor",
    "PartitionFailure",
    "ProvisionResult",
    "RetentionPolicy",
    "SizeThreshold",
    "StudySession",
    "StudySessionMonthlyArchive",
    "TableHealth",
]
