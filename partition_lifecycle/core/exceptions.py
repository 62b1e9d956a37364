"""Exception hierarchy for the partition lifecycle manager.

This module provides an exception hierarchy that:
1. Categorizes errors by domain (validation, lookup, database, provisioning)
2. Supports automatic HTTP status code mapping
3. Enables structured error responses
"""

from __future__ import annotations

from typing import Any


class PartitionLifecycleError(Exception):
    """Base exception for all application-specific errors."""

    default_message: str = "An unexpected error occurred"
    default_error_code: str = "INTERNAL_ERROR"
    default_status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.default_error_code
        self.status_code = status_code or self.default_status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# Validation Errors (400)
class ValidationError(PartitionLifecycleError):
    default_message = "Validation failed"
    default_error_code = "VALIDATION_ERROR"
    default_status_code = 400


class DateRangeValidationError(ValidationError):
    default_message = "Invalid date range: start_date must not be after end_date"
    default_error_code = "INVALID_DATE_RANGE"

    def __init__(
        self,
        message: str | None = None,
        *,
        start_date: Any = None,
        end_date: Any = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {}) or {}
        if start_date is not None:
            details["start_date"] = str(start_date)
        if end_date is not None:
            details["end_date"] = str(end_date)
        super().__init__(message, details=details, **kwargs)


class InvalidTableNameError(ValidationError):
    """Raised when a table or partition name is not a plain SQL identifier."""

    default_message = "Invalid table name"
    default_error_code = "INVALID_TABLE_NAME"

    def __init__(self, name: str, **kwargs: Any) -> None:
        shown = name[:100]
        super().__init__(
            f"Invalid table name: {shown!r}",
            details={"name": shown},
            **kwargs,
        )


# Not Found Errors (404)
class NotFoundError(PartitionLifecycleError):
    default_message = "Resource not found"
    default_error_code = "NOT_FOUND"
    default_status_code = 404


class UnknownTableError(NotFoundError):
    """Raised when an operation names a table without any lifecycle policy."""

    default_error_code = "UNKNOWN_TABLE"

    def __init__(self, table_name: str, **kwargs: Any) -> None:
        super().__init__(
            f"Table '{table_name}' is not a monitored table",
            details={"table_name": table_name},
            **kwargs,
        )


# External Service Errors (503)
class ExternalServiceError(PartitionLifecycleError):
    default_message = "External service unavailable"
    default_error_code = "SERVICE_UNAVAILABLE"
    default_status_code = 503


class DatabaseError(ExternalServiceError):
    default_message = "Database operation failed"
    default_error_code = "DATABASE_ERROR"


class PartitionProvisioningError(DatabaseError):
    """Raised when the store rejects creation of a partition.

    Carries the months created before the failure so callers can report
    partial progress; re-running the provisioning resumes idempotently.
    """

    default_message = "Partition creation failed"
    default_error_code = "PARTITION_PROVISIONING_FAILED"

    def __init__(
        self,
        message: str | None = None,
        *,
        table_name: str,
        partition_name: str,
        created: list[str] | None = None,
        **kwargs: Any,
    ) -> None:
        self.table_name = table_name
        self.partition_name = partition_name
        self.created = list(created or [])
        details = kwargs.pop("details", {}) or {}
        details.update(
            {
                "table_name": table_name,
                "partition_name": partition_name,
                "created": self.created,
            }
        )
        super().__init__(message, details=details, **kwargs)
