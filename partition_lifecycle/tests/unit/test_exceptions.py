"""Unit tests for the exception hierarchy."""

from partition_lifecycle.core.exceptions import (
    DatabaseError,
    DateRangeValidationError,
    InvalidTableNameError,
    PartitionLifecycleError,
    PartitionProvisioningError,
    UnknownTableError,
    ValidationError,
)


def test_base_error_defaults():
    error = PartitionLifecycleError()

    assert error.status_code == 500
    assert error.to_dict() == {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}


def test_invalid_table_name_truncates_echoed_name():
    error = InvalidTableNameError("x" * 500)

    assert isinstance(error, ValidationError)
    assert error.status_code == 400
    assert len(error.details["name"]) == 100


def test_date_range_error_details():
    error = DateRangeValidationError(start_date="2025-03-01", end_date="2025-01-01")

    assert error.to_dict()["details"] == {"start_date": "2025-03-01", "end_date": "2025-01-01"}


def test_unknown_table_is_not_found():
    error = UnknownTableError("Users")

    assert error.status_code == 404
    assert error.error_code == "UNKNOWN_TABLE"
    assert "Users" in error.message


def test_provisioning_error_carries_partial_progress():
    created = ["Session_2025_01"]
    error = PartitionProvisioningError(
        "boom", table_name="Session", partition_name="Session_2025_02", created=created
    )
    created.append("mutated")

    assert isinstance(error, DatabaseError)
    assert error.status_code == 503
    assert error.created == ["Session_2025_01"]
    assert error.details["partition_name"] == "Session_2025_02"
