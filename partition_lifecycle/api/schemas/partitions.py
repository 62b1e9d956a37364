"""Pydantic schemas for partition lifecycle endpoints."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class CreatePartitionsRequest(BaseModel):
    """Request schema for creating monthly partitions over a date range."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "table_name": "StudySession",
                "start_date": "2025-01-01",
                "end_date": "2025-06-30",
            }
        }
    )

    table_name: str = Field(
        ...,
        min_length=1,
        max_length=63,
        description="Partitioned parent table",
    )
    start_date: date = Field(..., description="First day to cover (inclusive)")
    end_date: date = Field(..., description="Last day to cover (inclusive)")
