"""Study session model, the main append-only table managed by partitions."""

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class StudySession(Base):
    """A single tracked study session.

    The table is range partitioned by month on ``createdAt``; the primary
    key therefore includes the partition column. Column names follow the
    application's camelCase schema.
    """

    __tablename__ = "StudySession"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        "createdAt", DateTime(timezone=True), primary_key=True, nullable=False
    )
    user_id: Mapped[str] = mapped_column("userId", String, nullable=False)
    duration_min: Mapped[int] = mapped_column("durationMin", Integer, nullable=False, default=0)
    focus_score: Mapped[float | None] = mapped_column("focusScore", Float, nullable=True)

    __table_args__ = (
        Index("idx_study_session_user_created", "userId", "createdAt"),
        {"postgresql_partition_by": 'RANGE ("createdAt")'},
    )

    def __repr__(self) -> str:
        return (
            f"<StudySession(id={self.id}, user_id={self.user_id}, "
            f"created_at={self.created_at}, duration_min={self.duration_min})>"
        )
