"""Monthly aggregate of study sessions kept after their partitions are dropped."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

ARCHIVE_SCHEMA = "archive"


class StudySessionMonthlyArchive(Base):
    """Lossy per-user, per-month summary of study sessions.

    Rows are written once by the archival job and never updated; the
    ``(user_id, year, month)`` constraint makes repeated archival a no-op.
    """

    __tablename__ = "study_sessions_monthly"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    total_minutes: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    session_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_focus_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_activity: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "year", "month", name="uq_study_sessions_monthly_user_period"),
        {"schema": ARCHIVE_SCHEMA},
    )

    def __repr__(self) -> str:
        return (
            f"<StudySessionMonthlyArchive(user_id={self.user_id}, "
            f"period={self.year}-{self.month:02d}, sessions={self.session_count})>"
        )
