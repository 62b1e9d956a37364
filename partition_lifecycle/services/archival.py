"""Archive aged study sessions into monthly per-user aggregates.

Retention cleanup drops whole partitions of ``StudySession``. Before that
happens, rows older than the archive horizon are summarized into
``archive.study_sessions_monthly`` so historical analytics survive the drop.

Only whole months are aggregated: the horizon is moved back to the first
day of its month. Combined with ``ON CONFLICT DO NOTHING`` on
``(user_id, year, month)`` this makes archival idempotent, and an archive
row, once written, is complete and never replaced.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from sqlalchemy import Integer, MetaData, and_, cast, exists, extract, func, select, text
from sqlalchemy.dialects.postgresql import Insert, insert

from partition_lifecycle.core.database import get_session
from partition_lifecycle.core.logging import get_logger
from partition_lifecycle.core.time_utils import as_date, first_of_month, utc_now
from partition_lifecycle.models.archive import ARCHIVE_SCHEMA, StudySessionMonthlyArchive
from partition_lifecycle.models.study_session import StudySession
from partition_lifecycle.services.partition_store import SessionFactory, quote_identifier

logger = get_logger(__name__)

DEFAULT_ARCHIVE_HORIZON_DAYS = 365


class ArchivalAggregator:
    """Upserts monthly aggregates of study sessions older than the horizon."""

    source_table = StudySession.__tablename__

    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        horizon_days: int = DEFAULT_ARCHIVE_HORIZON_DAYS,
        source_schema: str = "public",
        archive_schema: str = ARCHIVE_SCHEMA,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the aggregator.

        Args:
            session_factory: Callable returning an async session context manager
            horizon_days: Rows older than this many days are archived
            source_schema: Schema of the ``StudySession`` table
            archive_schema: Schema of the aggregate table
            clock: Returns the current time (UTC)
        """
        quote_identifier(source_schema)
        quote_identifier(archive_schema)
        self._session_factory = session_factory or get_session
        self.horizon_days = horizon_days
        self.source_schema = source_schema
        self.archive_schema = archive_schema
        self._clock = clock

    @property
    def _schema_map(self) -> dict[str | None, str]:
        return {None: self.source_schema, ARCHIVE_SCHEMA: self.archive_schema}

    def archive_horizon(self) -> datetime:
        """First instant of the month containing ``now - horizon_days`` (UTC)."""
        cutoff_day = first_of_month(as_date(self._clock() - timedelta(days=self.horizon_days)))
        return datetime(cutoff_day.year, cutoff_day.month, 1, tzinfo=UTC)

    def build_archive_statement(self, horizon: datetime) -> Insert:
        """Build the INSERT ... SELECT ... ON CONFLICT DO NOTHING statement."""
        archive = StudySessionMonthlyArchive
        year_expr = cast(extract("year", StudySession.created_at), Integer)
        month_expr = cast(extract("month", StudySession.created_at), Integer)

        already_archived = exists().where(
            and_(
                archive.user_id == StudySession.user_id,
                archive.year == year_expr,
                archive.month == month_expr,
            )
        )

        source = (
            select(
                StudySession.user_id,
                year_expr,
                month_expr,
                func.coalesce(func.sum(StudySession.duration_min), 0),
                func.count(),
                func.avg(StudySession.focus_score),
                func.max(StudySession.created_at),
            )
            .where(StudySession.created_at < horizon)
            .where(~already_archived)
            .group_by(StudySession.user_id, year_expr, month_expr)
        )

        return (
            insert(archive)
            .from_select(
                [
                    archive.user_id,
                    archive.year,
                    archive.month,
                    archive.total_minutes,
                    archive.session_count,
                    archive.average_focus_score,
                    archive.last_activity,
                ],
                source,
            )
            .on_conflict_do_nothing(
                index_elements=[archive.user_id, archive.year, archive.month]
            )
        )

    async def archive_operational_data(self) -> int:
        """Aggregate un-archived months older than the horizon.

        Returns:
            Number of archive rows inserted

        Raises:
            Exception: Database errors propagate; the retention enforcer
                decides whether they are fatal.
        """
        horizon = self.archive_horizon()
        stmt = self.build_archive_statement(horizon)

        async with self._session_factory() as session:
            conn = await session.connection(
                execution_options={"schema_translate_map": self._schema_map}
            )
            # Month boundaries are evaluated in UTC
            await conn.execute(text("SET LOCAL TIME ZONE 'UTC'"))
            result = await conn.execute(stmt)
            inserted = max(result.rowcount or 0, 0)

        logger.info(
            f"Archived {inserted} monthly study session aggregates",
            extra={"horizon": horizon.isoformat(), "archived_rows": inserted},
        )
        return inserted

    async def ensure_archive_table(self) -> None:
        """Create the archive schema and aggregate table if missing."""
        table = StudySessionMonthlyArchive.__table__.to_metadata(
            MetaData(), schema=self.archive_schema
        )
        async with self._session_factory() as session:
            conn = await session.connection()
            await conn.execute(
                text(f"CREATE SCHEMA IF NOT EXISTS {quote_identifier(self.archive_schema)}")
            )
            await conn.run_sync(lambda sync_conn: table.create(sync_conn, checkfirst=True))
