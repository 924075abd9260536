"""SQL-backed contribution store."""

from __future__ import annotations

import datetime as dt
import typing as typ

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from cairn.ingestion.models import ContributionEvent

from .errors import CorruptWatermarkError, UnsupportedDialectError
from .tables import CONTRIBUTION_TABLES, WATERMARK_KEY, MetaEntry

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy import Table
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from sqlalchemy.sql.dml import Insert

    from cairn.ingestion.models import ContributionCandidate, MetricKind

    SessionFactory: typ.TypeAlias = async_sessionmaker[AsyncSession]


def _insert_ignoring_conflicts(dialect_name: str, table: Table) -> Insert:
    """Return an INSERT that skips rows already present for the primary key."""
    key_columns = [column.name for column in table.primary_key.columns]
    match dialect_name:
        case "sqlite":
            return sqlite_insert(table).on_conflict_do_nothing(
                index_elements=key_columns
            )
        case "postgresql":
            return postgresql_insert(table).on_conflict_do_nothing(
                index_elements=key_columns
            )
        case _:
            raise UnsupportedDialectError(dialect_name)


class SqlContributionStore:
    """Insert-only event tables plus the watermark in ``meta``."""

    def __init__(self, session_factory: SessionFactory) -> None:
        """Store the session factory used for every operation."""
        self._session_factory = session_factory

    async def get_watermark(self) -> dt.date | None:
        """Return the last fully processed week, or None before the first run."""
        async with self._session_factory() as session:
            raw = await session.scalar(
                select(MetaEntry.value).where(MetaEntry.key == WATERMARK_KEY)
            )
        if raw is None:
            return None
        try:
            return dt.date.fromisoformat(raw)
        except ValueError as exc:
            raise CorruptWatermarkError(raw) from exc

    async def set_watermark(self, week_start: dt.date) -> None:
        """Upsert the watermark to ``week_start``."""
        async with self._session_factory() as session, session.begin():
            await session.merge(
                MetaEntry(key=WATERMARK_KEY, value=week_start.isoformat())
            )

    async def insert_events(
        self,
        metric: MetricKind,
        week_start: dt.date,
        candidates: cabc.Sequence[ContributionCandidate],
    ) -> int:
        """Insert one row per candidate in a single transaction.

        Rows that already exist are left untouched. Returns the number of
        candidates submitted, not the number of new rows.
        """
        if not candidates:
            return 0
        table = CONTRIBUTION_TABLES[metric].__table__
        rows = [
            {
                "week_start": week_start,
                "author": candidate.author,
                "repository": candidate.repository,
                "license": candidate.license,
            }
            for candidate in candidates
        ]
        async with self._session_factory() as session, session.begin():
            dialect_name = session.get_bind().dialect.name
            await session.execute(
                _insert_ignoring_conflicts(dialect_name, table), rows
            )
        return len(rows)

    async def list_events(self, metric: MetricKind) -> list[ContributionEvent]:
        """Return every stored event for ``metric`` in key order."""
        record = CONTRIBUTION_TABLES[metric]
        async with self._session_factory() as session:
            records = await session.scalars(
                select(record).order_by(
                    record.week_start, record.author, record.repository
                )
            )
            return [
                ContributionEvent(
                    metric=metric,
                    week_start=row.week_start,
                    author=row.author,
                    repository=row.repository,
                    license=row.license,
                )
                for row in records
            ]

    async def count_by_week_and_author(
        self, metric: MetricKind
    ) -> list[tuple[dt.date, str, int]]:
        """Return ``(week_start, author, rows)`` for ``metric``.

        Each row is one repository, so the count is the number of distinct
        repositories the author contributed to that week.
        """
        record = CONTRIBUTION_TABLES[metric]
        stmt = (
            select(record.week_start, record.author, func.count())
            .group_by(record.week_start, record.author)
            .order_by(record.week_start, record.author)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [(week, author, count) for week, author, count in result.all()]
