"""Persistence models for weekly contribution events."""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import typing as typ

from sqlalchemy import Date, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from cairn.ingestion.models import MetricKind

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

WATERMARK_KEY = "processed_through_week"


class Base(DeclarativeBase):
    """Base declarative class for contribution storage."""


class ContributionRecord(Base):
    """Columns shared by every metric table.

    The composite primary key makes ``(week_start, author, repository)``
    unique, so re-ingesting a week never double counts.
    """

    __abstract__ = True

    week_start: Mapped[dt.date] = mapped_column(Date, primary_key=True)
    author: Mapped[str] = mapped_column(String(255), primary_key=True)
    repository: Mapped[str] = mapped_column(String(255), primary_key=True)
    license: Mapped[str] = mapped_column(String(64))


class PullRequestOpened(ContributionRecord):
    """An author opened at least one pull request in a repository that week."""

    __tablename__ = "pr_opened"


class PullRequestMerged(ContributionRecord):
    """An author had at least one pull request merged that week."""

    __tablename__ = "pr_merged"


class IssueOpened(ContributionRecord):
    """An author opened at least one issue in a repository that week."""

    __tablename__ = "issue_opened"


class MetaEntry(Base):
    """Key/value run metadata such as the ingestion watermark."""

    __tablename__ = "meta"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text())


CONTRIBUTION_TABLES: dict[MetricKind, type[ContributionRecord]] = {
    MetricKind.PR_OPENED: PullRequestOpened,
    MetricKind.PR_MERGED: PullRequestMerged,
    MetricKind.ISSUE_OPENED: IssueOpened,
}


async def init_storage(engine: AsyncEngine) -> None:
    """Create the metric tables and ``meta`` if they do not already exist.

    Examples
    --------
    >>> from sqlalchemy.ext.asyncio import create_async_engine
    >>> engine = create_async_engine("sqlite+aiosqlite:///participation.sqlite")
    >>> await init_storage(engine)

    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
