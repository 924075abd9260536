"""Durable storage for weekly contribution events and the watermark."""

from __future__ import annotations

from .engine import create_store_engine, sqlite_database_path
from .errors import CorruptWatermarkError, UnsupportedDialectError
from .store import SqlContributionStore
from .tables import (
    CONTRIBUTION_TABLES,
    WATERMARK_KEY,
    Base,
    ContributionRecord,
    IssueOpened,
    MetaEntry,
    PullRequestMerged,
    PullRequestOpened,
    init_storage,
)

__all__ = [
    "CONTRIBUTION_TABLES",
    "WATERMARK_KEY",
    "Base",
    "ContributionRecord",
    "CorruptWatermarkError",
    "IssueOpened",
    "MetaEntry",
    "PullRequestMerged",
    "PullRequestOpened",
    "SqlContributionStore",
    "UnsupportedDialectError",
    "create_store_engine",
    "init_storage",
    "sqlite_database_path",
]
