"""Engine construction for the contribution store."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


def sqlite_database_path(database_url: str) -> Path | None:
    """Return the file behind a SQLite URL, or None for other backends.

    In-memory SQLite URLs also yield None.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return None
    if not url.database or url.database == ":memory:":
        return None
    return Path(url.database)


def _enable_wal(dbapi_connection: typ.Any, _record: object) -> None:  # noqa: ANN401
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
    finally:
        cursor.close()


def create_store_engine(database_url: str, *, create_parent: bool = True) -> AsyncEngine:
    """Create an async engine; SQLite files get their directory and WAL mode.

    WAL lets the export read while an ingestion run is writing.
    """
    sqlite_path = sqlite_database_path(database_url)
    if sqlite_path is not None and create_parent:
        sqlite_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(database_url)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_wal)
    return engine
