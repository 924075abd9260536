"""Composition root for ingestion and export runs.

Builds the engine, store, GitHub client, executor and worker from resolved
settings and tears them down afterwards. The CLI calls these coroutines; tests
call them directly with fake search clients.
"""

from __future__ import annotations

import asyncio
import typing as typ

from sqlalchemy.ext.asyncio import async_sessionmaker

from cairn.common.time import utcnow
from cairn.export import ExportError, build_metrics_summary, write_metrics_summary
from cairn.github import (
    GitHubSearchClient,
    GitHubSearchConfig,
    IngestionEventLogger,
    PagedQueryExecutor,
    RetryPolicy,
)
from cairn.ingestion import (
    ContributionIngestionWorker,
    IngestionConfig,
    RecordFilter,
    build_scopes,
)
from cairn.storage import (
    SqlContributionStore,
    create_store_engine,
    init_storage,
    sqlite_database_path,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from cairn.config import IngestionSettings
    from cairn.export import MetricsSummary
    from cairn.github import SearchClient
    from cairn.ingestion import IngestionRunResult

    Sleeper = cabc.Callable[[float], cabc.Awaitable[None]]


async def run_ingestion(
    settings: IngestionSettings,
    *,
    search_client: SearchClient | None = None,
    retry_policy: RetryPolicy | None = None,
    sleep: Sleeper | None = None,
    now: dt.datetime | None = None,
) -> IngestionRunResult:
    """Run one incremental ingestion pass against the configured store.

    When ``search_client`` is omitted a :class:`GitHubSearchClient` is built
    from the settings token and closed afterwards.
    """
    engine = create_store_engine(settings.database_url)
    owned_client: GitHubSearchClient | None = None
    try:
        await init_storage(engine)
        store = SqlContributionStore(async_sessionmaker(engine, expire_on_commit=False))
        if search_client is None:
            owned_client = GitHubSearchClient(
                GitHubSearchConfig(token=settings.require_token())
            )
            search_client = owned_client

        event_logger = IngestionEventLogger()
        executor = PagedQueryExecutor(
            search_client,
            policy=retry_policy,
            event_logger=event_logger,
            sleep=sleep or asyncio.sleep,
        )
        worker = ContributionIngestionWorker(
            store,
            executor,
            RecordFilter(settings.license_allowlist),
            build_scopes(settings.org_allowlist, settings.contributor_allowlist),
            config=IngestionConfig.from_settings(settings),
            event_logger=event_logger,
        )
        return await worker.run(now=now)
    finally:
        if owned_client is not None:
            await owned_client.aclose()
        await engine.dispose()


async def run_export(
    settings: IngestionSettings, *, generated_at: dt.datetime | None = None
) -> MetricsSummary:
    """Aggregate the store and write the metrics document.

    Raises
    ------
    ExportError
        If the SQLite database file has not been created yet.

    """
    sqlite_path = sqlite_database_path(settings.database_url)
    if sqlite_path is not None and not sqlite_path.exists():
        raise ExportError.database_missing(sqlite_path)

    engine = create_store_engine(settings.database_url, create_parent=False)
    try:
        await init_storage(engine)
        store = SqlContributionStore(async_sessionmaker(engine, expire_on_commit=False))
        summary = await build_metrics_summary(
            store,
            orgs=settings.org_allowlist,
            contributors=settings.contributor_allowlist,
            generated_at=generated_at or utcnow(),
        )
    finally:
        await engine.dispose()

    write_metrics_summary(summary, settings.export_path)
    return summary
