"""Incremental weekly contribution ingestion worker.

Each run resolves a starting week, then processes contiguous complete weeks in
ascending order. For every week it runs each metric query for each scope,
filters the results, and inserts admitted events. The watermark is advanced to
a week only after every query for that week has succeeded, so a failed run
leaves the in-flight week to be retried from scratch next time.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import enum
import typing as typ

from cairn.common.time import utcnow
from cairn.github.observability import IngestionEventLogger, IngestionRunContext
from cairn.logging import get_logger, log_info

from .scopes import build_scope_queries
from .windows import (
    WeekWindow,
    last_complete_week_start,
    plan_weeks,
    resolve_start_week,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from cairn.config import IngestionSettings
    from cairn.github.models import SearchNode
    from cairn.github.observability import QueryContext

    from .filters import RecordFilter
    from .models import ContributionCandidate, MetricKind
    from .scopes import Scope

logger = get_logger(__name__)


class ContributionStore(typ.Protocol):
    """Persistence operations the worker relies on."""

    async def get_watermark(self) -> dt.date | None:
        """Return the last fully processed week, if any."""
        ...

    async def set_watermark(self, week_start: dt.date) -> None:
        """Record ``week_start`` as fully processed."""
        ...

    async def insert_events(
        self,
        metric: MetricKind,
        week_start: dt.date,
        candidates: cabc.Sequence[ContributionCandidate],
    ) -> int:
        """Insert candidates for a week, ignoring existing duplicates."""
        ...


class QueryExecutor(typ.Protocol):
    """Runs one search query to completion across all pages."""

    async def collect(
        self, query: str, *, context: QueryContext
    ) -> list[SearchNode]:
        """Return every node matching ``query``."""
        ...


class IngestionPhase(enum.StrEnum):
    """Lifecycle of a single ingestion run."""

    IDLE = "idle"
    SELECTING_WEEK = "selecting_week"
    PROCESSING_SCOPES = "processing_scopes"
    COMMITTING_WATERMARK = "committing_watermark"
    DONE = "done"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True, slots=True)
class IngestionConfig:
    """Runtime knobs for week selection."""

    history_weeks: int = 260
    max_weeks_per_run: int = 12
    reprocess_from_week: dt.date | None = None
    reprocess_weeks: int = 0

    @classmethod
    def from_settings(cls, settings: IngestionSettings) -> IngestionConfig:
        """Build the worker configuration from resolved settings."""
        return cls(
            history_weeks=settings.history_weeks,
            max_weeks_per_run=settings.max_weeks_per_run,
            reprocess_from_week=settings.reprocess_from_week,
            reprocess_weeks=settings.reprocess_weeks,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class IngestionRunResult:
    """Summary of one ingestion run."""

    weeks_processed: tuple[dt.date, ...] = ()
    watermark: dt.date | None = None
    events_admitted: int = 0
    events_rejected: int = 0
    weeks_remaining: bool = False


@dataclasses.dataclass(slots=True)
class _RunProgress:
    watermark: dt.date | None
    weeks_processed: list[dt.date] = dataclasses.field(default_factory=list)
    events_admitted: int = 0
    events_rejected: int = 0
    in_flight_week: dt.date | None = None


class ContributionIngestionWorker:
    """Harvest weekly contribution events for a fixed set of scopes."""

    def __init__(  # noqa: PLR0913
        self,
        store: ContributionStore,
        executor: QueryExecutor,
        record_filter: RecordFilter,
        scopes: cabc.Sequence[Scope],
        *,
        config: IngestionConfig | None = None,
        event_logger: IngestionEventLogger | None = None,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
    ) -> None:
        """Create a worker bound to a store, a query executor and scopes."""
        self._store = store
        self._executor = executor
        self._filter = record_filter
        self._scopes = tuple(scopes)
        self._config = config or IngestionConfig()
        self._event_logger = event_logger or IngestionEventLogger()
        self._clock = clock
        self._phase = IngestionPhase.IDLE

    @property
    def phase(self) -> IngestionPhase:
        """Current lifecycle phase."""
        return self._phase

    async def run(self, *, now: dt.datetime | None = None) -> IngestionRunResult:
        """Process the next batch of complete weeks.

        Raises
        ------
        RetryExhaustedError | GitHubAPIError | GitHubResponseShapeError
            When a query cannot be completed. The watermark is left at the
            last fully committed week.
        SQLAlchemyError
            When the store cannot be read or written.

        """
        run_started_at = self._clock()
        self._phase = IngestionPhase.SELECTING_WEEK
        last_complete = last_complete_week_start(now or run_started_at)
        watermark = await self._store.get_watermark()
        resume = resolve_start_week(
            last_complete=last_complete,
            watermark=watermark,
            history_weeks=self._config.history_weeks,
            override_start=self._config.reprocess_from_week,
            reprocess_weeks=self._config.reprocess_weeks,
        )
        plan = plan_weeks(
            resume.week, last_complete, max_weeks=self._config.max_weeks_per_run
        )
        obs_context = IngestionRunContext(
            started_at=run_started_at,
            last_complete_week=last_complete,
            start_week=resume.week,
            start_reason=resume.reason,
            planned_weeks=len(plan.weeks),
        )
        self._event_logger.log_run_started(obs_context)
        if plan.weeks_remaining:
            log_info(
                logger,
                "Week cap of %d reached; later weeks are left for the next run",
                self._config.max_weeks_per_run,
            )

        progress = _RunProgress(watermark=watermark)
        try:
            for week_start in plan.weeks:
                await self._process_week(week_start, progress)
        except BaseException as exc:
            self._phase = IngestionPhase.FAILED
            duration = self._clock() - run_started_at
            self._event_logger.log_run_failed(
                obs_context, exc, duration, in_flight_week=progress.in_flight_week
            )
            raise

        self._phase = IngestionPhase.DONE
        result = IngestionRunResult(
            weeks_processed=tuple(progress.weeks_processed),
            watermark=progress.watermark,
            events_admitted=progress.events_admitted,
            events_rejected=progress.events_rejected,
            weeks_remaining=plan.weeks_remaining,
        )
        duration = self._clock() - run_started_at
        self._event_logger.log_run_completed(obs_context, result, duration)
        return result

    async def _process_week(self, week_start: dt.date, progress: _RunProgress) -> None:
        """Run every query for ``week_start`` and then advance the watermark."""
        progress.in_flight_week = week_start
        self._phase = IngestionPhase.PROCESSING_SCOPES
        queries = build_scope_queries(self._scopes, WeekWindow(week_start))
        self._event_logger.log_week_started(week_start, len(queries))

        admitted = 0
        rejected = 0
        for query in queries:
            context = query.context
            nodes = await self._executor.collect(
                query.search_expression, context=context
            )
            tally = self._filter.apply(nodes)
            if tally.admitted:
                await self._store.insert_events(
                    query.metric, week_start, tally.admitted
                )
            self._event_logger.log_query_completed(context, week_start, tally)
            admitted += len(tally.admitted)
            rejected += tally.rejected

        self._phase = IngestionPhase.COMMITTING_WATERMARK
        await self._store.set_watermark(week_start)
        self._event_logger.log_week_committed(week_start, admitted)

        progress.in_flight_week = None
        progress.watermark = week_start
        progress.weeks_processed.append(week_start)
        progress.events_admitted += admitted
        progress.events_rejected += rejected
        self._phase = IngestionPhase.SELECTING_WEEK
