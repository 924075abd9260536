"""Observability primitives for contribution ingestion.

Provides structured logging and error categorization for run lifecycle, week
commits, per-query filter tallies, and page retries. All events are emitted
as ``[event.type] key=value`` lines suitable for parsing by log aggregators.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

from cairn.config.errors import ConfigError
from cairn.logging import get_logger, log_error, log_info, log_warning

from .errors import GitHubAPIError, GitHubResponseShapeError, RetryExhaustedError

if typ.TYPE_CHECKING:
    import datetime as dt

    from cairn.ingestion.filters import FilterTally
    from cairn.ingestion.worker import IngestionRunResult

logger = get_logger(__name__)


class IngestionEventType(enum.StrEnum):
    """Structured log event types for ingestion observability."""

    RUN_STARTED = "ingestion.run.started"
    RUN_COMPLETED = "ingestion.run.completed"
    RUN_FAILED = "ingestion.run.failed"
    WEEK_STARTED = "ingestion.week.started"
    WEEK_COMMITTED = "ingestion.week.committed"
    QUERY_COMPLETED = "ingestion.query.completed"
    PAGE_RETRY = "ingestion.page.retry"
    PAGE_RATE_LIMITED = "ingestion.page.rate_limited"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    RETRY_EXHAUSTED = "retry_exhausted"
    CLIENT_ERROR = "client_error"
    SCHEMA_DRIFT = "schema_drift"
    CONFIGURATION = "configuration"
    DATABASE_CONNECTIVITY = "database_connectivity"
    DATA_INTEGRITY = "data_integrity"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


@dataclasses.dataclass(frozen=True, slots=True)
class QueryContext:
    """Identifies one logical search query in log lines."""

    label: str
    metric: str

    @property
    def tag(self) -> str:
        """Return ``metric:label``, the prefix used for retry log lines."""
        return f"{self.metric}:{self.label}"


@dataclasses.dataclass(frozen=True, slots=True)
class IngestionRunContext:
    """Shared context for one ingestion run."""

    started_at: dt.datetime
    last_complete_week: dt.date
    start_week: dt.date
    start_reason: str
    planned_weeks: int


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (RetryExhaustedError, ErrorCategory.RETRY_EXHAUSTED),
    (GitHubAPIError, ErrorCategory.CLIENT_ERROR),
    (GitHubResponseShapeError, ErrorCategory.SCHEMA_DRIFT),
    (ConfigError, ErrorCategory.CONFIGURATION),
    (OperationalError, ErrorCategory.DATABASE_CONNECTIVITY),
    (InterfaceError, ErrorCategory.DATABASE_CONNECTIVITY),
    (IntegrityError, ErrorCategory.DATA_INTEGRITY),
    (SQLAlchemyError, ErrorCategory.DATABASE_ERROR),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alert routing."""
    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category
    return ErrorCategory.UNKNOWN


class IngestionEventLogger:
    """Emit structured ingestion events via femtologging.

    Success events are INFO, retries and rate-limit waits are WARNING, and
    run failures are ERROR.
    """

    def log_run_started(self, context: IngestionRunContext) -> None:
        """Log the resolved resumption point and the planned week count."""
        log_info(
            logger,
            "[%s] started_at=%s last_complete_week=%s start_week=%s "
            "start_reason=%s planned_weeks=%d",
            IngestionEventType.RUN_STARTED,
            context.started_at.isoformat(),
            context.last_complete_week.isoformat(),
            context.start_week.isoformat(),
            context.start_reason,
            context.planned_weeks,
        )

    def log_run_completed(
        self,
        context: IngestionRunContext,
        result: IngestionRunResult,
        duration: dt.timedelta,
    ) -> None:
        """Log a successful run with its totals."""
        watermark = result.watermark.isoformat() if result.watermark else None
        log_info(
            logger,
            "[%s] start_week=%s duration_seconds=%.3f weeks_processed=%d "
            "watermark=%s events_admitted=%d events_rejected=%d weeks_remaining=%s",
            IngestionEventType.RUN_COMPLETED,
            context.start_week.isoformat(),
            duration.total_seconds(),
            len(result.weeks_processed),
            watermark,
            result.events_admitted,
            result.events_rejected,
            result.weeks_remaining,
        )

    def log_run_failed(
        self,
        context: IngestionRunContext,
        error: BaseException,
        duration: dt.timedelta,
        *,
        in_flight_week: dt.date | None,
    ) -> None:
        """Log a failed run; the in-flight week was not committed."""
        log_error(
            logger,
            "[%s] duration_seconds=%.3f start_week=%s in_flight_week=%s "
            "error_type=%s error_category=%s error_message=%s",
            IngestionEventType.RUN_FAILED,
            duration.total_seconds(),
            context.start_week.isoformat(),
            in_flight_week.isoformat() if in_flight_week else None,
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_week_started(self, week_start: dt.date, query_count: int) -> None:
        """Log the start of a week."""
        log_info(
            logger,
            "[%s] week_start=%s queries=%d",
            IngestionEventType.WEEK_STARTED,
            week_start.isoformat(),
            query_count,
        )

    def log_week_committed(self, week_start: dt.date, events_admitted: int) -> None:
        """Log that the watermark now covers ``week_start``."""
        log_info(
            logger,
            "[%s] week_start=%s events_admitted=%d",
            IngestionEventType.WEEK_COMMITTED,
            week_start.isoformat(),
            events_admitted,
        )

    def log_query_completed(
        self, context: QueryContext, week_start: dt.date, tally: FilterTally
    ) -> None:
        """Log admitted and rejected counts for one metric/scope query."""
        counts = " ".join(
            f"skipped_{reason}={count}" for reason, count in tally.rejections.items()
        )
        log_info(
            logger,
            "[%s] metric=%s scope=%s week_start=%s nodes=%d admitted=%d %s",
            IngestionEventType.QUERY_COMPLETED,
            context.metric,
            context.label,
            week_start.isoformat(),
            tally.total,
            len(tally.admitted),
            counts,
        )

    def log_page_retry(  # noqa: PLR0913
        self,
        context: QueryContext,
        *,
        attempt: int,
        max_attempts: int,
        delay: dt.timedelta,
        detail: str,
        status_code: int | None,
    ) -> None:
        """Log a transient failure that will be retried."""
        log_warning(
            logger,
            "[%s] query=%s attempt=%d max_attempts=%d status=%s "
            "delay_seconds=%.1f detail=%s",
            IngestionEventType.PAGE_RETRY,
            context.tag,
            attempt,
            max_attempts,
            status_code if status_code is not None else "unknown",
            delay.total_seconds(),
            detail,
        )

    def log_page_rate_limited(
        self,
        context: QueryContext,
        *,
        attempt: int,
        wait: dt.timedelta,
        reset_at: dt.datetime | None,
        detail: str,
    ) -> None:
        """Log a rate-limit wait; these never consume an attempt."""
        log_warning(
            logger,
            "[%s] query=%s attempt=%d wait_seconds=%d reset_at=%s detail=%s",
            IngestionEventType.PAGE_RATE_LIMITED,
            context.tag,
            attempt,
            round(wait.total_seconds()),
            reset_at.isoformat() if reset_at else None,
            detail,
        )
