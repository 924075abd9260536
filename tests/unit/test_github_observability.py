"""Unit tests for ingestion observability."""

from __future__ import annotations

import datetime as dt

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from cairn.config import ConfigError
from cairn.github.errors import (
    GitHubAPIError,
    GitHubResponseShapeError,
    RetryExhaustedError,
)
from cairn.github.observability import (
    ErrorCategory,
    IngestionEventLogger,
    IngestionEventType,
    IngestionRunContext,
    QueryContext,
    categorize_error,
)
from cairn.ingestion.filters import RecordFilter, RejectionReason
from cairn.ingestion.worker import IngestionRunResult
from tests.helpers.femtologging_capture import capture_logs
from tests.unit.ingestion_test_helpers import ALLOWED_LICENSES, make_node

_LOGGER = "cairn.github.observability"
_CONTEXT = IngestionRunContext(
    started_at=dt.datetime(2024, 1, 18, 12, tzinfo=dt.UTC),
    last_complete_week=dt.date(2024, 1, 8),
    start_week=dt.date(2023, 12, 25),
    start_reason="history_horizon",
    planned_weeks=3,
)


@pytest.mark.parametrize(
    ("exc", "category"),
    [
        (
            RetryExhaustedError("civicactions", 3, "HTTP 502"),
            ErrorCategory.RETRY_EXHAUSTED,
        ),
        (GitHubAPIError.http_error(401), ErrorCategory.CLIENT_ERROR),
        (GitHubResponseShapeError.missing("search"), ErrorCategory.SCHEMA_DRIFT),
        (ConfigError.missing_token(), ErrorCategory.CONFIGURATION),
        (
            OperationalError("db locked", None, Exception("locked")),
            ErrorCategory.DATABASE_CONNECTIVITY,
        ),
        (
            IntegrityError("dup", None, Exception("dup")),
            ErrorCategory.DATA_INTEGRITY,
        ),
        (ValueError("other"), ErrorCategory.UNKNOWN),
    ],
)
def test_categorize_error(exc: BaseException, category: ErrorCategory) -> None:
    """Exceptions map to alert categories."""
    assert categorize_error(exc) is category


def test_run_started_reports_resumption_point() -> None:
    """The start event names the first week and why it was chosen."""
    with capture_logs(_LOGGER) as capture:
        IngestionEventLogger().log_run_started(_CONTEXT)

    capture.wait_for_count(1)
    message = capture.records[0].message
    assert capture.records[0].level == "INFO"
    assert str(IngestionEventType.RUN_STARTED) in message
    assert "start_week=2023-12-25" in message
    assert "start_reason=history_horizon" in message
    assert "planned_weeks=3" in message


def test_run_completed_includes_totals() -> None:
    """The completion event carries the watermark and counts."""
    result = IngestionRunResult(
        weeks_processed=(dt.date(2023, 12, 25),),
        watermark=dt.date(2023, 12, 25),
        events_admitted=5,
        events_rejected=2,
        weeks_remaining=True,
    )

    with capture_logs(_LOGGER) as capture:
        IngestionEventLogger().log_run_completed(
            _CONTEXT, result, dt.timedelta(seconds=1.5)
        )

    capture.wait_for_count(1)
    message = capture.records[0].message
    assert "watermark=2023-12-25" in message
    assert "events_admitted=5" in message
    assert "weeks_remaining=True" in message


def test_run_failed_logs_error_with_category() -> None:
    """Failures are ERROR lines naming the uncommitted week."""
    error = RetryExhaustedError("civicactions", 3, "HTTP 502")

    with capture_logs(_LOGGER) as capture:
        IngestionEventLogger().log_run_failed(
            _CONTEXT,
            error,
            dt.timedelta(seconds=3),
            in_flight_week=dt.date(2024, 1, 1),
        )

    capture.wait_for_count(1)
    record = capture.records[0]
    assert record.level == "ERROR"
    assert "in_flight_week=2024-01-01" in record.message
    assert "error_category=retry_exhausted" in record.message


def test_query_completed_lists_rejections_by_reason() -> None:
    """Per-query lines break rejections down by reason."""
    tally = RecordFilter(ALLOWED_LICENSES).apply(
        [make_node("ada"), make_node("grace", is_private=True)]
    )

    with capture_logs(_LOGGER) as capture:
        IngestionEventLogger().log_query_completed(
            QueryContext(label="civicactions", metric="pr_opened"),
            dt.date(2024, 1, 1),
            tally,
        )

    capture.wait_for_count(1)
    message = capture.records[0].message
    assert "nodes=2 admitted=1" in message
    assert f"skipped_{RejectionReason.PRIVATE_REPOSITORY}=1" in message
    assert f"skipped_{RejectionReason.MISSING_AUTHOR}=0" in message


def test_rate_limit_wait_is_a_warning() -> None:
    """Rate-limit waits are WARNING lines with the wait length."""
    with capture_logs(_LOGGER) as capture:
        IngestionEventLogger().log_page_rate_limited(
            QueryContext(label="contributor:ada", metric="pr_merged"),
            attempt=1,
            wait=dt.timedelta(seconds=15),
            reset_at=None,
            detail="HTTP 429",
        )

    capture.wait_for_count(1)
    record = capture.records[0]
    assert record.level in {"WARN", "WARNING"}
    assert "query=pr_merged:contributor:ada" in record.message
    assert "wait_seconds=15" in record.message
