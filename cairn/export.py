"""Flatten stored contribution events into the ``metrics.json`` summary.

The document lists every week and author seen in any metric table, with a
per-week, per-author breakdown of distinct repositories. A second series
restricted to the tracked contributors supports staff segmentation.
"""

from __future__ import annotations

import datetime as dt
import typing as typ

import msgspec

from cairn.ingestion.models import MetricKind
from cairn.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

logger = get_logger(__name__)


class ExportError(RuntimeError):
    """Raised when the metrics summary cannot be produced."""

    @classmethod
    def database_missing(cls, path: Path) -> ExportError:
        """Return an error for a store that has never been written."""
        return cls(f"Database not found: {path}")


class AuthorMetrics(msgspec.Struct, kw_only=True):
    """Per-author counts for one week."""

    prs_opened: int = 0
    prs_merged: int = 0
    issues_opened: int = 0


class WeekSeries(msgspec.Struct, kw_only=True):
    """Breakdown for one week, keyed by author login."""

    week_start: str
    by_author: dict[str, AuthorMetrics] = msgspec.field(
        default_factory=dict, name="byAuthor"
    )


class MetricsSummary(msgspec.Struct, kw_only=True):
    """Top-level ``metrics.json`` document."""

    generated_at: str
    org: str
    orgs: list[str]
    weeks: list[str]
    authors: list[str]
    series: list[WeekSeries]
    staff_allowlist: list[str]
    staff_authors: list[str]
    staff_series: list[WeekSeries]


class MetricsReader(typ.Protocol):
    """Read side of the contribution store used by the export."""

    async def count_by_week_and_author(
        self, metric: MetricKind
    ) -> list[tuple[dt.date, str, int]]:
        """Return ``(week_start, author, count)`` rows for ``metric``."""
        ...


_METRIC_FIELDS: dict[MetricKind, str] = {
    MetricKind.PR_OPENED: "prs_opened",
    MetricKind.PR_MERGED: "prs_merged",
    MetricKind.ISSUE_OPENED: "issues_opened",
}


def _author_sort_key(author: str) -> tuple[str, str]:
    return (author.casefold(), author)


def _isoformat_z(moment: dt.datetime) -> str:
    utc = moment.astimezone(dt.UTC)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


async def build_metrics_summary(
    reader: MetricsReader,
    *,
    orgs: cabc.Sequence[str],
    contributors: cabc.Sequence[str] = (),
    generated_at: dt.datetime,
) -> MetricsSummary:
    """Aggregate every metric table into a :class:`MetricsSummary`."""
    by_week: dict[dt.date, dict[str, AuthorMetrics]] = {}
    for metric, field_name in _METRIC_FIELDS.items():
        for week_start, author, count in await reader.count_by_week_and_author(
            metric
        ):
            metrics = by_week.setdefault(week_start, {}).setdefault(
                author, AuthorMetrics()
            )
            setattr(metrics, field_name, count)

    weeks = sorted(by_week)
    authors = sorted(
        {author for week in by_week.values() for author in week},
        key=_author_sort_key,
    )
    series = [
        WeekSeries(week_start=week.isoformat(), by_author=by_week[week])
        for week in weeks
    ]

    tracked = set(contributors)
    staff_series = [
        WeekSeries(
            week_start=entry.week_start,
            by_author={
                author: metrics
                for author, metrics in entry.by_author.items()
                if author in tracked
            },
        )
        for entry in series
    ]

    return MetricsSummary(
        generated_at=_isoformat_z(generated_at),
        org=orgs[0] if orgs else "",
        orgs=list(orgs),
        weeks=[week.isoformat() for week in weeks],
        authors=authors,
        series=series,
        staff_allowlist=list(contributors),
        staff_authors=[author for author in authors if author in tracked],
        staff_series=staff_series,
    )


def write_metrics_summary(summary: MetricsSummary, path: Path) -> None:
    """Write ``summary`` to ``path`` as indented JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(msgspec.json.format(msgspec.json.encode(summary), indent=2))
    log_info(
        logger,
        "Exported metrics to %s (weeks=%d authors=%d)",
        path,
        len(summary.weeks),
        len(summary.authors),
    )


__all__ = [
    "AuthorMetrics",
    "ExportError",
    "MetricsReader",
    "MetricsSummary",
    "WeekSeries",
    "build_metrics_summary",
    "write_metrics_summary",
]
