"""Week arithmetic for incremental ingestion.

Weeks run Monday to Sunday in UTC regardless of the host time zone, so the
same instant always lands in the same bucket. The week that contains "now" is
still open and is never planned for ingestion.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import enum

from cairn.common.time import ensure_utc

ONE_WEEK = dt.timedelta(weeks=1)


def week_start_of(moment: dt.datetime | dt.date) -> dt.date:
    """Return the Monday of the UTC week containing ``moment``.

    Aware datetimes are converted to UTC first; naive datetimes are rejected.
    Plain dates are taken as UTC calendar days.
    """
    if isinstance(moment, dt.datetime):
        day = ensure_utc(moment, field="moment").date()
    else:
        day = moment
    return day - dt.timedelta(days=day.weekday())


def last_complete_week_start(now: dt.datetime) -> dt.date:
    """Return the start of the most recent fully elapsed week."""
    return week_start_of(now) - ONE_WEEK


class StartReason(enum.StrEnum):
    """Why a run resumes from a particular week."""

    OVERRIDE = "override"
    REPROCESS_WINDOW = "reprocess_window"
    WATERMARK = "watermark"
    HISTORY_HORIZON = "history_horizon"


@dataclasses.dataclass(frozen=True, slots=True)
class ResumePoint:
    """First week a run should process and the rule that chose it."""

    week: dt.date
    reason: StartReason


def resolve_start_week(
    *,
    last_complete: dt.date,
    watermark: dt.date | None,
    history_weeks: int,
    override_start: dt.date | None = None,
    reprocess_weeks: int = 0,
) -> ResumePoint:
    """Pick the resumption week.

    Precedence is an explicit override, then "reprocess the last N weeks",
    then the week after the stored watermark, and finally a bounded backfill
    ``history_weeks`` before the last complete week.
    """
    if override_start is not None:
        return ResumePoint(week_start_of(override_start), StartReason.OVERRIDE)
    if reprocess_weeks > 0:
        return ResumePoint(
            last_complete - ONE_WEEK * reprocess_weeks, StartReason.REPROCESS_WINDOW
        )
    if watermark is not None:
        return ResumePoint(week_start_of(watermark) + ONE_WEEK, StartReason.WATERMARK)
    return ResumePoint(
        last_complete - ONE_WEEK * history_weeks, StartReason.HISTORY_HORIZON
    )


@dataclasses.dataclass(frozen=True, slots=True)
class WeekPlan:
    """Weeks scheduled for one run."""

    weeks: tuple[dt.date, ...]
    weeks_remaining: bool


def plan_weeks(start: dt.date, last_complete: dt.date, *, max_weeks: int) -> WeekPlan:
    """Return the contiguous weeks from ``start`` through ``last_complete``.

    At most ``max_weeks`` are returned; ``weeks_remaining`` reports whether a
    later run has more to do.
    """
    if max_weeks < 1:
        msg = f"max_weeks must be positive, got: {max_weeks}"
        raise ValueError(msg)

    weeks: list[dt.date] = []
    pointer = start
    while pointer <= last_complete and len(weeks) < max_weeks:
        weeks.append(pointer)
        pointer += ONE_WEEK
    return WeekPlan(weeks=tuple(weeks), weeks_remaining=pointer <= last_complete)


@dataclasses.dataclass(frozen=True, slots=True)
class WeekWindow:
    """UTC boundaries of one Monday-aligned week."""

    week_start: dt.date

    def __post_init__(self) -> None:
        """Reject week starts that are not Mondays."""
        if self.week_start.weekday() != 0:
            msg = f"week_start must be a Monday, got: {self.week_start.isoformat()}"
            raise ValueError(msg)

    @property
    def starts_at(self) -> dt.datetime:
        """Monday 00:00:00 UTC."""
        return dt.datetime.combine(self.week_start, dt.time.min, tzinfo=dt.UTC)

    @property
    def ends_at(self) -> dt.datetime:
        """The following Monday 00:00:00 UTC (exclusive)."""
        return self.starts_at + ONE_WEEK

    @property
    def last_instant(self) -> dt.datetime:
        """Sunday 23:59:59 UTC, the last second inside the week."""
        return self.ends_at - dt.timedelta(seconds=1)

    def range_expression(self) -> str:
        """Return the inclusive ``start..end`` range used in search qualifiers."""
        fmt = "%Y-%m-%dT%H:%M:%SZ"
        return f"{self.starts_at.strftime(fmt)}..{self.last_instant.strftime(fmt)}"
