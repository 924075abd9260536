"""Unit tests for week arithmetic and resumption."""

from __future__ import annotations

import datetime as dt

import pytest

from cairn.ingestion.windows import (
    StartReason,
    WeekWindow,
    last_complete_week_start,
    plan_weeks,
    resolve_start_week,
    week_start_of,
)

_MONDAY = dt.date(2024, 1, 1)


class TestWeekStartOf:
    """Tests for Monday alignment."""

    def test_thursday_maps_to_monday(self) -> None:
        """A Thursday belongs to the week beginning the preceding Monday."""
        assert week_start_of(dt.datetime(2024, 1, 4, 15, tzinfo=dt.UTC)) == _MONDAY

    def test_monday_midnight_starts_its_own_week(self) -> None:
        """Monday 00:00 UTC is the first instant of that week."""
        assert week_start_of(dt.datetime(2024, 1, 1, tzinfo=dt.UTC)) == _MONDAY

    def test_sunday_last_second_belongs_to_previous_monday(self) -> None:
        """Sunday 23:59:59 UTC is still inside the week."""
        moment = dt.datetime(2024, 1, 7, 23, 59, 59, tzinfo=dt.UTC)
        assert week_start_of(moment) == _MONDAY

    def test_offset_datetimes_are_converted_to_utc(self) -> None:
        """Local Monday morning east of UTC is still Sunday in UTC."""
        tz = dt.timezone(dt.timedelta(hours=10))
        moment = dt.datetime(2024, 1, 8, 5, tzinfo=tz)
        assert week_start_of(moment) == _MONDAY

    def test_naive_datetimes_are_rejected(self) -> None:
        """Naive datetimes are ambiguous and raise."""
        with pytest.raises(ValueError, match="timezone-aware"):
            week_start_of(dt.datetime(2024, 1, 4))  # noqa: DTZ001

    def test_dates_are_aligned(self) -> None:
        """Plain dates are aligned to their Monday."""
        assert week_start_of(dt.date(2024, 1, 6)) == _MONDAY


def test_last_complete_week_excludes_current_week() -> None:
    """On a Thursday the last complete week started 10 days earlier."""
    now = dt.datetime(2024, 1, 4, 9, tzinfo=dt.UTC)
    assert last_complete_week_start(now) == dt.date(2023, 12, 25)


class TestResolveStartWeek:
    """Tests for resumption precedence."""

    last_complete = dt.date(2024, 3, 4)

    def test_override_wins_and_is_monday_aligned(self) -> None:
        """An explicit override beats every other rule."""
        resume = resolve_start_week(
            last_complete=self.last_complete,
            watermark=dt.date(2024, 2, 26),
            history_weeks=10,
            override_start=dt.date(2024, 1, 10),
            reprocess_weeks=3,
        )
        assert resume.week == dt.date(2024, 1, 8)
        assert resume.reason is StartReason.OVERRIDE

    def test_reprocess_window_beats_watermark(self) -> None:
        """Reprocessing N weeks rewinds from the last complete week."""
        resume = resolve_start_week(
            last_complete=self.last_complete,
            watermark=dt.date(2024, 2, 26),
            history_weeks=10,
            reprocess_weeks=2,
        )
        assert resume.week == dt.date(2024, 2, 19)
        assert resume.reason is StartReason.REPROCESS_WINDOW

    def test_watermark_resumes_with_following_week(self) -> None:
        """A stored watermark resumes one week after it."""
        resume = resolve_start_week(
            last_complete=self.last_complete,
            watermark=dt.date(2024, 2, 19),
            history_weeks=10,
        )
        assert resume.week == dt.date(2024, 2, 26)
        assert resume.reason is StartReason.WATERMARK

    def test_history_horizon_without_watermark(self) -> None:
        """The first run backfills ``history_weeks`` before the last complete week."""
        resume = resolve_start_week(
            last_complete=self.last_complete,
            watermark=None,
            history_weeks=2,
        )
        assert resume.week == dt.date(2024, 2, 19)
        assert resume.reason is StartReason.HISTORY_HORIZON


class TestPlanWeeks:
    """Tests for week planning and the per-run cap."""

    def test_plans_contiguous_weeks_through_last_complete(self) -> None:
        """Weeks are consecutive Mondays ending at the last complete week."""
        plan = plan_weeks(_MONDAY, dt.date(2024, 1, 15), max_weeks=12)
        assert plan.weeks == (_MONDAY, dt.date(2024, 1, 8), dt.date(2024, 1, 15))
        assert plan.weeks_remaining is False

    def test_cap_limits_weeks_and_reports_remaining(self) -> None:
        """The cap truncates the plan and flags the leftover weeks."""
        plan = plan_weeks(_MONDAY, dt.date(2024, 1, 15), max_weeks=1)
        assert plan.weeks == (_MONDAY,)
        assert plan.weeks_remaining is True

    def test_up_to_date_store_plans_nothing(self) -> None:
        """A start after the last complete week yields an empty plan."""
        plan = plan_weeks(dt.date(2024, 1, 22), dt.date(2024, 1, 15), max_weeks=5)
        assert plan.weeks == ()
        assert plan.weeks_remaining is False

    def test_non_positive_cap_is_rejected(self) -> None:
        """A zero cap can never make progress."""
        with pytest.raises(ValueError, match="max_weeks"):
            plan_weeks(_MONDAY, _MONDAY, max_weeks=0)


class TestWeekWindow:
    """Tests for week boundaries."""

    def test_boundaries_cover_monday_to_sunday(self) -> None:
        """The window spans Monday 00:00:00 to Sunday 23:59:59 UTC."""
        window = WeekWindow(_MONDAY)
        assert window.starts_at == dt.datetime(2024, 1, 1, tzinfo=dt.UTC)
        assert window.ends_at == dt.datetime(2024, 1, 8, tzinfo=dt.UTC)
        assert window.last_instant == dt.datetime(
            2024, 1, 7, 23, 59, 59, tzinfo=dt.UTC
        )

    def test_range_expression(self) -> None:
        """The search range is inclusive at both ends."""
        assert (
            WeekWindow(_MONDAY).range_expression()
            == "2024-01-01T00:00:00Z..2024-01-07T23:59:59Z"
        )

    def test_rejects_non_monday(self) -> None:
        """Windows must start on a Monday."""
        with pytest.raises(ValueError, match="Monday"):
            WeekWindow(dt.date(2024, 1, 3))
