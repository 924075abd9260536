"""Domain models for weekly contribution ingestion."""

from __future__ import annotations

import dataclasses
import datetime as dt  # noqa: TC003
import enum


class MetricKind(enum.StrEnum):
    """Contribution metrics; each one is stored in its own table."""

    PR_OPENED = "pr_opened"
    PR_MERGED = "pr_merged"
    ISSUE_OPENED = "issue_opened"

    @property
    def type_qualifier(self) -> str:
        """Return the search qualifier selecting issues or pull requests."""
        return "is:issue" if self is MetricKind.ISSUE_OPENED else "is:pr"

    @property
    def action(self) -> str:
        """Return the search date qualifier for the metric's action."""
        return "merged" if self is MetricKind.PR_MERGED else "created"


@dataclasses.dataclass(frozen=True, slots=True)
class ContributionCandidate:
    """An admitted search node, not yet bound to a week or metric."""

    author: str
    repository: str
    license: str


@dataclasses.dataclass(frozen=True, slots=True)
class ContributionEvent:
    """One stored occurrence of a metric for an author/repository in a week.

    ``(week_start, author, repository)`` is unique per metric; rows are only
    ever inserted, never updated.
    """

    metric: MetricKind
    week_start: dt.date
    author: str
    repository: str
    license: str
