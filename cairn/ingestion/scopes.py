"""Build the search queries issued for each week."""

from __future__ import annotations

import dataclasses
import datetime as dt  # noqa: TC003
import enum
import typing as typ

from cairn.github.observability import QueryContext

from .models import MetricKind

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .windows import WeekWindow


class ScopeKind(enum.StrEnum):
    """Whether a scope is an organization or an individual contributor."""

    ORGANIZATION = "org"
    CONTRIBUTOR = "contributor"


@dataclasses.dataclass(frozen=True, slots=True)
class Scope:
    """A target of ingestion queries."""

    kind: ScopeKind
    name: str

    @classmethod
    def organization(cls, name: str) -> Scope:
        """Scope covering every public repository of an organization."""
        return cls(kind=ScopeKind.ORGANIZATION, name=name)

    @classmethod
    def contributor(cls, login: str) -> Scope:
        """Scope covering one author's activity in any repository."""
        return cls(kind=ScopeKind.CONTRIBUTOR, name=login)

    @property
    def qualifier(self) -> str:
        """Search qualifier restricting results to this scope."""
        if self.kind is ScopeKind.ORGANIZATION:
            return f"org:{self.name}"
        return f"author:{self.name}"

    @property
    def label(self) -> str:
        """Human-readable scope name used in logs and errors."""
        if self.kind is ScopeKind.ORGANIZATION:
            return self.name
        return f"contributor:{self.name}"


@dataclasses.dataclass(frozen=True, slots=True)
class ScopeQuery:
    """One metric query for one scope and week."""

    metric: MetricKind
    week_start: dt.date
    search_expression: str
    context_label: str

    @property
    def context(self) -> QueryContext:
        """Observability context for this query."""
        return QueryContext(label=self.context_label, metric=str(self.metric))


def build_scopes(
    orgs: cabc.Iterable[str], contributors: cabc.Iterable[str] = ()
) -> tuple[Scope, ...]:
    """Return organization scopes followed by contributor scopes."""
    return tuple(Scope.organization(org) for org in orgs) + tuple(
        Scope.contributor(login) for login in contributors
    )


def search_expression(scope: Scope, metric: MetricKind, week: WeekWindow) -> str:
    """Return the search string for ``metric`` within ``scope`` and ``week``.

    Examples
    --------
    >>> from cairn.ingestion.windows import WeekWindow
    >>> search_expression(
    ...     Scope.organization("civicactions"),
    ...     MetricKind.PR_MERGED,
    ...     WeekWindow(dt.date(2024, 1, 1)),
    ... )
    'org:civicactions is:public is:pr merged:2024-01-01T00:00:00Z..2024-01-07T23:59:59Z'

    """
    return (
        f"{scope.qualifier} is:public {metric.type_qualifier} "
        f"{metric.action}:{week.range_expression()}"
    )


def build_scope_queries(
    scopes: cabc.Iterable[Scope], week: WeekWindow
) -> list[ScopeQuery]:
    """Return every metric query for every scope, in scope order."""
    return [
        ScopeQuery(
            metric=metric,
            week_start=week.week_start,
            search_expression=search_expression(scope, metric, week),
            context_label=scope.label,
        )
        for scope in scopes
        for metric in MetricKind
    ]
