"""Weekly contribution ingestion: week planning, filtering and orchestration."""

from __future__ import annotations

from .filters import FilterTally, RecordFilter, RejectionReason
from .models import ContributionCandidate, ContributionEvent, MetricKind
from .scopes import Scope, ScopeKind, ScopeQuery, build_scope_queries, build_scopes
from .windows import (
    ResumePoint,
    StartReason,
    WeekPlan,
    WeekWindow,
    last_complete_week_start,
    plan_weeks,
    resolve_start_week,
    week_start_of,
)
from .worker import (
    ContributionIngestionWorker,
    ContributionStore,
    IngestionConfig,
    IngestionPhase,
    IngestionRunResult,
)

__all__ = [
    "ContributionCandidate",
    "ContributionEvent",
    "ContributionIngestionWorker",
    "ContributionStore",
    "FilterTally",
    "IngestionConfig",
    "IngestionPhase",
    "IngestionRunResult",
    "MetricKind",
    "RecordFilter",
    "RejectionReason",
    "ResumePoint",
    "Scope",
    "ScopeKind",
    "ScopeQuery",
    "StartReason",
    "WeekPlan",
    "WeekWindow",
    "build_scope_queries",
    "build_scopes",
    "last_complete_week_start",
    "plan_weeks",
    "resolve_start_week",
    "week_start_of",
]
