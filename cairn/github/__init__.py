"""GitHub search client, paged executor, and ingestion observability."""

from __future__ import annotations

from .client import GitHubSearchClient, GitHubSearchConfig, SearchClient
from .errors import GitHubAPIError, GitHubResponseShapeError, RetryExhaustedError
from .executor import PagedQueryExecutor, RetryPolicy
from .models import (
    FatalFailure,
    FetchOutcome,
    PageFetched,
    RateLimited,
    SearchLicense,
    SearchNode,
    SearchPage,
    SearchRepository,
    TransientFailure,
)
from .observability import (
    ErrorCategory,
    IngestionEventLogger,
    IngestionEventType,
    IngestionRunContext,
    QueryContext,
    categorize_error,
)

__all__ = [
    "ErrorCategory",
    "FatalFailure",
    "FetchOutcome",
    "GitHubAPIError",
    "GitHubResponseShapeError",
    "GitHubSearchClient",
    "GitHubSearchConfig",
    "IngestionEventLogger",
    "IngestionEventType",
    "IngestionRunContext",
    "PageFetched",
    "PagedQueryExecutor",
    "QueryContext",
    "RateLimited",
    "RetryExhaustedError",
    "RetryPolicy",
    "SearchClient",
    "SearchLicense",
    "SearchNode",
    "SearchPage",
    "SearchRepository",
    "TransientFailure",
    "categorize_error",
]
