"""Paged query execution with rate-limit-aware retries.

Retrying is split into two loops. The inner loop waits out rate limits for as
long as GitHub keeps reporting them and never spends an attempt doing so. The
outer loop retries transient failures with linear backoff and gives up after
``RetryPolicy.max_attempts``.
"""

from __future__ import annotations

import asyncio
import dataclasses
import datetime as dt
import typing as typ

from cairn.common.time import utcnow

from .errors import RetryExhaustedError
from .models import FatalFailure, PageFetched, RateLimited, TransientFailure
from .observability import IngestionEventLogger, QueryContext

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .client import SearchClient
    from .models import SearchNode, SearchPage

    Sleeper = cabc.Callable[[float], cabc.Awaitable[None]]


@dataclasses.dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Backoff settings for one page fetch."""

    max_attempts: int = 3
    retry_delay: dt.timedelta = dt.timedelta(seconds=2)
    rate_limit_buffer: dt.timedelta = dt.timedelta(seconds=5)

    def __post_init__(self) -> None:
        """Reject policies that could never make a request."""
        if self.max_attempts < 1:
            msg = f"max_attempts must be positive, got: {self.max_attempts}"
            raise ValueError(msg)

    def backoff(self, attempt: int) -> dt.timedelta:
        """Return the linear backoff delay for ``attempt`` (1-based)."""
        return self.retry_delay * attempt

    def rate_limit_wait(
        self, reset_at: dt.datetime | None, *, now: dt.datetime, attempt: int
    ) -> dt.timedelta:
        """Return how long to wait before retrying a rate-limited page.

        A reset time in the future is honoured plus the safety buffer, but
        never undercuts the linear backoff. Missing or stale reset times fall
        back to the linear backoff.
        """
        fallback = self.backoff(attempt)
        if reset_at is None or reset_at <= now:
            return fallback
        return max(reset_at - now + self.rate_limit_buffer, fallback)


class PagedQueryExecutor:
    """Walk every page of a search query, retrying failed page fetches."""

    def __init__(
        self,
        client: SearchClient,
        *,
        policy: RetryPolicy | None = None,
        event_logger: IngestionEventLogger | None = None,
        sleep: Sleeper = asyncio.sleep,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
    ) -> None:
        """Bind the executor to a search client and retry policy."""
        self._client = client
        self._policy = policy or RetryPolicy()
        self._event_logger = event_logger or IngestionEventLogger()
        self._sleep = sleep
        self._clock = clock

    async def collect(self, query: str, *, context: QueryContext) -> list[SearchNode]:
        """Return the nodes from every page of ``query``.

        Raises
        ------
        RetryExhaustedError
            If a page keeps failing transiently after every attempt.
        GitHubAPIError | GitHubResponseShapeError
            If GitHub reports a failure that retrying cannot fix.

        """
        nodes: list[SearchNode] = []
        cursor: str | None = None
        while True:
            page = await self.fetch_page(query, after=cursor, context=context)
            nodes.extend(page.nodes)
            if not page.has_next_page or page.end_cursor is None:
                return nodes
            cursor = page.end_cursor

    async def fetch_page(
        self, query: str, *, after: str | None, context: QueryContext
    ) -> SearchPage:
        """Fetch one page, retrying transient failures with linear backoff."""
        max_attempts = self._policy.max_attempts
        last_detail = "no attempts made"
        for attempt in range(1, max_attempts + 1):
            outcome = await self._fetch_past_rate_limits(
                query, after=after, context=context, attempt=attempt
            )
            match outcome:
                case PageFetched(page=page):
                    return page
                case FatalFailure(error=error):
                    raise error
                case TransientFailure(detail=detail, status_code=status_code):
                    last_detail = detail
                    if attempt == max_attempts:
                        break
                    delay = self._policy.backoff(attempt)
                    self._event_logger.log_page_retry(
                        context,
                        attempt=attempt,
                        max_attempts=max_attempts,
                        delay=delay,
                        detail=detail,
                        status_code=status_code,
                    )
                    await self._sleep(delay.total_seconds())

        raise RetryExhaustedError(context.label, max_attempts, last_detail)

    async def _fetch_past_rate_limits(
        self,
        query: str,
        *,
        after: str | None,
        context: QueryContext,
        attempt: int,
    ) -> PageFetched | TransientFailure | FatalFailure:
        """Request the page until GitHub stops reporting a rate limit."""
        while True:
            outcome = await self._client.fetch_search_page(query, after=after)
            if not isinstance(outcome, RateLimited):
                return outcome
            wait = self._policy.rate_limit_wait(
                outcome.reset_at, now=self._clock(), attempt=attempt
            )
            self._event_logger.log_page_rate_limited(
                context,
                attempt=attempt,
                wait=wait,
                reset_at=outcome.reset_at,
                detail=outcome.detail,
            )
            await self._sleep(wait.total_seconds())


__all__ = ["PagedQueryExecutor", "RetryPolicy"]
