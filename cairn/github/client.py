"""GitHub GraphQL search client.

The client performs exactly one HTTP request per call and reports the result
as a :data:`~cairn.github.models.FetchOutcome`. API and network failures are
classified rather than raised so the paged executor can decide how to retry.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import typing as typ

import httpx

from cairn.common.time import utcnow

from .errors import GitHubAPIError, GitHubResponseShapeError
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

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class SearchClient(typ.Protocol):
    """Interface for fetching one page of issue/pull request search results."""

    async def fetch_search_page(
        self, query: str, *, after: str | None = None
    ) -> FetchOutcome:
        """Fetch the page following cursor ``after`` for ``query``."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubSearchConfig:
    """Configuration for the GitHub GraphQL search client."""

    token: str
    endpoint: str = "https://api.github.com/graphql"
    timeout_s: float = 30.0
    user_agent: str = "cairn/0.1"
    page_size: int = 100


_SEARCH_QUERY = """
query($q: String!, $first: Int!, $cursor: String) {
  search(query: $q, type: ISSUE, first: $first, after: $cursor) {
    pageInfo {
      hasNextPage
      endCursor
    }
    nodes {
      ... on PullRequest {
        author { login }
        repository {
          nameWithOwner
          licenseInfo { spdxId }
          isPrivate
        }
      }
      ... on Issue {
        author { login }
        repository {
          nameWithOwner
          licenseInfo { spdxId }
          isPrivate
        }
      }
    }
  }
}
"""

_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_SERVER_ERROR_THRESHOLD = 500
_HTTP_UNAUTHORIZED = 401
_HTTP_FORBIDDEN = 403
_HTTP_TOO_MANY_REQUESTS = 429
_RATE_LIMIT_ERROR_TYPES = frozenset({"RATE_LIMITED", "RATE_LIMIT"})


def _parse_reset_epoch(raw: str | None) -> dt.datetime | None:
    """Parse ``x-ratelimit-reset`` (epoch seconds); malformed values yield None."""
    if raw is None:
        return None
    try:
        return dt.datetime.fromtimestamp(int(raw.strip()), tz=dt.UTC)
    except (ValueError, OverflowError, OSError):
        return None


def _parse_retry_after(raw: str | None, now: dt.datetime) -> dt.datetime | None:
    if raw is None or not raw.strip().isdigit():
        return None
    return now + dt.timedelta(seconds=int(raw.strip()))


def _reset_hint(headers: httpx.Headers, now: dt.datetime) -> dt.datetime | None:
    return _parse_reset_epoch(headers.get("x-ratelimit-reset")) or _parse_retry_after(
        headers.get("retry-after"), now
    )


def _is_rate_limited_status(response: httpx.Response) -> bool:
    if response.status_code == _HTTP_TOO_MANY_REQUESTS:
        return True
    if response.status_code != _HTTP_FORBIDDEN:
        return False
    headers = response.headers
    return headers.get("x-ratelimit-remaining") == "0" or "retry-after" in headers


def _has_rate_limit_error(errors: cabc.Sequence[object]) -> bool:
    return any(
        isinstance(error, dict) and error.get("type") in _RATE_LIMIT_ERROR_TYPES
        for error in errors
    )


def _maybe_login(author: object) -> str | None:
    if not isinstance(author, dict):
        return None
    login = author.get("login")
    return login if isinstance(login, str) else None


def _license_from_raw(raw: object) -> SearchLicense | None:
    if not isinstance(raw, dict):
        return None
    spdx_id = raw.get("spdxId")
    return SearchLicense(spdx_id=spdx_id if isinstance(spdx_id, str) else None)


def _repository_from_raw(raw: object) -> SearchRepository | None:
    if not isinstance(raw, dict):
        return None
    name_with_owner = raw.get("nameWithOwner")
    if not isinstance(name_with_owner, str) or not name_with_owner:
        return None
    return SearchRepository(
        name_with_owner=name_with_owner,
        is_private=bool(raw.get("isPrivate", False)),
        license=_license_from_raw(raw.get("licenseInfo")),
    )


def _node_from_raw(raw: object) -> SearchNode:
    if not isinstance(raw, dict):
        return SearchNode(author_login=None, repository=None)
    return SearchNode(
        author_login=_maybe_login(raw.get("author")),
        repository=_repository_from_raw(raw.get("repository")),
    )


def _require_dict(value: object, field: str) -> dict[str, typ.Any]:
    if not isinstance(value, dict):
        raise GitHubResponseShapeError.missing(field)
    return typ.cast("dict[str, typ.Any]", value)


def parse_search_page(payload: object) -> SearchPage:
    """Parse the ``data.search`` connection of a GraphQL response."""
    data = _require_dict(_require_dict(payload, "response").get("data"), "data")
    search = _require_dict(data.get("search"), "search")
    page_info = _require_dict(search.get("pageInfo"), "search.pageInfo")
    nodes = search.get("nodes")
    if not isinstance(nodes, list):
        raise GitHubResponseShapeError.missing("search.nodes")

    end_cursor = page_info.get("endCursor")
    return SearchPage(
        nodes=tuple(_node_from_raw(node) for node in nodes),
        has_next_page=bool(page_info.get("hasNextPage")),
        end_cursor=end_cursor if isinstance(end_cursor, str) else None,
    )


class GitHubSearchClient:
    """GitHub GraphQL implementation of :class:`SearchClient`."""

    def __init__(
        self,
        config: GitHubSearchConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        self._config = config
        self._clock = clock
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={
                "Authorization": f"Bearer {config.token}",
                "User-Agent": config.user_agent,
                "Accept": "application/json",
            },
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch_search_page(
        self, query: str, *, after: str | None = None
    ) -> FetchOutcome:
        """Run one search request and classify the response."""
        try:
            response = await self._client.post(
                self._config.endpoint,
                json={
                    "query": _SEARCH_QUERY,
                    "variables": {
                        "q": query,
                        "first": self._config.page_size,
                        "cursor": after,
                    },
                },
            )
        except httpx.RequestError as exc:
            return TransientFailure(detail=f"{type(exc).__name__}: {exc}")
        return self._classify(response)

    def _classify(self, response: httpx.Response) -> FetchOutcome:
        status = response.status_code
        if _is_rate_limited_status(response):
            return RateLimited(
                reset_at=_reset_hint(response.headers, self._clock()),
                detail=f"HTTP {status}",
            )
        if status >= _HTTP_SERVER_ERROR_THRESHOLD or status == _HTTP_FORBIDDEN:
            return TransientFailure(detail=f"HTTP {status}", status_code=status)
        if status >= _HTTP_ERROR_STATUS_THRESHOLD:
            return FatalFailure(error=GitHubAPIError.http_error(status))

        try:
            payload = response.json()
        except ValueError as exc:
            return TransientFailure(
                detail=f"invalid JSON body: {exc}", status_code=status
            )

        errors = payload.get("errors") if isinstance(payload, dict) else None
        if isinstance(errors, list) and errors:
            if _has_rate_limit_error(errors):
                return RateLimited(
                    reset_at=_reset_hint(response.headers, self._clock()),
                    detail="GraphQL RATE_LIMITED",
                )
            return TransientFailure(
                detail=str(GitHubAPIError.graphql_errors(errors)), status_code=status
            )

        try:
            page = parse_search_page(payload)
        except GitHubResponseShapeError as exc:
            return FatalFailure(error=exc)
        return PageFetched(page=page)


__all__ = [
    "GitHubSearchClient",
    "GitHubSearchConfig",
    "SearchClient",
    "parse_search_page",
]
