"""Typed search results and page-fetch outcomes."""

from __future__ import annotations

import dataclasses
import datetime as dt  # noqa: TC003
import typing as typ


@dataclasses.dataclass(frozen=True, slots=True)
class SearchLicense:
    """License metadata attached to a repository."""

    spdx_id: str | None


@dataclasses.dataclass(frozen=True, slots=True)
class SearchRepository:
    """Repository fields needed to admit a contribution."""

    name_with_owner: str
    is_private: bool
    license: SearchLicense | None


@dataclasses.dataclass(frozen=True, slots=True)
class SearchNode:
    """One pull request or issue returned by the search API.

    Both fields are optional because the API returns empty objects for
    result types outside the query fragments and ``null`` authors for
    deleted accounts.
    """

    author_login: str | None
    repository: SearchRepository | None


@dataclasses.dataclass(frozen=True, slots=True)
class SearchPage:
    """One page of search results plus its pagination metadata."""

    nodes: tuple[SearchNode, ...]
    has_next_page: bool
    end_cursor: str | None


@dataclasses.dataclass(frozen=True, slots=True)
class PageFetched:
    """The page was retrieved and parsed."""

    page: SearchPage


@dataclasses.dataclass(frozen=True, slots=True)
class RateLimited:
    """GitHub refused the request until the rate-limit window resets."""

    reset_at: dt.datetime | None
    detail: str


@dataclasses.dataclass(frozen=True, slots=True)
class TransientFailure:
    """A failure worth retrying with backoff (network, 5xx, GraphQL errors)."""

    detail: str
    status_code: int | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class FatalFailure:
    """A failure that retrying cannot fix; ``error`` is raised as-is."""

    error: Exception


FetchOutcome: typ.TypeAlias = PageFetched | RateLimited | TransientFailure | FatalFailure
