"""GitHub search errors."""

from __future__ import annotations


class GitHubAPIError(RuntimeError):
    """Raised when GitHub returns a non-recoverable error response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int) -> GitHubAPIError:
        """Return an error for non-2xx HTTP responses."""
        return cls(f"GitHub GraphQL HTTP {status_code}", status_code=status_code)

    @classmethod
    def graphql_errors(cls, errors: object) -> GitHubAPIError:
        """Return an error for GraphQL `errors` payloads."""
        return cls(f"GitHub GraphQL errors: {errors}")


class GitHubResponseShapeError(RuntimeError):
    """Raised when GitHub GraphQL responses are missing expected fields."""

    @classmethod
    def missing(cls, field: str) -> GitHubResponseShapeError:
        """Return an error for a missing GraphQL response field."""
        return cls(f"GitHub GraphQL response missing expected field: {field}")


class RetryExhaustedError(RuntimeError):
    """Raised when a page keeps failing after every permitted attempt."""

    def __init__(self, context_label: str, attempts: int, detail: str) -> None:
        """Record which query gave up and the last failure seen."""
        self.context_label = context_label
        self.attempts = attempts
        self.detail = detail
        super().__init__(
            f"[{context_label}] GitHub search failed after {attempts} attempts: {detail}"
        )
