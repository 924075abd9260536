"""Storage-layer error types."""

from __future__ import annotations


class UnsupportedDialectError(ValueError):
    """Raised when conflict-ignoring inserts are unavailable for a dialect."""

    def __init__(self, dialect_name: str) -> None:
        """Name the dialect that cannot be used."""
        super().__init__(
            f"database dialect {dialect_name!r} is not supported; "
            "use sqlite or postgresql"
        )


class CorruptWatermarkError(ValueError):
    """Raised when the stored watermark is not an ISO calendar date."""

    def __init__(self, raw: str) -> None:
        """Include the offending value for diagnostics."""
        super().__init__(f"stored watermark is not an ISO date: {raw!r}")
