"""Configuration errors raised before any ingestion begins."""

from __future__ import annotations

from pathlib import Path


class ConfigError(RuntimeError):
    """Raised when settings are missing or invalid."""

    @classmethod
    def missing_token(cls) -> ConfigError:
        """Return an error when no GitHub credential is configured."""
        return cls("CAIRN_GITHUB_TOKEN (or GITHUB_TOKEN) is required for ingestion")

    @classmethod
    def missing_file(cls, path: Path, *, purpose: str) -> ConfigError:
        """Return an error for a required file that does not exist."""
        return cls(f"{purpose} file not found: {path}")

    @classmethod
    def unreadable_file(cls, path: Path, reason: object) -> ConfigError:
        """Return an error for a file that exists but cannot be parsed."""
        return cls(f"failed to parse {path}: {reason}")

    @classmethod
    def not_positive(cls, name: str, value: int) -> ConfigError:
        """Return an error for a week count that must be positive."""
        return cls(f"{name} must be positive, got: {value}")
