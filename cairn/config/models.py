"""Typed settings for ingestion and export runs."""

from __future__ import annotations

import dataclasses as dc
import datetime as dt  # noqa: TC003
from pathlib import Path

import msgspec

from .errors import ConfigError

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///data/participation.sqlite"
DEFAULT_EXPORT_PATH = Path("data") / "metrics.json"
DEFAULT_ORG_ALLOWLIST: tuple[str, ...] = ("civicactions",)
DEFAULT_HISTORY_WEEKS = 260
DEFAULT_MAX_WEEKS_PER_RUN = 12


class SettingsFile(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    """Optional on-disk settings; environment variables take precedence.

    ``org_allowlist`` accepts either a YAML/JSON list or a comma-separated
    string so the same value can be copied between the file and the
    environment.
    """

    org_allowlist: list[str] | str | None = None
    history_weeks: int | None = None
    max_weeks_per_run: int | None = None
    database_url: str | None = None
    export_path: str | None = None


@dc.dataclass(frozen=True, slots=True)
class IngestionSettings:
    """Resolved configuration shared by the CLI commands.

    Attributes
    ----------
    github_token
        Credential for the GitHub GraphQL API. Only ``ingest`` requires it.
    org_allowlist
        Organizations whose public activity is harvested.
    contributor_allowlist
        Individually tracked logins, queried across all organizations.
    license_allowlist
        SPDX identifiers accepted as open source.
    history_weeks
        Backfill horizon used when no watermark exists yet.
    max_weeks_per_run
        Upper bound on weeks processed by a single ``ingest`` invocation.
    reprocess_from_week
        Operator override that rewinds processing to a given week.
    reprocess_weeks
        Operator override that reprocesses the most recent N weeks.

    """

    license_allowlist: frozenset[str]
    github_token: str | None = None
    org_allowlist: tuple[str, ...] = DEFAULT_ORG_ALLOWLIST
    contributor_allowlist: tuple[str, ...] = ()
    history_weeks: int = DEFAULT_HISTORY_WEEKS
    max_weeks_per_run: int = DEFAULT_MAX_WEEKS_PER_RUN
    reprocess_from_week: dt.date | None = None
    reprocess_weeks: int = 0
    database_url: str = DEFAULT_DATABASE_URL
    export_path: Path = DEFAULT_EXPORT_PATH
    log_level: str = "INFO"

    def require_token(self) -> str:
        """Return the GitHub token or raise when it is not configured."""
        if self.github_token is None or not self.github_token.strip():
            raise ConfigError.missing_token()
        return self.github_token.strip()
