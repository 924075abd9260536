"""Command-line entry point.

``cairn ingest`` harvests the next batch of complete weeks from GitHub and
``cairn export`` rewrites ``metrics.json`` from the store. Both read their
configuration from ``CAIRN_*`` environment variables and the optional
settings file.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import sys
import typing as typ

from cyclopts import App, Parameter
from sqlalchemy.exc import SQLAlchemyError

from cairn import __version__
from cairn.config import ConfigError, load_settings
from cairn.export import ExportError
from cairn.github import GitHubAPIError, GitHubResponseShapeError, RetryExhaustedError
from cairn.logging import configure_logging, get_logger, log_error, log_info, log_warning
from cairn.runner import run_export, run_ingestion
from cairn.storage import CorruptWatermarkError, UnsupportedDialectError

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2

_INGESTION_FAILURES: tuple[type[Exception], ...] = (
    RetryExhaustedError,
    GitHubAPIError,
    GitHubResponseShapeError,
    CorruptWatermarkError,
    UnsupportedDialectError,
    SQLAlchemyError,
    OSError,
)

app = App(
    name="cairn",
    help="Harvest weekly open-source participation from GitHub.",
    version=__version__,
)


def _setup_logging(level: str | None) -> None:
    normalized, invalid = configure_logging(level, force=True)
    if invalid and level:
        log_warning(logger, "Invalid log level %r; defaulting to %s", level, normalized)


@app.command
def ingest(
    *,
    max_weeks: int | None = None,
    log_level: typ.Annotated[
        str | None, Parameter(env_var="CAIRN_LOG_LEVEL")
    ] = None,
) -> int:
    """Ingest the next batch of complete weeks.

    Args:
        max_weeks: Override the per-run week cap for this invocation.
        log_level: femtologging level name.

    Returns:
        Exit code (0 for success, 1 for ingestion failure, 2 for bad config).

    """
    _setup_logging(log_level)
    try:
        settings = load_settings()
        settings.require_token()
        if max_weeks is not None:
            if max_weeks < 1:
                raise ConfigError.not_positive("--max-weeks", max_weeks)
            settings = dc.replace(settings, max_weeks_per_run=max_weeks)
    except ConfigError as exc:
        log_error(logger, "Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR

    try:
        result = asyncio.run(run_ingestion(settings))
    except _INGESTION_FAILURES as exc:
        log_error(logger, "Ingestion failed: %s", exc)
        return EXIT_FAILURE

    if not result.weeks_processed:
        log_info(logger, "No complete weeks to process; watermark=%s", result.watermark)
    return EXIT_OK


@app.command
def export(
    *,
    log_level: typ.Annotated[
        str | None, Parameter(env_var="CAIRN_LOG_LEVEL")
    ] = None,
) -> int:
    """Write the aggregated metrics document from the store.

    Args:
        log_level: femtologging level name.

    Returns:
        Exit code (0 for success, 1 for export failure, 2 for bad config).

    """
    _setup_logging(log_level)
    try:
        settings = load_settings()
    except ConfigError as exc:
        log_error(logger, "Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR

    try:
        asyncio.run(run_export(settings))
    except (ExportError, SQLAlchemyError, OSError) as exc:
        log_error(logger, "Export failed: %s", exc)
        return EXIT_FAILURE
    return EXIT_OK


def main() -> int:
    """Entry point for the CLI."""
    return app()


if __name__ == "__main__":
    sys.exit(main())
