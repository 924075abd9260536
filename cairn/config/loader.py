"""Load :class:`IngestionSettings` from the environment and config files.

Environment variables win over the optional settings file, which wins over
built-in defaults. The license allowlist file is mandatory; the contributor
allowlist may come from an inline JSON variable, a file, or nowhere at all.

Usage
-----
>>> settings = load_settings({"CAIRN_GITHUB_TOKEN": "ghp_example"})
>>> settings.max_weeks_per_run
12

"""

from __future__ import annotations

import datetime as dt
import os
import typing as typ
from pathlib import Path

import msgspec
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from cairn.logging import get_logger, log_warning

from .errors import ConfigError
from .models import (
    DEFAULT_DATABASE_URL,
    DEFAULT_EXPORT_PATH,
    DEFAULT_HISTORY_WEEKS,
    DEFAULT_MAX_WEEKS_PER_RUN,
    DEFAULT_ORG_ALLOWLIST,
    IngestionSettings,
    SettingsFile,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

YAML_VERSION = (1, 2)

DEFAULT_SETTINGS_PATH = Path("config") / "cairn.yaml"
DEFAULT_LICENSE_ALLOWLIST_PATH = Path("config") / "oss_spdx_allowlist.json"
DEFAULT_CONTRIBUTOR_ALLOWLIST_PATH = Path("config") / "contributor_allowlist.json"

_STRING_LIST = list[str]


def load_settings(
    env: cabc.Mapping[str, str] | None = None,
    *,
    base_dir: Path | None = None,
) -> IngestionSettings:
    """Build settings from ``env`` (defaults to ``os.environ``).

    Relative file paths are resolved against ``base_dir``, which defaults to
    the current working directory.

    Raises
    ------
    ConfigError
        If the settings file cannot be parsed, the license allowlist is
        missing or malformed, or a week count is out of range.

    """
    environ = os.environ if env is None else env
    root = base_dir or Path.cwd()

    file_settings = _load_settings_file(environ, root)

    history_weeks = _parse_int(
        environ,
        "CAIRN_HISTORY_WEEKS",
        _first_int(file_settings.history_weeks, DEFAULT_HISTORY_WEEKS),
    )
    if history_weeks < 0:
        msg = f"CAIRN_HISTORY_WEEKS must not be negative, got: {history_weeks}"
        raise ConfigError(msg)

    max_weeks = _parse_int(
        environ,
        "CAIRN_MAX_WEEKS_PER_RUN",
        _first_int(file_settings.max_weeks_per_run, DEFAULT_MAX_WEEKS_PER_RUN),
    )
    if max_weeks < 1:
        raise ConfigError.not_positive("CAIRN_MAX_WEEKS_PER_RUN", max_weeks)

    reprocess_weeks = max(_parse_int(environ, "CAIRN_REPROCESS_WEEKS", 0), 0)

    export_raw = _env_text(environ, "CAIRN_EXPORT_PATH") or file_settings.export_path
    export_path = Path(export_raw) if export_raw else DEFAULT_EXPORT_PATH

    return IngestionSettings(
        github_token=_env_text(environ, "CAIRN_GITHUB_TOKEN")
        or _env_text(environ, "GITHUB_TOKEN"),
        org_allowlist=_org_allowlist(environ, file_settings),
        contributor_allowlist=_contributor_allowlist(environ, root),
        license_allowlist=_license_allowlist(environ, root),
        history_weeks=history_weeks,
        max_weeks_per_run=max_weeks,
        reprocess_from_week=_reprocess_from_week(environ),
        reprocess_weeks=reprocess_weeks,
        database_url=_env_text(environ, "CAIRN_DATABASE_URL")
        or file_settings.database_url
        or DEFAULT_DATABASE_URL,
        export_path=export_path,
        log_level=_env_text(environ, "CAIRN_LOG_LEVEL") or "INFO",
    )


def _env_text(environ: cabc.Mapping[str, str], name: str) -> str | None:
    raw = environ.get(name, "")
    stripped = raw.strip()
    return stripped or None


def _first_int(value: int | None, default: int) -> int:
    return default if value is None else value


def _parse_int(environ: cabc.Mapping[str, str], name: str, fallback: int) -> int:
    """Read an integer variable, falling back when it is blank or invalid."""
    raw = _env_text(environ, name)
    if raw is None:
        return fallback
    try:
        return int(raw)
    except ValueError:
        log_warning(logger, "%s is not an integer (%r); using %d", name, raw, fallback)
        return fallback


def _resolve(root: Path, raw: str | None, default: Path) -> Path:
    path = Path(raw) if raw else default
    return path if path.is_absolute() else root / path


def _yaml() -> YAML:
    yaml = YAML(typ="safe")
    yaml.version = YAML_VERSION
    yaml.allow_duplicate_keys = False
    return yaml


def _load_settings_file(environ: cabc.Mapping[str, str], root: Path) -> SettingsFile:
    """Parse the optional YAML (or JSON) settings file."""
    explicit = _env_text(environ, "CAIRN_SETTINGS_PATH")
    path = _resolve(root, explicit, DEFAULT_SETTINGS_PATH)
    if not path.exists():
        if explicit is not None:
            raise ConfigError.missing_file(path, purpose="settings")
        return SettingsFile()

    try:
        loaded = _yaml().load(path.read_text(encoding="utf-8"))
    except (OSError, YAMLError) as exc:
        raise ConfigError.unreadable_file(path, exc) from exc

    if loaded is None:
        return SettingsFile()

    try:
        return msgspec.convert(loaded, type=SettingsFile)
    except msgspec.ValidationError as exc:
        raise ConfigError.unreadable_file(path, exc) from exc


def _dedupe(values: cabc.Iterable[str]) -> tuple[str, ...]:
    cleaned = (value.strip() for value in values)
    return tuple(dict.fromkeys(value for value in cleaned if value))


def _org_allowlist(
    environ: cabc.Mapping[str, str], file_settings: SettingsFile
) -> tuple[str, ...]:
    raw_env = _env_text(environ, "CAIRN_ORG_ALLOWLIST")
    if raw_env is not None:
        return _dedupe(raw_env.split(","))

    configured = file_settings.org_allowlist
    if isinstance(configured, str):
        return _dedupe(configured.split(","))
    if configured:
        return _dedupe(configured)
    return DEFAULT_ORG_ALLOWLIST


def _contributor_allowlist(
    environ: cabc.Mapping[str, str], root: Path
) -> tuple[str, ...]:
    """Resolve tracked contributors from inline JSON, then the file."""
    inline = _env_text(environ, "CAIRN_CONTRIBUTOR_ALLOWLIST_JSON")
    if inline is not None:
        try:
            return _dedupe(msgspec.json.decode(inline, type=_STRING_LIST))
        except msgspec.DecodeError as exc:
            log_warning(
                logger,
                "Failed to parse CAIRN_CONTRIBUTOR_ALLOWLIST_JSON; "
                "falling back to file if present: %s",
                exc,
            )

    path = _resolve(
        root,
        _env_text(environ, "CAIRN_CONTRIBUTOR_ALLOWLIST_PATH"),
        DEFAULT_CONTRIBUTOR_ALLOWLIST_PATH,
    )
    if not path.exists():
        return ()
    try:
        return _dedupe(msgspec.json.decode(path.read_bytes(), type=_STRING_LIST))
    except (OSError, msgspec.DecodeError) as exc:
        log_warning(
            logger,
            "Failed to parse %s; defaulting to an empty contributor list: %s",
            path,
            exc,
        )
        return ()


def _license_allowlist(environ: cabc.Mapping[str, str], root: Path) -> frozenset[str]:
    path = _resolve(
        root,
        _env_text(environ, "CAIRN_LICENSE_ALLOWLIST_PATH"),
        DEFAULT_LICENSE_ALLOWLIST_PATH,
    )
    if not path.exists():
        raise ConfigError.missing_file(path, purpose="license allowlist")
    try:
        identifiers = msgspec.json.decode(path.read_bytes(), type=_STRING_LIST)
    except (OSError, msgspec.DecodeError) as exc:
        raise ConfigError.unreadable_file(path, exc) from exc
    return frozenset(_dedupe(identifiers))


def _reprocess_from_week(environ: cabc.Mapping[str, str]) -> dt.date | None:
    """Parse the rewind override; invalid values are ignored with a warning."""
    raw = _env_text(environ, "CAIRN_REPROCESS_FROM_WEEK")
    if raw is None:
        return None
    try:
        return dt.date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return dt.datetime.fromisoformat(raw).date()
    except ValueError:
        log_warning(
            logger,
            "CAIRN_REPROCESS_FROM_WEEK is invalid (%s); falling back to history/meta.",
            raw,
        )
        return None
