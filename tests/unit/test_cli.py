"""Tests for the cairn command-line interface."""

from __future__ import annotations

import json
import typing as typ

import pytest

from cairn import __version__, cli
from cairn.github.errors import RetryExhaustedError
from cairn.ingestion import IngestionRunResult

if typ.TYPE_CHECKING:
    from pathlib import Path

    from cairn.config import IngestionSettings


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run the CLI from a directory holding the required config files."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "oss_spdx_allowlist.json").write_text(
        json.dumps(["MIT"]), encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path)
    for name in (
        "CAIRN_GITHUB_TOKEN",
        "GITHUB_TOKEN",
        "CAIRN_SETTINGS_PATH",
        "CAIRN_ORG_ALLOWLIST",
        "CAIRN_EXPORT_PATH",
        "CAIRN_MAX_WEEKS_PER_RUN",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv(
        "CAIRN_DATABASE_URL",
        f"sqlite+aiosqlite:///{tmp_path / 'data' / 'participation.sqlite'}",
    )
    monkeypatch.setattr(cli, "configure_logging", lambda *_, **__: ("INFO", False))
    return tmp_path


class TestCliStructure:
    """Tests for the command layout."""

    def test_app_has_name_and_version(self) -> None:
        """The app is named after the package and reports its version."""
        assert cli.app.name == ("cairn",)
        assert cli.app.version == __version__

    @pytest.mark.parametrize("command", ["ingest", "export"])
    def test_app_has_command(self, command: str) -> None:
        """Both commands are registered."""
        command_names = [cmd.name for cmd in cli.app._commands.values()]
        assert (command,) in command_names


def test_ingest_without_token_is_config_error(workspace: Path) -> None:
    """A missing token exits with the configuration error code."""
    del workspace
    assert cli.ingest() == cli.EXIT_CONFIG_ERROR


def test_ingest_rejects_non_positive_week_override(
    workspace: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """``--max-weeks 0`` is a configuration error."""
    del workspace
    monkeypatch.setenv("CAIRN_GITHUB_TOKEN", "ghp_test")
    assert cli.ingest(max_weeks=0) == cli.EXIT_CONFIG_ERROR


def test_ingest_failure_exits_with_failure_code(
    workspace: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Ingestion errors exit 1 and leave the process intact."""
    del workspace
    monkeypatch.setenv("CAIRN_GITHUB_TOKEN", "ghp_test")

    async def _failing(settings: IngestionSettings) -> typ.NoReturn:
        del settings
        raise RetryExhaustedError("civicactions", 3, "HTTP 502")

    monkeypatch.setattr(cli, "run_ingestion", _failing)

    assert cli.ingest() == cli.EXIT_FAILURE


def test_ingest_applies_week_override(
    workspace: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """The command-line cap replaces the configured one."""
    del workspace
    monkeypatch.setenv("CAIRN_GITHUB_TOKEN", "ghp_test")
    seen: list[IngestionSettings] = []

    async def _record(settings: IngestionSettings) -> IngestionRunResult:
        seen.append(settings)
        return IngestionRunResult()

    monkeypatch.setattr(cli, "run_ingestion", _record)

    assert cli.ingest(max_weeks=3) == cli.EXIT_OK
    assert seen[0].max_weeks_per_run == 3


def test_export_without_database_fails(workspace: Path) -> None:
    """Exporting before the first ingestion exits 1."""
    del workspace
    assert cli.export() == cli.EXIT_FAILURE


def test_export_writes_metrics(workspace: Path) -> None:
    """An initialised store exports to the configured path."""
    (workspace / "data").mkdir()
    (workspace / "data" / "participation.sqlite").touch()

    assert cli.export() == cli.EXIT_OK
    document = json.loads(
        (workspace / "data" / "metrics.json").read_text(encoding="utf-8")
    )
    assert document["orgs"] == ["civicactions"]
    assert document["series"] == []
