"""Tests for the ariadne-sync command line.

Covers:
- Flags are turned into SyncOptions
- Report output: text, dry-run preview, JSON, silent background mode
- Exit codes and the "Fatal:" message on fatal errors
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from ariadne_sync.cli import build_parser, main
from ariadne_sync.errors import AuthenticationError, ConfigurationError
from ariadne_sync.sync.engine import SyncOptions
from ariadne_sync.sync.models import EntityType, SyncAction, SyncReport, SyncResult


def _report(dry_run: bool = False) -> SyncReport:
    return SyncReport(
        dry_run=dry_run,
        started_at="2026-03-01T09:00:00+00:00",
        completed_at="2026-03-01T09:00:02+00:00",
        watermark=None if dry_run else "2026-03-01T09:00:02+00:00",
        results=[
            SyncResult(
                entity_type=EntityType.JOBS,
                key="Active:Acme:Eng",
                action=SyncAction.CREATE_REMOTE,
                label="Acme - Eng",
            )
        ],
    )


@pytest.fixture
def cli_env(mock_config):
    """Patch config loading, logging setup and the engine."""
    engine = MagicMock()
    engine.run.return_value = _report()
    with patch("ariadne_sync.cli.setup_logging") as setup, patch(
        "ariadne_sync.cli.load_dotenv"
    ), patch(
        "ariadne_sync.cli.load_hierarchical_config", return_value={}
    ), patch(
        "ariadne_sync.cli.load_config", return_value=mock_config
    ) as load, patch(
        "ariadne_sync.cli.SyncEngine", return_value=engine
    ) as engine_cls:
        yield {
            "setup_logging": setup,
            "load_config": load,
            "engine_cls": engine_cls,
            "engine": engine,
        }


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert not (args.dry_run or args.pull_only or args.push_only)
        assert args.data_dir is None

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            build_parser().parse_args(["--version"])
        assert exc.value.code == 0
        assert "ariadne-sync version" in capsys.readouterr().out


class TestMain:
    def test_flags_become_options(self, cli_env):
        assert main(["--full", "--apply-deletes", "--push-only"]) == 0
        cli_env["engine"].run.assert_called_once_with(
            SyncOptions(full=True, apply_deletes=True, push_only=True)
        )

    def test_cli_overrides_passed_to_config(self, cli_env):
        main(["--api-key", "secret_cli", "--data-dir", "/tmp/tracker", "--debug"])
        kwargs = cli_env["load_config"].call_args.kwargs
        assert kwargs["api_key"] == "secret_cli"
        assert kwargs["data_dir"] == "/tmp/tracker"
        assert kwargs["debug"] is True

    def test_text_report(self, cli_env, capsys):
        assert main([]) == 0
        out = capsys.readouterr().out
        assert "Jobs: 1 created" in out
        assert "Last sync:" in out

    def test_dry_run_preview(self, cli_env, capsys):
        cli_env["engine"].run.return_value = _report(dry_run=True)
        main(["--dry-run"])
        assert capsys.readouterr().out.startswith("DRY RUN")

    def test_json_report(self, cli_env, capsys):
        main(["--json"])
        data = json.loads(capsys.readouterr().out)
        assert data["counts"]["jobs"]["created"] == 1

    def test_background_prints_nothing(self, cli_env, capsys):
        assert main(["--background", "--log-file", "/tmp/x.log"]) == 0
        assert capsys.readouterr().out == ""
        kwargs = cli_env["setup_logging"].call_args.kwargs
        assert kwargs["mode"] == "background"
        assert kwargs["log_file"] == "/tmp/x.log"

    def test_fatal_error_exit_code(self, cli_env, capsys):
        cli_env["engine"].run.side_effect = AuthenticationError(
            "Notion rejected the API key", status_code=401
        )
        assert main([]) == 1
        captured = capsys.readouterr()
        assert "Fatal: Notion rejected the API key" in captured.err
        assert captured.out == ""

    def test_configuration_error(self, cli_env, capsys):
        cli_env["load_config"].side_effect = ConfigurationError("no key")
        assert main([]) == 1
        assert "Fatal: no key" in capsys.readouterr().err
        cli_env["engine_cls"].assert_not_called()

    def test_pull_and_push_only_conflict(self, cli_env, capsys):
        assert main(["--pull-only", "--push-only"]) == 1
        assert "mutually exclusive" in capsys.readouterr().err
        cli_env["load_config"].assert_not_called()
