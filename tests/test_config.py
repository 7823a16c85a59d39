"""Tests for config.py: load_config precedence and validation."""

from pathlib import Path

import pytest

from ariadne_sync.config import Config, load_config, validate_config
from ariadne_sync.config_schema import UnifiedConfig
from ariadne_sync.errors import ConfigurationError
from ariadne_sync.sync.models import EntityType

ENV_VARS = (
    "NOTION_API_KEY",
    "NOTION_JOBS_DB",
    "NOTION_CONTACTS_DB",
    "NOTION_TASKS_DB",
    "ARIADNE_DATA_DIR",
    "ARIADNE_REQUEST_INTERVAL",
    "ARIADNE_DEBUG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _unified(**notion) -> UnifiedConfig:
    return UnifiedConfig.model_validate({"notion": notion})


class TestLoadConfig:
    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("NOTION_API_KEY", "secret_env")
        monkeypatch.setenv("NOTION_JOBS_DB", "db-jobs")
        monkeypatch.setenv("ARIADNE_DATA_DIR", "/srv/tracker/data")

        config = load_config()

        assert config.api_key == "secret_env"
        assert config.databases == {EntityType.JOBS: "db-jobs"}
        assert config.data_dir == Path("/srv/tracker/data")
        assert config.state_path == Path("/srv/tracker/data/.notion-sync-map.json")
        assert config.workspace_root == Path("/srv/tracker")

    def test_cli_beats_env_beats_file(self, monkeypatch):
        monkeypatch.setenv("NOTION_API_KEY", "secret_env")
        unified = _unified(apiKey="secret_file", databases={"tasks": "db-file"})

        assert load_config(unified=unified).api_key == "secret_env"
        assert load_config(api_key="secret_cli", unified=unified).api_key == (
            "secret_cli"
        )

    def test_file_values_used_as_fallback(self):
        unified = UnifiedConfig.model_validate(
            {
                "notion": {
                    "api_key": "secret_file",
                    "databases": {"contacts": "db-contacts"},
                    "request_interval": 1.0,
                },
                "sync": {"data_dir": "tracker", "root_dir": "/work"},
            }
        )
        config = load_config(unified=unified)

        assert config.databases == {EntityType.CONTACTS: "db-contacts"}
        assert config.request_interval == 1.0
        assert config.data_dir == Path("tracker")
        assert config.workspace_root == Path("/work")

    def test_missing_api_key(self):
        with pytest.raises(ConfigurationError, match="API key not found"):
            load_config(unified=_unified(databases={"jobs": "db"}))

    def test_no_databases(self, monkeypatch):
        monkeypatch.setenv("NOTION_API_KEY", "secret")
        with pytest.raises(ConfigurationError, match="database ids"):
            load_config()

    def test_invalid_interval(self, monkeypatch):
        monkeypatch.setenv("NOTION_API_KEY", "secret")
        monkeypatch.setenv("NOTION_JOBS_DB", "db")
        monkeypatch.setenv("ARIADNE_REQUEST_INTERVAL", "fast")
        with pytest.raises(ConfigurationError, match="ARIADNE_REQUEST_INTERVAL"):
            load_config()

    @pytest.mark.parametrize(
        "value,expected",
        [("true", True), ("1", True), ("on", True), ("false", False), ("0", False)],
    )
    def test_debug_env(self, monkeypatch, value, expected):
        monkeypatch.setenv("NOTION_API_KEY", "secret")
        monkeypatch.setenv("NOTION_JOBS_DB", "db")
        monkeypatch.setenv("ARIADNE_DEBUG", value)
        assert load_config().debug is expected

    def test_debug_from_logging_level(self, monkeypatch):
        monkeypatch.setenv("NOTION_API_KEY", "secret")
        monkeypatch.setenv("NOTION_JOBS_DB", "db")
        unified = UnifiedConfig.model_validate({"logging": {"level": "debug"}})
        assert load_config(unified=unified).debug is True


class TestValidateConfig:
    def test_strips_whitespace_and_drops_blank_ids(self):
        config = Config(
            api_key="  secret  ",
            databases={EntityType.JOBS: " db-jobs ", EntityType.TASKS: "  "},
        )
        validate_config(config)
        assert config.api_key == "secret"
        assert config.databases == {EntityType.JOBS: "db-jobs"}

    def test_blank_api_key(self):
        config = Config(api_key="   ", databases={EntityType.JOBS: "db"})
        with pytest.raises(ConfigurationError, match="cannot be empty"):
            validate_config(config)

    def test_bad_api_url(self):
        config = Config(
            api_key="secret",
            databases={EntityType.JOBS: "db"},
            api_url="api.notion.com",
        )
        with pytest.raises(ConfigurationError, match="Invalid API URL"):
            validate_config(config)

    def test_negative_interval(self):
        config = Config(
            api_key="secret",
            databases={EntityType.JOBS: "db"},
            request_interval=-1,
        )
        with pytest.raises(ConfigurationError):
            validate_config(config)
