"""Unified configuration schema for ariadne_sync.

Defines Pydantic models for the config file structure with dedicated
sections for the Notion connection, local sync paths and logging.

Usage:
    from ariadne_sync.config_schema import UnifiedConfig, build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class DatabasesConfig(BaseModel):
    """Notion database ids, one per synchronised collection."""

    jobs: str | None = None
    contacts: str | None = None
    tasks: str | None = None

    model_config = {"frozen": True}


class NotionConfig(BaseModel):
    """Notion API connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.  ``apiKey`` is accepted as an alias
    so the tracker's own ``data/config.json`` validates unchanged.
    """

    api_key: str | None = Field(
        default=None, alias="apiKey", description="Integration token"
    )
    databases: DatabasesConfig = Field(default_factory=DatabasesConfig)
    api_url: str = Field(
        default="https://api.notion.com/v1", description="API base URL"
    )
    notion_version: str = Field(
        default="2022-06-28", description="Notion-Version header"
    )
    request_interval: float = Field(
        default=0.35,
        ge=0,
        le=60,
        description="Minimum seconds between consecutive requests",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries of a rate-limited request (0-10)",
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class SyncPathsConfig(BaseModel):
    """Where the local documents live.

    Attributes:
        data_dir: Directory holding tracker.json, network.json, tasks.json
            and the sync map.
        root_dir: Directory that job folder paths are relative to.
            Defaults to the parent of ``data_dir``.
    """

    data_dir: str = Field(default="data", description="Data directory")
    root_dir: str | None = Field(
        default=None, description="Workspace root for job folders"
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.  Unknown top-level keys are ignored so
    the tracker's other settings can share the same file.
    """

    notion: NotionConfig = Field(default_factory=NotionConfig)
    sync: SyncPathsConfig = Field(default_factory=SyncPathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(frozen=True, extra="ignore")


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.

    Raises:
        ConfigurationError: If a section has the wrong shape or a value is
            out of range.
    """
    if not raw_data:
        return UnifiedConfig()

    try:
        return UnifiedConfig.model_validate(raw_data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration file: {exc}") from exc
