"""Runtime configuration for the sync engine.

Reads Notion credentials, database ids and local paths from CLI args,
environment variables, .env files, and config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > config files > Built-in defaults

Environment variables:
    NOTION_API_KEY: Notion integration token (required)
    NOTION_JOBS_DB: Jobs database id
    NOTION_CONTACTS_DB: Contacts database id
    NOTION_TASKS_DB: Tasks database id
    ARIADNE_DATA_DIR: Directory holding tracker.json, network.json, tasks.json
        (default: ./data)
    ARIADNE_REQUEST_INTERVAL: Minimum seconds between API requests
        (optional, default: 0.35)
    ARIADNE_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .config_schema import UnifiedConfig
from .errors import ConfigurationError
from .sync.models import EntityType

logger = logging.getLogger(__name__)

STATE_FILE = ".notion-sync-map.json"


@dataclass
class Config:
    api_key: str
    databases: dict[EntityType, str] = field(default_factory=dict)
    data_dir: Path = Path("data")
    root_dir: Path | None = None
    api_url: str = "https://api.notion.com/v1"
    notion_version: str = "2022-06-28"
    request_interval: float = 0.35
    max_retries: int = 3
    debug: bool = False

    @property
    def workspace_root(self) -> Path:
        """Directory that job ``folder`` paths are relative to."""
        return self.root_dir if self.root_dir is not None else self.data_dir.parent

    @property
    def state_path(self) -> Path:
        return self.data_dir / STATE_FILE

    def database_id(self, entity_type: EntityType) -> str | None:
        return self.databases.get(entity_type)


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ConfigurationError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ConfigurationError: If the API key is empty, no database id is
            configured, or a numeric setting is out of range.
    """
    config.api_key = config.api_key.strip()
    if not config.api_key:
        raise ConfigurationError(
            "Notion API key cannot be empty. Set NOTION_API_KEY environment variable."
        )

    config.databases = {
        entity_type: db_id.strip()
        for entity_type, db_id in config.databases.items()
        if db_id and db_id.strip()
    }
    if not config.databases:
        raise ConfigurationError(
            "No Notion database ids configured. Set NOTION_JOBS_DB, "
            "NOTION_CONTACTS_DB or NOTION_TASKS_DB, or add notion.databases "
            "to the config file."
        )

    if not config.api_url.startswith(("http://", "https://")):
        raise ConfigurationError(
            f"Invalid API URL '{config.api_url}': must start with http:// or https://"
        )

    if config.request_interval < 0:
        raise ConfigurationError("Request interval must be >= 0 seconds")
    if not (0 <= config.max_retries <= 10):
        raise ConfigurationError("max_retries must be between 0 and 10")

    for entity_type in EntityType:
        if entity_type not in config.databases:
            logger.info(
                "No database configured for %s; it will not be synced",
                entity_type.value,
            )


def load_config(
    api_key: str | None = None,
    data_dir: str | None = None,
    debug: bool = False,
    unified: UnifiedConfig | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > config file > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        api_key: Override API key (takes precedence over env var and config file).
        data_dir: Override data directory.
        debug: Enable debug logging (CLI flag).
        unified: Validated config file contents; ``None`` means defaults.

    Returns:
        Validated Config instance.

    Raises:
        ConfigurationError: If required config is missing after checking
            all sources, or a value is invalid.
    """
    fb = unified or UnifiedConfig()

    final_api_key = api_key or os.getenv("NOTION_API_KEY") or fb.notion.api_key
    if not final_api_key:
        raise ConfigurationError(
            "Notion API key not found. Set NOTION_API_KEY environment variable, "
            "pass --api-key, or add 'notion.api_key' to the config file."
        )

    databases: dict[EntityType, str] = {}
    for entity_type in EntityType:
        env_name = f"NOTION_{entity_type.value.upper()}_DB"
        db_id = os.getenv(env_name) or getattr(
            fb.notion.databases, entity_type.value
        )
        if db_id:
            databases[entity_type] = db_id

    final_data_dir = Path(
        data_dir or os.getenv("ARIADNE_DATA_DIR") or fb.sync.data_dir
    ).expanduser()
    root_dir = (
        Path(fb.sync.root_dir).expanduser() if fb.sync.root_dir else None
    )

    interval_raw = os.getenv("ARIADNE_REQUEST_INTERVAL")
    if interval_raw is not None:
        try:
            request_interval = float(interval_raw)
        except ValueError:
            raise ConfigurationError(
                f"Invalid ARIADNE_REQUEST_INTERVAL '{interval_raw}': must be a number of seconds"
            ) from None
    else:
        request_interval = fb.notion.request_interval

    if debug:
        final_debug = True
    else:
        env_debug = os.getenv("ARIADNE_DEBUG")
        if env_debug is not None:
            final_debug = env_debug.lower() in ("true", "1", "yes", "on")
        else:
            final_debug = fb.logging.level.upper() == "DEBUG"

    config = Config(
        api_key=final_api_key,
        databases=databases,
        data_dir=final_data_dir,
        root_dir=root_dir,
        api_url=fb.notion.api_url,
        notion_version=fb.notion.notion_version,
        request_interval=request_interval,
        max_retries=fb.notion.max_retries,
        debug=final_debug,
    )

    validate_config(config)

    return config
