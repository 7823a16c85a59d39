"""Config file discovery and merging.

Sources, highest precedence first:

1. ``ARIADNE_CONFIG`` (one explicit file)
2. ``.ariadne/config.yml`` in the working directory
3. ``~/.config/ariadne/config.yml``
4. ``data/config.json``, the tracker's own settings file

A higher-precedence file replaces whole top-level sections of the files
below it.  Strings may reference the environment as ``${VAR}`` or
``${VAR:-fallback}``; references are expanded after merging.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError
from .file_handler import read_json

logger = logging.getLogger(__name__)

PROJECT_CONFIG = Path(".ariadne") / "config.yml"
USER_CONFIG = Path(".config") / "ariadne" / "config.yml"
TRACKER_CONFIG = Path("data") / "config.json"

_VAR_REF = re.compile(r"\$\{(?P<name>[^}:]+?)(?::-(?P<fallback>.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-fallback}`` references in *value*.

    An unset or empty variable expands to its fallback, or to ``""`` when
    there is none.  An unterminated ``${`` is kept as typed.
    """
    return _VAR_REF.sub(
        lambda m: os.environ.get(m["name"]) or (m["fallback"] or ""), value
    )


def expand_env(node: Any) -> Any:
    """Apply :func:`interpolate_env_vars` to every string inside *node*."""
    if isinstance(node, str):
        return interpolate_env_vars(node)
    if isinstance(node, list):
        return [expand_env(item) for item in node]
    if isinstance(node, dict):
        return {key: expand_env(item) for key, item in node.items()}
    return node


def _search_path() -> list[Path]:
    paths: list[Path] = []
    explicit = os.environ.get("ARIADNE_CONFIG")
    if explicit:
        paths.append(Path(explicit).expanduser().resolve())
    cwd = Path.cwd()
    paths.extend(
        [cwd / PROJECT_CONFIG, Path.home() / USER_CONFIG, cwd / TRACKER_CONFIG]
    )
    return paths


def discover_config_files() -> list[Path]:
    """Existing config files, highest precedence first."""
    return [path for path in _search_path() if path.is_file()]


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse one YAML or JSON config file.

    Empty documents and documents whose root is not a mapping yield ``{}``.

    Raises:
        ConfigurationError: The YAML does not parse.
        LocalStoreError: The JSON does not parse.
    """
    if path.suffix == ".json":
        data = read_json(path, default={})
    else:
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                f"Config file {path} is not valid YAML: {exc}"
            ) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning(
            "Ignoring %s: top level is a %s, expected a mapping",
            path,
            type(data).__name__,
        )
        return {}
    return data


def load_hierarchical_config() -> dict[str, Any]:
    """Merge every discovered config file into one dict (``{}`` if none)."""
    merged: dict[str, Any] = {}
    for path in reversed(discover_config_files()):
        logger.debug("Reading config %s", path)
        merged.update(read_config_file(path))

    if not merged:
        logger.debug("No config files found, using env and defaults")
    return expand_env(merged)
