"""MCP tool handlers for the tracker sync.

Defines two tools:

- ``tracker_sync`` -- run one sync (with optional dry-run and mode flags).
- ``tracker_sync_status`` -- show the persisted sync state summary.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import mcp.types as types

from ...core.async_utils import run_sync, run_sync_exclusive
from ...errors import SyncError
from ...sync.engine import SyncEngine, SyncOptions
from ...sync.models import EntityType
from ...sync.reporter import (
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)
from ...sync.state import SyncState, SyncStateStore
from .errors import build_error_response, translate_sync_error

if TYPE_CHECKING:
    from ...config import Config

logger = logging.getLogger(__name__)

_FLAGS = ("dry_run", "pull_only", "push_only", "full", "apply_deletes")


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


SYNC_TOOLS: list[types.Tool] = [
    types.Tool(
        name="tracker_sync",
        description=(
            "Synchronize the local job tracker (jobs, contacts, tasks) with "
            "its Notion databases. Pulls Notion edits first, then pushes "
            "local changes. Conflicts keep the local copy."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "dry_run": {
                    "type": "boolean",
                    "default": False,
                    "description": "Preview changes without applying them",
                },
                "pull_only": {
                    "type": "boolean",
                    "default": False,
                    "description": "Only pull Notion -> local",
                },
                "push_only": {
                    "type": "boolean",
                    "default": False,
                    "description": "Only push local -> Notion",
                },
                "full": {
                    "type": "boolean",
                    "default": False,
                    "description": "Ignore hashes and edit times, sync everything",
                },
                "apply_deletes": {
                    "type": "boolean",
                    "default": False,
                    "description": (
                        "Archive Notion pages of records deleted locally"
                    ),
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="tracker_sync_status",
        description=(
            "Show sync state -- last sync time, number of mapped records "
            "per collection, whether a sync is running."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
]


# ---------------------------------------------------------------------------
# Tool handler
# ---------------------------------------------------------------------------


async def handle_sync_tool(
    name: str,
    arguments: dict[str, Any] | None,
    config: Config,
    engine: SyncEngine | None = None,
) -> types.CallToolResult:
    """Dispatch and execute a sync tool.

    Args:
        name: Tool name (``tracker_sync`` or ``tracker_sync_status``).
        arguments: Tool arguments dict.
        config: Loaded runtime configuration.
        engine: Engine to run; built from *config* when omitted.

    Returns:
        ``CallToolResult`` with tool output or error details.
    """
    args = arguments or {}

    try:
        match name:
            case "tracker_sync":
                return await _handle_tracker_sync(
                    args, engine or SyncEngine(config)
                )
            case "tracker_sync_status":
                return await _handle_tracker_sync_status(config)
            case _:
                raise ValueError(f"Unknown sync tool: {name}")

    except ValueError as exc:
        return build_error_response(
            "validation_error",
            str(exc),
            "Check parameter values and retry.",
        )
    except SyncError as exc:
        logger.error("Sync failed: %s", exc)
        return translate_sync_error(exc)
    except Exception as exc:
        logger.exception("Sync tool error: %s", exc)
        return build_error_response(
            "server_error",
            str(exc),
            "Check the server log and Notion connectivity.",
        )


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


def _parse_options(args: dict[str, Any]) -> SyncOptions:
    flags: dict[str, bool] = {}
    for flag in _FLAGS:
        value = args.get(flag, False)
        if not isinstance(value, bool):
            raise ValueError(f"{flag} must be a boolean")
        flags[flag] = value
    return SyncOptions(**flags)


async def _handle_tracker_sync(
    args: dict[str, Any],
    engine: SyncEngine,
) -> types.CallToolResult:
    """Handle the ``tracker_sync`` tool."""
    options = _parse_options(args)
    report = await run_sync_exclusive(engine.run, options)

    if report.dry_run:
        text = format_dry_run_preview(report)
    else:
        text = format_sync_report(report)

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=report_to_json(report),
    )


async def _handle_tracker_sync_status(
    config: Config,
) -> types.CallToolResult:
    """Handle the ``tracker_sync_status`` tool."""
    store = SyncStateStore(config.state_path)
    state: SyncState = await run_sync(store.load)
    lock_path = store.path.with_name(store.path.name + ".lock")
    running = lock_path.exists()

    mapped = {
        t.value: len(state.entries(t)) for t in EntityType
    }
    last_sync = state.watermark or "never"

    lines = [
        "Tracker sync status",
        f"  Data dir:    {config.data_dir}",
        f"  Last sync:   {last_sync}",
    ]
    for entity_type in EntityType:
        configured = "" if config.database_id(entity_type) else " (not configured)"
        lines.append(
            f"  {entity_type.value.capitalize():<9}    "
            f"{mapped[entity_type.value]} mapped{configured}"
        )
    lines.append(f"  Running:     {'yes' if running else 'no'}")

    structured = {
        "data_dir": str(config.data_dir),
        "last_sync": state.watermark,
        "baseline_pending": state.is_baseline,
        "mapped": mapped,
        "databases": {
            t.value: config.database_id(t) for t in EntityType
        },
        "running": running,
    }

    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent=structured,
    )
