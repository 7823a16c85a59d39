"""Error response builders for MCP tool handlers.

Structured error responses carry a corrective action so an agent can
recover without human intervention.
"""

import mcp.types as types

from ...errors import (
    AuthenticationError,
    ConfigurationError,
    LocalStoreError,
    RateLimitExceeded,
    StateCorruptionError,
    SyncError,
    SyncLockedError,
)


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (configuration_error, locked,
            authentication_error, rate_limited, local_error, state_error,
            remote_error, validation_error, server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("locked", "Another sync run holds the lock", "Wait and retry.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def translate_sync_error(error: SyncError) -> types.CallToolResult:
    """Translate a fatal sync error to a structured error response."""
    match error:
        case ConfigurationError():
            return build_error_response(
                "configuration_error",
                str(error),
                "Set NOTION_API_KEY and at least one of NOTION_JOBS_DB, "
                "NOTION_CONTACTS_DB, NOTION_TASKS_DB, then restart the server.",
            )
        case SyncLockedError():
            return build_error_response(
                "locked",
                str(error),
                "Wait for the running sync to finish, then retry.",
            )
        case AuthenticationError():
            return build_error_response(
                "authentication_error",
                str(error),
                "Check the API key and that every database is shared with the integration.",
            )
        case RateLimitExceeded():
            return build_error_response(
                "rate_limited",
                str(error),
                "Retry in a minute; a rerun resumes from the persisted state.",
            )
        case LocalStoreError():
            return build_error_response(
                "local_error",
                str(error),
                "Fix the local tracker files reported above, then retry.",
            )
        case StateCorruptionError():
            return build_error_response(
                "state_error",
                str(error),
                "Restore .notion-sync-map.json from a backup or delete it to "
                "start over with a baseline run.",
            )
        case _:
            return build_error_response(
                "remote_error",
                str(error),
                "Check Notion connectivity or retry later.",
            )
