"""MCP server for the tracker sync using stdio transport.

This module implements the Model Context Protocol server that lets AI
agents trigger a tracker <-> Notion sync and inspect its state without
blocking a foreground session.

Transport: stdio (launched by an MCP client)
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import sys

import mcp.server.stdio
import mcp.types as types
from dotenv import load_dotenv
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config import Config, load_config
from ..config_loader import discover_config_files, load_hierarchical_config
from ..config_schema import build_config
from ..errors import ConfigurationError
from ..logger import setup_logging
from .tools import SYNC_TOOLS, build_error_response, handle_sync_tool

logger = logging.getLogger(__name__)

# Initialize server instance
server = Server("ariadne-sync")

# Global config instance (initialized in main)
_config: Config | None = None


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_config() -> Config:
    """Get the global Config instance.

    Raises:
        RuntimeError: If config is not initialized
    """
    if _config is None:
        raise RuntimeError("Config not initialized. Server not started.")
    return _config


def set_config(config: Config | None) -> None:
    """Set the global Config instance, or None to clear."""
    global _config
    _config = config


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List available sync tools."""
    return SYNC_TOOLS


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution.

    Args:
        name: The name of the tool to execute.
        arguments: Tool arguments (optional).

    Returns:
        CallToolResult with tool output content and optional isError flag.
    """
    if name not in {tool.name for tool in SYNC_TOOLS}:
        return build_error_response(
            "unknown_tool",
            f"Unknown tool: {name}",
            "Use list_tools to see available tools.",
        )
    return await handle_sync_tool(name, arguments, get_config())


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


def load_server_config(config_overrides: dict | None = None) -> Config:
    """Load configuration: CLI > env vars (.env loaded first) > config files > defaults.

    Raises:
        RuntimeError: If configuration is invalid.
    """
    overrides = config_overrides or {}
    try:
        load_dotenv()
        config_files = discover_config_files()
        unified = build_config(load_hierarchical_config())
        config = load_config(
            api_key=overrides.get("api_key"),
            data_dir=overrides.get("data_dir"),
            debug=overrides.get("debug", False),
            unified=unified,
        )
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        raise RuntimeError(f"Configuration error: {e}") from e

    sources = [f"config file: {p}" for p in config_files[:1]]
    if any(k != "log_file" for k in overrides):
        sources.append("CLI arguments")
    sources.append("environment variables")
    logger.info("Configuration loaded from: %s", ", ".join(sources))
    logger.info(
        "Data dir: %s; databases: %s",
        config.data_dir,
        ", ".join(t.value for t in config.databases),
    )
    return config


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Logging goes to a file only, never stdout, since stdout carries the
    JSON-RPC stream.

    Args:
        config_overrides: Optional dict with config values to override
            (api_key, data_dir, debug, log_file)
    """
    log_file = (
        config_overrides.get("log_file") if config_overrides else None
    )
    debug = bool(config_overrides.get("debug")) if config_overrides else False

    # Must run before stdio_server to keep stdout clean
    setup_logging(mode="background", debug=debug, log_file=log_file)

    logger.info("MCP server starting...")
    _stderr_print("Ariadne sync MCP server starting...")
    set_config(load_server_config(config_overrides))

    try:
        async with mcp.server.stdio.stdio_server() as (
            read_stream,
            write_stream,
        ):
            init_options = InitializationOptions(
                server_name="ariadne-sync",
                server_version=__version__,
                capabilities=server.get_capabilities(
                    notification_options=NotificationOptions(),
                    experimental_capabilities={},
                ),
            )
            await server.run(read_stream, write_stream, init_options)
    finally:
        set_config(None)
        logger.info("MCP server stopped")


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Ariadne sync MCP server - tracker <-> Notion sync for AI agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .ariadne/config.yml)
  ariadne-sync-mcp

  # Use another tracker data directory
  ariadne-sync-mcp --data-dir ~/tracker/data

  # Custom log file location
  ariadne-sync-mcp --log-file /var/log/ariadne-sync-mcp.log

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr. Do not pipe stdin/stdout manually.
        """,
    )

    parser.add_argument(
        "--api-key",
        help="Override the Notion API key (takes precedence over NOTION_API_KEY env var and config files)"
        " (visible in process list -- prefer NOTION_API_KEY env var for security)",
    )
    parser.add_argument(
        "--data-dir",
        help="Override the tracker data directory",
    )
    parser.add_argument(
        "--log-file",
        default="/tmp/ariadne-sync-mcp.log",
        help="Log file path (default: /tmp/ariadne-sync-mcp.log)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"ariadne-sync-mcp version {__version__}",
    )

    args = parser.parse_args()

    config_overrides: dict = {"log_file": args.log_file}
    if args.api_key:
        config_overrides["api_key"] = args.api_key
    if args.data_dir:
        config_overrides["data_dir"] = args.data_dir
    if args.debug:
        config_overrides["debug"] = True

    try:
        asyncio.run(main(config_overrides))
    except RuntimeError as e:
        print(f"Server failed to start: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nServer stopped by user", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
