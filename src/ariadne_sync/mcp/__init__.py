"""MCP stdio server exposing the tracker sync to AI agents."""
