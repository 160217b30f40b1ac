"""Outer surfaces: MCP server."""
