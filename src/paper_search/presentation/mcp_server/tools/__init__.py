"""
MCP Tools - Paper search tools for the MCP server.

Tool modules:
- search: federated search and relation lookups
- local_index: local index curation and search
"""

from __future__ import annotations

from mcp.server.fastmcp import FastMCP

from paper_search.application.search import PaperSearchService

from .local_index import register_local_index_tools
from .search import register_search_tools


def register_all_tools(mcp: FastMCP, service: PaperSearchService) -> None:
    """Register all paper search tools with the MCP server."""
    register_search_tools(mcp, service)
    register_local_index_tools(mcp, service)


__all__ = [
    "register_all_tools",
    "register_local_index_tools",
    "register_search_tools",
]
