"""
Tool Registry - central place for MCP tool registration.

Usage:
    from .tool_registry import register_all_mcp_tools, list_registered_tools

    stats = register_all_mcp_tools(mcp, service)
    tools = list_registered_tools()
"""

from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from paper_search.application.search import PaperSearchService

logger = logging.getLogger(__name__)


TOOL_CATEGORIES: dict[str, dict[str, Any]] = {
    "federated": {
        "name": "Federated search",
        "description": "Concurrent search across providers, deduplicated and ranked",
        "tools": ["list_sources", "search_papers"],
    },
    "discovery": {
        "name": "Paper discovery",
        "description": "Single records and citation relations",
        "tools": ["get_paper", "get_citations", "get_references"],
    },
    "local_index": {
        "name": "Local index",
        "description": "Lexical, vector and hybrid search over curated papers",
        "tools": [
            "search_local",
            "search_similar",
            "index_paper",
            "index_from_query",
            "delete_paper",
            "index_stats",
        ],
    },
}


def register_all_mcp_tools(mcp: FastMCP, service: PaperSearchService) -> dict[str, int]:
    """
    Register all MCP tools.

    Returns:
        Dict with category names and tool counts
    """
    from .tools import register_local_index_tools, register_search_tools

    stats: dict[str, int] = {}

    logger.info("Registering federated search tools...")
    register_search_tools(mcp, service)
    stats["federated"] = len(TOOL_CATEGORIES["federated"]["tools"])
    stats["discovery"] = len(TOOL_CATEGORIES["discovery"]["tools"])

    logger.info("Registering local index tools...")
    register_local_index_tools(mcp, service)
    stats["local_index"] = len(TOOL_CATEGORIES["local_index"]["tools"])

    logger.info(f"Total registered: {sum(stats.values())} tools")
    return stats


def list_registered_tools() -> dict[str, list[str]]:
    """All defined tools grouped by category."""
    return {cat_id: cat_info["tools"] for cat_id, cat_info in TOOL_CATEGORIES.items()}
