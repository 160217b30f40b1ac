"""
Paper Search MCP Server

Model Context Protocol server for federated scholarly paper search and a
local hybrid (BM25 + vector) paper index.

Usage as standalone server:
    python -m paper_search.presentation.mcp_server [--http-api-port 8765]

Or in mcp.json:
    {
        "servers": {
            "paper-search": {
                "type": "stdio",
                "command": "python",
                "args": ["-m", "paper_search.presentation.mcp_server"]
            }
        }
    }

Usage for integration:
    from paper_search.presentation.mcp_server import create_server

    server = create_server()
    server.run()
"""

from __future__ import annotations

from .server import create_server, get_container, main
from .tools import register_all_tools

__all__ = ["create_server", "get_container", "main", "register_all_tools"]
