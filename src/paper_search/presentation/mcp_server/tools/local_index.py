"""
Local Index Tools - curate and search this node's own paper collection.

Tools:
- search_local: Lexical (BM25), vector or hybrid (RRF) search
- search_similar: Papers closest to an arbitrary piece of text
- index_paper: Fetch a paper from the providers and add it
- index_from_query: Federated search, then add every result
- delete_paper: Remove a paper from the index
- index_stats: Size, embedder and providers
"""

from __future__ import annotations

import logging

from mcp.server.fastmcp import FastMCP

from paper_search.application.search import PaperSearchService

from ._common import InputNormalizer, ResponseFormatter, handle_tool_error

logger = logging.getLogger(__name__)


def register_local_index_tools(mcp: FastMCP, service: PaperSearchService) -> None:
    """Register local index tools."""

    @mcp.tool()
    async def search_local(query: str, mode: str = "hybrid", limit: int = 10) -> str:
        """
        Search the local index.

        Modes:
            lexical: BM25 over title, abstract and authors. Supports
                "quoted phrases", AND/OR/NOT, +required/-excluded terms,
                field:value (title, abstract, authors, year, id) and
                year:[2015 TO 2020].
            vector: nearest embeddings of the query text
            hybrid: both, fused with Reciprocal Rank Fusion (default)

        Args:
            query: Query text
            mode: "lexical", "vector" or "hybrid"
            limit: Maximum papers (1-100, default 10)

        Returns:
            JSON with count and results.
        """
        try:
            papers = await service.search_local(query, mode=mode, limit=limit)
            return ResponseFormatter.papers(papers, query=query, mode=mode.lower())
        except Exception as e:
            return handle_tool_error(e, "search_local")

    @mcp.tool()
    async def search_similar(text: str, limit: int = 10) -> str:
        """
        Find indexed papers similar to a piece of text (e.g. an abstract).

        Args:
            text: Text to compare against
            limit: Maximum papers (1-100, default 10)
        """
        try:
            papers = await service.search_similar(text, limit=limit)
            return ResponseFormatter.papers(papers)
        except Exception as e:
            return handle_tool_error(e, "search_similar")

    @mcp.tool()
    async def index_paper(paper_id: str, source: str | None = None) -> str:
        """
        Fetch a paper from the providers and add it to the local index.

        Re-indexing an id replaces the stored record.

        Args:
            paper_id: Paper identifier, e.g. "arxiv:2301.00001"
            source: Optional provider name
        """
        normalized = InputNormalizer.normalize_id(paper_id)
        if not normalized:
            return ResponseFormatter.error(
                "paper_id is required",
                tool_name="index_paper",
                example='index_paper(paper_id="arxiv:2301.00001")',
            )
        try:
            paper = await service.index_paper(normalized, InputNormalizer.normalize_optional(source))
            return ResponseFormatter.json({"indexed": paper.id, "title": paper.title})
        except Exception as e:
            return handle_tool_error(e, "index_paper", suggestion="Check the id or pass source explicitly")

    @mcp.tool()
    async def index_from_query(query: str, source: str | None = None, max_results: int = 10) -> str:
        """
        Search the providers and add every result to the local index.

        Args:
            query: Free-text search query
            source: Optional single provider to search
            max_results: Papers to fetch (1-50, default 10)
        """
        try:
            indexed, found = await service.index_from_query(
                query,
                source=InputNormalizer.normalize_optional(source),
                max_results=max_results,
            )
            return ResponseFormatter.json({"query": query, "found": found, "indexed": indexed})
        except Exception as e:
            return handle_tool_error(e, "index_from_query")

    @mcp.tool()
    async def delete_paper(paper_id: str) -> str:
        """Remove a paper from the local index (no-op if absent)."""
        normalized = InputNormalizer.normalize_id(paper_id)
        if not normalized:
            return ResponseFormatter.error("paper_id is required", tool_name="delete_paper")
        try:
            await service.delete_paper(normalized)
            return ResponseFormatter.json({"deleted": normalized})
        except Exception as e:
            return handle_tool_error(e, "delete_paper")

    @mcp.tool()
    async def index_stats() -> str:
        """Local index statistics: indexed papers, embedder, data directory, sources."""
        try:
            return ResponseFormatter.json(await service.stats())
        except Exception as e:
            return handle_tool_error(e, "index_stats")
