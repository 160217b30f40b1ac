"""
Federated Search Tools - query every enabled provider at once.

Tools:
- list_sources: Which providers are enabled, and why others are not
- search_papers: Concurrent search, deduplicated and ranked by citations
- get_paper: One record (local index first, then providers)
- get_citations: Papers citing a given paper (forward in time)
- get_references: Papers a given paper cites (backward in time)
"""

from __future__ import annotations

import logging

from mcp.server.fastmcp import FastMCP

from paper_search.application.search import PaperSearchService

from ._common import InputNormalizer, ResponseFormatter, handle_tool_error

logger = logging.getLogger(__name__)


def register_search_tools(mcp: FastMCP, service: PaperSearchService) -> None:
    """Register federated search tools."""

    @mcp.tool()
    async def list_sources() -> str:
        """
        List paper sources with their status.

        Returns:
            JSON with one entry per source: name, enabled, note.
        """
        try:
            statuses = service.source_status()
            return ResponseFormatter.json({"sources": [status.to_dict() for status in statuses]})
        except Exception as e:
            return handle_tool_error(e, "list_sources")

    @mcp.tool()
    async def search_papers(
        query: str,
        sources: str | list[str] | None = None,
        max_results: int = 10,
    ) -> str:
        """
        Search all enabled paper sources concurrently.

        Results from every source are merged, duplicates (same DOI, or nearly
        identical titles) collapsed to the record with the richest metadata,
        then ranked by citation count and year.

        Args:
            query: Free-text search query, e.g. "holographic entanglement entropy"
            sources: Optional source names to restrict to, as a list or a
                comma-separated string ("arxiv,inspire"). Default: all.
            max_results: Maximum papers to return (1-100, default 10)

        Returns:
            JSON with count and results.
        """
        logger.info(f"search_papers: {query!r} sources={sources}")
        try:
            papers = await service.search_papers(
                query,
                sources=InputNormalizer.normalize_sources(sources),
                max_results=max_results,
            )
            return ResponseFormatter.papers(papers, query=query)
        except Exception as e:
            return handle_tool_error(e, "search_papers", suggestion="Try a broader query or fewer source filters")

    @mcp.tool()
    async def get_paper(paper_id: str, source: str | None = None) -> str:
        """
        Fetch one paper by id.

        The local index is checked first. Otherwise the id prefix selects the
        provider ("arxiv:2301.00001", "doi:10.1000/xyz", "s2:...", "pmid:...")
        unless ``source`` names one explicitly.

        Args:
            paper_id: Paper identifier
            source: Optional provider name

        Returns:
            JSON {"paper": {...}}, or a not-found message.
        """
        normalized = InputNormalizer.normalize_id(paper_id)
        if not normalized:
            return ResponseFormatter.error(
                "paper_id is required",
                tool_name="get_paper",
                example='get_paper(paper_id="arxiv:2301.00001")',
            )
        try:
            paper = await service.get_paper(normalized, InputNormalizer.normalize_optional(source))
            if paper is None:
                return ResponseFormatter.json({"paper": None, "message": f"Paper {normalized} not found"})
            return ResponseFormatter.json({"paper": paper.to_dict()})
        except Exception as e:
            return handle_tool_error(e, "get_paper")

    @mcp.tool()
    async def get_citations(paper_id: str, source: str | None = None) -> str:
        """
        Papers that cite ``paper_id`` (forward citation search).

        Args:
            paper_id: Paper identifier
            source: Optional provider name to ask; default asks each in turn

        Returns:
            JSON with count and results.
        """
        normalized = InputNormalizer.normalize_id(paper_id)
        if not normalized:
            return ResponseFormatter.error("paper_id is required", tool_name="get_citations")
        try:
            papers = await service.get_citations(normalized, InputNormalizer.normalize_optional(source))
            return ResponseFormatter.papers(papers, paper_id=normalized)
        except Exception as e:
            return handle_tool_error(e, "get_citations")

    @mcp.tool()
    async def get_references(paper_id: str, source: str | None = None) -> str:
        """
        Papers cited by ``paper_id`` (its bibliography).

        Args:
            paper_id: Paper identifier
            source: Optional provider name to ask; default asks each in turn

        Returns:
            JSON with count and results.
        """
        normalized = InputNormalizer.normalize_id(paper_id)
        if not normalized:
            return ResponseFormatter.error("paper_id is required", tool_name="get_references")
        try:
            papers = await service.get_references(normalized, InputNormalizer.normalize_optional(source))
            return ResponseFormatter.papers(papers, paper_id=normalized)
        except Exception as e:
            return handle_tool_error(e, "get_references")
