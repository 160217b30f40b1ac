"""
HTTP API Server for node-to-node (peer) communication.

Runs alongside the MCP server and exposes this node's local index so other
paper-search nodes can register it as a provider (``PAPER_SEARCH_PEERS``).

Endpoints:
    GET /health
    GET /api/papers/search?q=&max_results=&mode=
    GET /api/papers/{paper_id}
    GET /api/papers/{paper_id}/citations
    GET /api/papers/{paper_id}/references
"""

from __future__ import annotations

import logging
from typing import Any, NoReturn

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from paper_search import __version__
from paper_search.application.search import PaperSearchService
from paper_search.domain.entities import PaperRecord
from paper_search.shared.exceptions import (
    APIError,
    PaperSearchError,
    QueryParseError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 8765


# Pydantic models for API responses
class PaperResponse(BaseModel):
    """Single paper."""
    paper: dict[str, Any]


class SearchResponse(BaseModel):
    """List of papers (search results or citation relations)."""
    results: list[dict[str, Any]] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error response model."""
    detail: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    indexed_papers: int


def _status_for(error: PaperSearchError) -> int:
    if isinstance(error, (ValidationError, QueryParseError)):
        return 400
    if isinstance(error, APIError):
        return 502
    return 500


def _raise_http(error: PaperSearchError, operation: str) -> NoReturn:
    status = _status_for(error)
    if status >= 500:
        logger.error(f"{operation} failed: {error}")
    raise HTTPException(status_code=status, detail=str(error)) from error


def _records(papers: list[PaperRecord]) -> SearchResponse:
    return SearchResponse(results=[paper.to_dict() for paper in papers])


def create_api_server(service: PaperSearchService) -> FastAPI:
    """
    Create the FastAPI server for peer access to ``service``.

    Args:
        service: Search service whose local index is exposed

    Returns:
        Configured FastAPI instance.
    """
    app = FastAPI(
        title="Paper Search API",
        description="HTTP API for node-to-node communication. "
                    "Exposes the local paper index to peer nodes.",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        try:
            count = await service.count()
        except PaperSearchError as e:
            logger.warning(f"Health check could not count papers: {e}")
            return HealthResponse(status="degraded", version=__version__, indexed_papers=0)
        return HealthResponse(status="healthy", version=__version__, indexed_papers=count)

    @app.get(
        "/api/papers/search",
        response_model=SearchResponse,
        responses={400: {"model": ErrorResponse, "description": "Invalid query or mode"}},
    )
    async def search_papers(
        q: str = Query(..., description="Query text"),
        max_results: int = Query(default=10, ge=1, description="Maximum papers"),
        mode: str = Query(default="hybrid", description="lexical, vector or hybrid"),
    ) -> SearchResponse:
        """Search this node's local index."""
        try:
            papers = await service.search_local(q, mode=mode, limit=max_results)
        except PaperSearchError as e:
            _raise_http(e, "search")
        return _records(papers)

    # Relation routes come before the catch-all paper route: ids may contain "/"
    @app.get("/api/papers/{paper_id:path}/citations", response_model=SearchResponse)
    async def get_citations(paper_id: str) -> SearchResponse:
        """Papers citing ``paper_id``."""
        try:
            papers = await service.get_citations(paper_id)
        except PaperSearchError as e:
            _raise_http(e, "citations")
        return _records(papers)

    @app.get("/api/papers/{paper_id:path}/references", response_model=SearchResponse)
    async def get_references(paper_id: str) -> SearchResponse:
        """Papers cited by ``paper_id``."""
        try:
            papers = await service.get_references(paper_id)
        except PaperSearchError as e:
            _raise_http(e, "references")
        return _records(papers)

    @app.get(
        "/api/papers/{paper_id:path}",
        response_model=PaperResponse,
        responses={404: {"model": ErrorResponse, "description": "Paper not in local index"}},
    )
    async def get_paper(paper_id: str) -> PaperResponse:
        """Paper from this node's local index."""
        try:
            paper = await service.local_index.get_paper(paper_id)
        except PaperSearchError as e:
            _raise_http(e, "get_paper")
        if paper is None:
            raise HTTPException(status_code=404, detail=f"Paper {paper_id} not found")
        return PaperResponse(paper=paper.to_dict())

    return app


def run_api_server(
    service: PaperSearchService,
    host: str = DEFAULT_API_HOST,
    port: int = DEFAULT_API_PORT,
) -> None:
    """
    Run the HTTP API server (blocking).

    Args:
        service: Search service to expose
        host: Host to bind to (default: 127.0.0.1 for local only)
        port: Port to bind to (default: 8765)
    """
    import uvicorn

    logger.info(f"Starting HTTP API server on {host}:{port}")
    uvicorn.run(create_api_server(service), host=host, port=port, log_level="info")
