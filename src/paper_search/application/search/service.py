"""
PaperSearchService - entry points over the local index and federated search.

Every outer surface (MCP tools, peer HTTP API) goes through this service:

    search_papers      federated search across providers
    search_local       lexical / vector / hybrid search of the local index
    search_similar     vector search by arbitrary text
    get_paper          local index first, then providers
    get_citations      first provider with a non-empty answer
    get_references     first provider with a non-empty answer
    index_paper        fetch from providers, embed, ingest
    index_record       embed and ingest a record already in hand
    index_from_query   federated search, then bulk ingest
    delete_paper       remove from both local stores
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from paper_search.domain.entities import PaperRecord, SearchMode
from paper_search.infrastructure.embedding import EmbeddingProvider
from paper_search.infrastructure.index import LocalIndex, ReconcileReport
from paper_search.shared.exceptions import (
    DimensionMismatchError,
    InvalidQueryError,
    NotFoundError,
)
from paper_search.shared.settings import Settings, SourceStatus

from .federated import FederatedSearcher

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_SEARCH_LIMIT = 100
MAX_INDEX_FROM_QUERY = 50


def clamp_limit(value: int | None, maximum: int, default: int = DEFAULT_LIMIT) -> int:
    """Clamp a caller-supplied result count into ``[1, maximum]``."""
    if value is None:
        return default
    return max(1, min(int(value), maximum))


class PaperSearchService:
    """Application facade over one local index, one embedder and the providers."""

    def __init__(
        self,
        local_index: LocalIndex,
        embedder: EmbeddingProvider,
        federated: FederatedSearcher,
        settings: Settings | None = None,
    ) -> None:
        if embedder.dimension != local_index.dimension:
            raise DimensionMismatchError(local_index.dimension, embedder.dimension)
        self._index = local_index
        self._embedder = embedder
        self._federated = federated
        self._settings = settings or Settings()

    @property
    def local_index(self) -> LocalIndex:
        return self._index

    @property
    def federated(self) -> FederatedSearcher:
        return self._federated

    async def _embed(self, text: str) -> list[float]:
        return await asyncio.to_thread(self._embedder.embed, text)

    # ------------------------------------------------------------------
    # Federated
    # ------------------------------------------------------------------

    async def search_papers(
        self,
        query: str,
        sources: Sequence[str] | None = None,
        max_results: int | None = DEFAULT_LIMIT,
    ) -> list[PaperRecord]:
        if not query or not query.strip():
            raise InvalidQueryError(query)
        limit = clamp_limit(max_results, MAX_SEARCH_LIMIT)
        return await self._federated.search(query, limit, sources or None)

    async def get_paper(self, paper_id: str, source: str | None = None) -> PaperRecord | None:
        """Local index first, then providers (id prefix picks one when ``source`` is None)."""
        paper = await self._index.get_paper(paper_id)
        if paper is not None:
            return paper
        return await self._federated.get_paper(paper_id, source)

    async def get_citations(self, paper_id: str, source: str | None = None) -> list[PaperRecord]:
        return await self._federated.get_citations(paper_id, source)

    async def get_references(self, paper_id: str, source: str | None = None) -> list[PaperRecord]:
        return await self._federated.get_references(paper_id, source)

    # ------------------------------------------------------------------
    # Local index
    # ------------------------------------------------------------------

    async def search_local(
        self,
        query: str,
        mode: SearchMode | str = SearchMode.HYBRID,
        limit: int | None = DEFAULT_LIMIT,
    ) -> list[PaperRecord]:
        """
        Search the local index and resolve full records.

        Raises:
            InvalidQueryError: for an empty query
            InvalidParameterError: for an unknown mode
            QueryParseError: for a malformed lexical query
        """
        if not query or not query.strip():
            raise InvalidQueryError(query)
        search_mode = SearchMode.parse(mode)
        embedding = None
        if search_mode is not SearchMode.LEXICAL:
            embedding = await self._embed(query)
        scored = await self._index.search(
            search_mode,
            clamp_limit(limit, MAX_SEARCH_LIMIT),
            query_text=query if search_mode is not SearchMode.VECTOR else None,
            embedding=embedding,
        )
        return await self._index.resolve(scored)

    async def search_similar(self, text: str, limit: int | None = DEFAULT_LIMIT) -> list[PaperRecord]:
        """Papers whose embeddings lie closest to the embedding of ``text``."""
        if not text or not text.strip():
            raise InvalidQueryError(text, "Text to compare cannot be empty")
        embedding = await self._embed(text)
        scored = await self._index.search(
            SearchMode.VECTOR,
            clamp_limit(limit, MAX_SEARCH_LIMIT),
            embedding=embedding,
        )
        return await self._index.resolve(scored)

    async def index_record(self, paper: PaperRecord) -> PaperRecord:
        embedding = await self._embed(paper.embedding_text())
        await self._index.index_paper(paper, embedding)
        return paper

    async def index_paper(self, paper_id: str, source: str | None = None) -> PaperRecord:
        """
        Fetch ``paper_id`` from the providers and ingest it.

        Raises:
            NotFoundError: when no provider knows the id
        """
        paper = await self._federated.get_paper(paper_id, source)
        if paper is None:
            raise NotFoundError("Paper", paper_id)
        return await self.index_record(paper)

    async def index_from_query(
        self,
        query: str,
        source: str | None = None,
        max_results: int | None = DEFAULT_LIMIT,
    ) -> tuple[int, int]:
        """Federated search then bulk ingestion. Returns ``(indexed, found)``."""
        if not query or not query.strip():
            raise InvalidQueryError(query)
        limit = clamp_limit(max_results, MAX_INDEX_FROM_QUERY)
        papers = await self._federated.search(query, limit, [source] if source else None)
        if not papers:
            return 0, 0

        embeddings = await asyncio.to_thread(
            self._embedder.embed_many, [paper.embedding_text() for paper in papers]
        )
        indexed = await self._index.index_papers(list(zip(papers, embeddings)))
        logger.info(f"index_from_query {query!r}: indexed {indexed}/{len(papers)}")
        return indexed, len(papers)

    async def delete_paper(self, paper_id: str) -> None:
        await self._index.delete(paper_id)

    async def count(self) -> int:
        return await self._index.count()

    async def reconcile(self, repair: bool = False) -> ReconcileReport:
        return await self._index.reconcile(repair=repair)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def source_status(self) -> list[SourceStatus]:
        peer_names = {peer.name for peer in self._settings.peers}
        registered = [name for name in self._federated.source_names if name not in peer_names]
        return self._settings.source_status(registered)

    async def stats(self) -> dict[str, Any]:
        return {
            "data_dir": str(self._index.data_dir),
            "indexed_papers": await self._index.count(),
            "embedding_dimension": self._index.dimension,
            "embedder": self._embedder.name,
            "sources": self._federated.source_names,
        }

    async def close(self) -> None:
        await self._federated.close()
