"""
Reciprocal Rank Fusion over the lexical and vector stores.

RRF formula:
    RRF(d) = Σ_r 1/(k + rank_r(d) + 1)

where ``rank_r(d)`` is the 0-based position of d in ranked list r and
k = 60 (Cormack et al., 2009). Ranks are all that is fused; raw BM25 scores
and vector distances are carried along for diagnostics only.

Each store is asked for ``3 × limit`` candidates so that items ranked
moderately by both lists can still surface in the fused top ``limit``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from paper_search.domain.entities import ScoredResult, SearchMode
from paper_search.shared.exceptions import InvalidParameterError

from .query_parser import parse_query

if TYPE_CHECKING:
    from .lexical import LexicalIndex
    from .vector_store import VectorStore

logger = logging.getLogger(__name__)

RRF_K = 60  # Standard RRF constant
CANDIDATE_MULTIPLIER = 3


def rrf_contribution(rank: int, k: int = RRF_K) -> float:
    """Contribution of a 0-based ``rank`` in one ranked list."""
    return 1.0 / (k + rank + 1)


def fuse(
    lexical_hits: Sequence[tuple[str, float]],
    vector_hits: Sequence[tuple[str, float]],
    limit: int,
    k: int = RRF_K,
) -> list[ScoredResult]:
    """
    Merge two ranked lists by summed reciprocal rank.

    Args:
        lexical_hits: ``(id, bm25_score)`` best first
        vector_hits: ``(id, distance)`` best first
        limit: Maximum number of fused results

    Returns:
        ScoredResults by descending fused score; ties keep first-seen order.
    """
    scores: dict[str, float] = {}
    lexical_scores: dict[str, float] = {}
    distances: dict[str, float] = {}

    for rank, (doc_id, score) in enumerate(lexical_hits):
        scores[doc_id] = scores.get(doc_id, 0.0) + rrf_contribution(rank, k)
        lexical_scores.setdefault(doc_id, score)

    for rank, (doc_id, distance) in enumerate(vector_hits):
        scores[doc_id] = scores.get(doc_id, 0.0) + rrf_contribution(rank, k)
        distances.setdefault(doc_id, distance)

    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    return [
        ScoredResult(
            id=doc_id,
            rrf_score=score,
            lexical_score=lexical_scores.get(doc_id),
            vector_distance=distances.get(doc_id),
        )
        for doc_id, score in ranked[:max(limit, 0)]
    ]


async def hybrid_search(
    lexical: LexicalIndex,
    vectors: VectorStore,
    mode: SearchMode,
    limit: int,
    query_text: str | None = None,
    embedding: Sequence[float] | None = None,
) -> list[ScoredResult]:
    """
    Run the store(s) selected by ``mode`` and fuse their rankings.

    Lexical-only and vector-only modes still go through RRF, so every mode
    reports scores on the same scale.

    Raises:
        InvalidParameterError: when the mode needs a query text or an
            embedding that was not supplied.
        QueryParseError: for malformed lexical queries.
        DimensionMismatchError: for a query embedding of the wrong width.
    """
    if limit <= 0:
        return []

    needs_text = mode in (SearchMode.LEXICAL, SearchMode.HYBRID)
    needs_vector = mode in (SearchMode.VECTOR, SearchMode.HYBRID)
    if needs_text and not (query_text and query_text.strip()):
        raise InvalidParameterError("query_text", query_text, f"non-empty text for {mode.value} search")
    if needs_vector and embedding is None:
        raise InvalidParameterError("embedding", None, f"a query embedding for {mode.value} search")

    # Validate both inputs before dispatching either search
    if needs_text:
        parse_query(query_text)
    if needs_vector:
        vectors.check_dimension(embedding)

    fetch_limit = limit * CANDIDATE_MULTIPLIER
    lexical_hits: list[tuple[str, float]] = []
    vector_hits: list[tuple[str, float]] = []

    if mode is SearchMode.HYBRID:
        lexical_hits, vector_hits = await asyncio.gather(
            asyncio.to_thread(lexical.search, query_text, fetch_limit),
            vectors.search_similar(embedding, fetch_limit),
        )
    elif mode is SearchMode.LEXICAL:
        lexical_hits = await asyncio.to_thread(lexical.search, query_text, fetch_limit)
    else:
        vector_hits = await vectors.search_similar(embedding, fetch_limit)

    logger.debug(
        f"{mode.value} search: {len(lexical_hits)} lexical / {len(vector_hits)} vector candidates"
    )
    return fuse(lexical_hits, vector_hits, limit)
