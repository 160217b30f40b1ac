"""
Paper Search - federated scholarly paper search with a local hybrid index.

Usage:
    from paper_search.container import build_container
    from paper_search.shared.settings import Settings

    service = build_container(Settings.from_env()).search_service()
    papers = await service.search_papers("holographic entanglement", max_results=10)
    await service.index_record(papers[0])
    local = await service.search_local("entanglement", mode="hybrid")

Features:
    - Concurrent multi-provider search with DOI / title deduplication
    - Ranking by citation count, then year
    - Local BM25 lexical index with a boolean query syntax
    - Local LanceDB vector store (Euclidean nearest neighbours)
    - Reciprocal Rank Fusion of lexical and vector results
    - MCP server and peer HTTP API
"""

from .domain.entities import EMBEDDING_DIMENSION, PaperRecord, ScoredResult, SearchMode

__version__ = "0.1.0"

__all__ = [
    "EMBEDDING_DIMENSION",
    "PaperRecord",
    "ScoredResult",
    "SearchMode",
    "__version__",
]
