"""
Local retrieval index: BM25 lexical index, LanceDB vector store and RRF fusion.
"""

from .fusion import CANDIDATE_MULTIPLIER, RRF_K, fuse, hybrid_search, rrf_contribution
from .lexical import LexicalIndex
from .local_index import LocalIndex, ReconcileReport
from .query_parser import parse_query, tokenize
from .vector_store import VectorStore

__all__ = [
    "CANDIDATE_MULTIPLIER",
    "RRF_K",
    "LexicalIndex",
    "LocalIndex",
    "ReconcileReport",
    "VectorStore",
    "fuse",
    "hybrid_search",
    "parse_query",
    "rrf_contribution",
    "tokenize",
]
