"""
Domain Entities

Core business objects for scholarly paper retrieval.
"""

from __future__ import annotations

from .paper import EMBEDDING_DIMENSION, PaperRecord, ScoredResult, SearchMode

__all__ = [
    "EMBEDDING_DIMENSION",
    "PaperRecord",
    "ScoredResult",
    "SearchMode",
]
