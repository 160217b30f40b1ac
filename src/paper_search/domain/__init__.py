"""
Domain Layer - Core Business Objects

Contains:
- entities: PaperRecord, ScoredResult, SearchMode
"""

from .entities import EMBEDDING_DIMENSION, PaperRecord, ScoredResult, SearchMode

__all__ = [
    "EMBEDDING_DIMENSION",
    "PaperRecord",
    "ScoredResult",
    "SearchMode",
]
