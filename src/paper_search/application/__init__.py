"""
Application Layer - Use Cases

Contains:
- search: Federated search and the paper search service
"""

from .search import FederatedSearcher, PaperSearchService

__all__ = [
    "FederatedSearcher",
    "PaperSearchService",
]
