"""
Search use cases.

Key Components:
- FederatedSearcher: concurrent multi-provider search with dedup and ranking
- PaperSearchService: entry points over the local index and the providers

Architecture:
    Query
      │
      ├──────────────► LocalIndex (BM25 + vectors, RRF) ──┐
      │                                                   │
      └─► FederatedSearcher                               │
            │                                             │
       ┌────┴─────┬──────────┐                            │
       ▼          ▼          ▼                            │
     source A  source B  peer node   ← concurrent         │
       └────┬─────┴──────────┘                            │
            ▼                                             ▼
      dedup + rank ─────────────────────────────► PaperRecord[]
"""

from __future__ import annotations

from .federated import (
    FederatedSearcher,
    SearchStats,
    deduplicate,
    deduplicate_and_rank,
    infer_source,
    normalize_title,
    per_source_quota,
    rank,
)
from .service import PaperSearchService, clamp_limit

__all__ = [
    "FederatedSearcher",
    "PaperSearchService",
    "SearchStats",
    "clamp_limit",
    "deduplicate",
    "deduplicate_and_rank",
    "infer_source",
    "normalize_title",
    "per_source_quota",
    "rank",
]
