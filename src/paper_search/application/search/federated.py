"""
Federated Search - concurrent multi-provider search with dedup and ranking.

Pipeline:
    query ──► select providers (case-insensitive name filter)
          ──► one concurrent task per provider, each asked for
              max(5, 2 × max_results // provider_count) records
          ──► concatenate (failed or timed-out providers contribute nothing)
          ──► deduplicate: richest record first; same DOI (case-insensitive)
              or, without DOI, normalized-title edit distance < 5
          ──► rank: citation count desc, then year desc (missing = 0)
          ──► truncate to max_results

Example:
    >>> searcher = FederatedSearcher([arxiv, crossref], provider_timeout=20)
    >>> papers = await searcher.search("holographic entanglement", max_results=10)
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from paper_search.domain.entities import PaperRecord
from paper_search.infrastructure.sources import PaperSource
from paper_search.shared.async_utils import gather_with_errors

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

MIN_PER_SOURCE = 5
TITLE_DISTANCE_THRESHOLD = 5  # normalized titles closer than this are duplicates

# Id prefix → provider that owns the namespace
SOURCE_PREFIXES: dict[str, str] = {
    "arxiv:": "arxiv",
    "inspire:": "inspire",
    "s2:": "semantic_scholar",
    "ads:": "ads",
    "doi:": "crossref",
    "pmid:": "europepmc",
    "doaj:": "doaj",
    "vixra:": "vixra",
    "openalex:": "openalex",
}


@dataclass
class SearchStats:
    """Statistics from one federated search."""

    query: str = ""
    sources_queried: list[str] = field(default_factory=list)
    per_source_quota: int = 0
    by_source: dict[str, int] = field(default_factory=dict)
    failed_sources: dict[str, str] = field(default_factory=dict)
    total_input: int = 0
    unique_papers: int = 0
    returned: int = 0

    @property
    def duplicates_removed(self) -> int:
        return self.total_input - self.unique_papers

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "query": self.query,
            "sources_queried": self.sources_queried,
            "per_source_quota": self.per_source_quota,
            "by_source": self.by_source,
            "failed_sources": self.failed_sources,
            "total_input": self.total_input,
            "unique_papers": self.unique_papers,
            "duplicates_removed": self.duplicates_removed,
            "returned": self.returned,
        }


# =============================================================================
# Deduplication and ranking
# =============================================================================

def normalize_title(title: str) -> str:
    """Lowercase, drop everything but letters, digits and whitespace, collapse spaces."""
    if not title:
        return ""
    title = re.sub(r"[^\w\s]|_", "", title.lower())
    return re.sub(r"\s+", " ", title).strip()


def _edit_distance(a: str, b: str) -> int:
    """Compute Levenshtein edit distance between two strings."""
    if len(a) > len(b):
        a, b = b, a
    distances: list[int] = list(range(len(a) + 1))
    for j, ch_b in enumerate(b):
        new_distances = [j + 1]
        for i, ch_a in enumerate(a):
            if ch_a == ch_b:
                new_distances.append(distances[i])
            else:
                new_distances.append(1 + min(distances[i], distances[i + 1], new_distances[-1]))
        distances = new_distances
    return distances[-1]


def per_source_quota(max_results: int, provider_count: int) -> int:
    """Records requested from each provider."""
    if provider_count <= 0:
        return 0
    return max(MIN_PER_SOURCE, (2 * max_results) // provider_count)


def deduplicate(papers: Sequence[PaperRecord]) -> list[PaperRecord]:
    """
    Collapse duplicates, keeping the record with the richest metadata.

    Records are visited in descending metadata richness (stable). A record
    with a DOI is dropped if that DOI was already kept; a record without one
    is dropped if its normalized title is within edit distance 4 of any
    kept record's normalized title.
    """
    ordered = sorted(papers, key=lambda p: p.metadata_richness, reverse=True)
    seen_dois: set[str] = set()
    kept: list[PaperRecord] = []
    kept_titles: list[str] = []

    for paper in ordered:
        normalized = normalize_title(paper.title)
        if paper.doi is not None:
            doi = paper.doi.lower()
            if doi in seen_dois:
                continue
            seen_dois.add(doi)
        elif any(
            _edit_distance(normalized, other) < TITLE_DISTANCE_THRESHOLD
            for other in kept_titles
        ):
            continue
        kept.append(paper)
        kept_titles.append(normalized)

    return kept


def rank(papers: Sequence[PaperRecord]) -> list[PaperRecord]:
    """Citation count descending, then year descending; missing values count as 0."""
    return sorted(
        papers,
        key=lambda p: (p.citation_count or 0, p.year or 0),
        reverse=True,
    )


def deduplicate_and_rank(papers: Sequence[PaperRecord], limit: int) -> list[PaperRecord]:
    if not papers or limit <= 0:
        return []
    return rank(deduplicate(papers))[:limit]


def infer_source(paper_id: str) -> str | None:
    """Provider owning the id's namespace prefix, if recognised."""
    lowered = paper_id.lower()
    for prefix, source in SOURCE_PREFIXES.items():
        if lowered.startswith(prefix):
            return source
    return None


# =============================================================================
# Federated searcher
# =============================================================================

class FederatedSearcher:
    """
    Fans a query out to every selected provider and merges the answers.

    A provider that raises (or exceeds ``provider_timeout``) is logged and
    skipped; the search itself only fails on cancellation.
    """

    def __init__(
        self,
        sources: Sequence[PaperSource],
        provider_timeout: float | None = None,
    ) -> None:
        self._sources = list(sources)
        self._provider_timeout = provider_timeout

    @property
    def sources(self) -> list[PaperSource]:
        return list(self._sources)

    @property
    def source_names(self) -> list[str]:
        return [source.name for source in self._sources]

    def _select(self, source_filter: Sequence[str] | None) -> list[PaperSource]:
        if source_filter is None:
            return list(self._sources)
        wanted = {name.lower() for name in source_filter}
        return [source for source in self._sources if source.name.lower() in wanted]

    async def _call(self, source: PaperSource, coro: Awaitable[Any]) -> Any:
        if self._provider_timeout is None:
            return await coro
        try:
            return await asyncio.wait_for(coro, timeout=self._provider_timeout)
        except TimeoutError:
            msg = f"{source.name} did not answer within {self._provider_timeout:.1f}s"
            raise TimeoutError(msg) from None

    async def _search_one(self, source: PaperSource, query: str, quota: int) -> list[PaperRecord]:
        return await self._call(source, source.search(query, quota))

    async def search(
        self,
        query: str,
        max_results: int = 10,
        source_filter: Sequence[str] | None = None,
    ) -> list[PaperRecord]:
        papers, _ = await self.search_with_stats(query, max_results, source_filter)
        return papers

    async def search_with_stats(
        self,
        query: str,
        max_results: int = 10,
        source_filter: Sequence[str] | None = None,
    ) -> tuple[list[PaperRecord], SearchStats]:
        """
        Federated search returning the ranked papers and per-source statistics.

        Args:
            query: Free-text query passed unchanged to every provider
            max_results: Cap on the merged result list
            source_filter: Provider names to restrict to (case-insensitive);
                None means all providers
        """
        active = self._select(source_filter)
        stats = SearchStats(query=query, sources_queried=[s.name for s in active])
        if not active:
            logger.info(f"No sources selected for query {query!r}")
            return [], stats

        quota = per_source_quota(max_results, len(active))
        stats.per_source_quota = quota

        outcomes = await gather_with_errors(
            *(self._search_one(source, query, quota) for source in active),
            return_exceptions=True,
        )

        collected: list[PaperRecord] = []
        for source, outcome in zip(active, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(f"Source {source.name} search failed: {outcome}")
                stats.failed_sources[source.name] = str(outcome) or type(outcome).__name__
                continue
            stats.by_source[source.name] = len(outcome)
            collected.extend(outcome)

        stats.total_input = len(collected)
        unique = deduplicate(collected)
        stats.unique_papers = len(unique)
        papers = rank(unique)[:max(max_results, 0)]
        stats.returned = len(papers)

        logger.info(
            f"Federated search {query!r}: {stats.total_input} results from "
            f"{len(stats.by_source)}/{len(active)} sources, {stats.returned} returned"
        )
        return papers, stats

    async def _first_result(
        self,
        operation: str,
        paper_id: str,
        source: str | None,
        lookup: Callable[[PaperSource, str], Awaitable[Any]],
    ) -> Any:
        candidates = self._select([source]) if source else self._sources
        for candidate in candidates:
            try:
                result = await self._call(candidate, lookup(candidate, paper_id))
            except Exception as e:
                logger.warning(f"Source {candidate.name} failed for {operation}({paper_id}): {e}")
                continue
            if result:
                return result
        return None

    async def get_paper(self, paper_id: str, source: str | None = None) -> PaperRecord | None:
        """
        First provider answer for ``paper_id``.

        Without an explicit ``source`` the provider is inferred from the id
        prefix; if no provider with that name is registered all are tried.
        """
        if source is None:
            inferred = infer_source(paper_id)
            if inferred and self._select([inferred]):
                source = inferred
        return await self._first_result(
            "get_paper", paper_id, source, lambda s, i: s.get_paper(i)
        )

    async def get_citations(self, paper_id: str, source: str | None = None) -> list[PaperRecord]:
        result = await self._first_result(
            "get_citations", paper_id, source, lambda s, i: s.get_citations(i)
        )
        return result or []

    async def get_references(self, paper_id: str, source: str | None = None) -> list[PaperRecord]:
        result = await self._first_result(
            "get_references", paper_id, source, lambda s, i: s.get_references(i)
        )
        return result or []

    async def close(self) -> None:
        """Close every provider, logging (not raising) individual failures."""
        outcomes = await gather_with_errors(
            *(source.close() for source in self._sources),
            return_exceptions=True,
        )
        for source, outcome in zip(self._sources, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(f"Closing source {source.name} failed: {outcome}")
