"""
Provider capability shared by every paper source.

Concrete adapters for external databases implement this interface; the
federated pipeline only relies on ``name`` and the four lookups. Adapters
raise ``APIError`` subclasses for transport and provider failures, return
``None`` for unknown ids and ``[]`` for empty result sets.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from typing_extensions import Self

from paper_search.domain.entities import PaperRecord


class PaperSource(ABC):
    """One bibliographic database the federated pipeline can query."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable lowercase provider name, e.g. ``arxiv``."""

    @abstractmethod
    async def search(self, query: str, max_results: int) -> list[PaperRecord]:
        """Up to ``max_results`` records matching ``query``."""

    @abstractmethod
    async def get_paper(self, id: str) -> PaperRecord | None:
        """Single record by provider id, or None if unknown."""

    async def get_citations(self, id: str) -> list[PaperRecord]:
        """Records citing ``id``. Providers without citation data return []."""
        return []

    async def get_references(self, id: str) -> list[PaperRecord]:
        """Records cited by ``id``. Providers without reference data return []."""
        return []

    async def close(self) -> None:
        """Release network resources."""

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
