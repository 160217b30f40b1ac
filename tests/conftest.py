"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from paper_search.domain.entities import PaperRecord
from paper_search.infrastructure.embedding import MockEmbedder
from paper_search.infrastructure.sources import PaperSource

# Small vectors keep LanceDB tests fast; production uses 768
TEST_DIMENSION = 16


# ============================================================
# Environment Fixtures
# ============================================================


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def embedder():
    return MockEmbedder(dimension=TEST_DIMENSION)


# ============================================================
# Paper factories
# ============================================================


def make_paper(id: str, title: str = "", **kwargs) -> PaperRecord:
    """PaperRecord with sensible defaults for the required fields."""
    source = kwargs.pop("source", id.split(":", 1)[0] if ":" in id else "test")
    url = kwargs.pop("url", f"https://example.org/{id}")
    return PaperRecord(id=id, title=title or f"Paper {id}", source=source, url=url, **kwargs)


@pytest.fixture
def holographic_paper():
    return make_paper(
        "arxiv:hep-th/0603001",
        "Holographic Derivation of Entanglement Entropy from AdS/CFT",
        authors=["Shinsei Ryu", "Tadashi Takayanagi"],
        abstract_text="We propose a holographic formula for the entanglement entropy "
                      "of conformal field theories using minimal surfaces in AdS.",
        year=2006,
        doi="10.1103/PhysRevLett.96.181602",
        citation_count=4200,
    )


@pytest.fixture
def quantum_paper():
    return make_paper(
        "arxiv:quant-ph/9512032",
        "Quantum Error Correction for Beginners",
        authors=["Simon Devitt", "William Munro", "Kae Nemoto"],
        abstract_text="Quantum error correction protects quantum information from "
                      "decoherence and faulty gates.",
        year=2009,
        citation_count=900,
    )


@pytest.fixture
def sample_papers(holographic_paper, quantum_paper):
    return [
        holographic_paper,
        quantum_paper,
        make_paper(
            "arxiv:1234.5678",
            "Black Hole Thermodynamics and Information Loss",
            authors=["Jane Doe"],
            abstract_text="Hawking radiation and the information paradox in black hole physics.",
            year=2015,
            citation_count=50,
        ),
    ]


# ============================================================
# Fake providers
# ============================================================


class FakeSource(PaperSource):
    """In-memory provider recording every call."""

    def __init__(
        self,
        name: str,
        papers: list[PaperRecord] | None = None,
        error: Exception | None = None,
        citations: list[PaperRecord] | None = None,
        references: list[PaperRecord] | None = None,
    ) -> None:
        self._name = name
        self.papers = list(papers or [])
        self.error = error
        self.citations = list(citations or [])
        self.references = list(references or [])
        self.search_calls: list[tuple[str, int]] = []
        self.get_calls: list[str] = []
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    async def search(self, query: str, max_results: int) -> list[PaperRecord]:
        self.search_calls.append((query, max_results))
        if self.error is not None:
            raise self.error
        return self.papers[:max_results]

    async def get_paper(self, id: str) -> PaperRecord | None:
        self.get_calls.append(id)
        if self.error is not None:
            raise self.error
        return next((paper for paper in self.papers if paper.id == id), None)

    async def get_citations(self, id: str) -> list[PaperRecord]:
        if self.error is not None:
            raise self.error
        return self.citations

    async def get_references(self, id: str) -> list[PaperRecord]:
        if self.error is not None:
            raise self.error
        return self.references

    async def close(self) -> None:
        self.closed = True
