"""
PaperRecord - Canonical bibliographic record shared by every component.

Provider adapters, the local index and the federated pipeline all exchange
this one shape. ``source`` names the provider a record came from and ``id``
is unique within that provider's namespace (conventionally prefixed, e.g.
``arxiv:2301.01234`` or ``doi:10.1000/xyz``).

Example:
    >>> paper = PaperRecord(
    ...     id="arxiv:2301.01234",
    ...     title="Holographic Entanglement Entropy",
    ...     authors=["Ryu", "Takayanagi"],
    ...     source="arxiv",
    ...     url="https://arxiv.org/abs/2301.01234",
    ...     year=2006,
    ... )
    >>> paper.metadata_richness
    3
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from paper_search.shared.exceptions import InvalidParameterError

# Store-wide embedding length (SPECTER2 base model output size)
EMBEDDING_DIMENSION = 768


@dataclass(frozen=True)
class PaperRecord:
    """One bibliographic record. Immutable and hashable; authors are kept as a tuple."""

    id: str
    title: str
    source: str
    url: str
    authors: tuple[str, ...] = ()
    abstract_text: str | None = None
    year: int | None = None
    doi: str | None = None
    external_id: str | None = None
    pdf_url: str | None = None
    citation_count: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.authors, tuple):
            object.__setattr__(self, "authors", tuple(self.authors))

    @property
    def metadata_richness(self) -> int:
        """
        Completeness score used to pick the survivor among duplicates.

        Weights: title 1, authors 1, abstract 2, year 1, DOI 2,
        citation count 1, PDF link 1.
        """
        score = 0
        if self.title:
            score += 1
        if self.authors:
            score += 1
        if self.abstract_text is not None:
            score += 2
        if self.year is not None:
            score += 1
        if self.doi is not None:
            score += 2
        if self.citation_count is not None:
            score += 1
        if self.pdf_url is not None:
            score += 1
        return score

    def embedding_text(self) -> str:
        """Text handed to the embedder at ingestion time."""
        if self.abstract_text:
            return f"{self.title} {self.abstract_text}"
        return self.title

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "authors": list(self.authors),
            "abstract_text": self.abstract_text,
            "year": self.year,
            "source": self.source,
            "doi": self.doi,
            "external_id": self.external_id,
            "url": self.url,
            "pdf_url": self.pdf_url,
            "citation_count": self.citation_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PaperRecord:
        """Build a record from its JSON form; optional keys may be absent."""
        year = data.get("year")
        citations = data.get("citation_count")
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            source=data.get("source") or "",
            url=data.get("url") or "",
            authors=tuple(str(a) for a in data.get("authors") or ()),
            abstract_text=data.get("abstract_text"),
            year=int(year) if year is not None else None,
            doi=data.get("doi"),
            external_id=data.get("external_id", data.get("arxiv_id")),
            pdf_url=data.get("pdf_url"),
            citation_count=int(citations) if citations is not None else None,
        )


@dataclass(frozen=True)
class ScoredResult:
    """Fused ranking entry: an id plus the raw signals that produced it."""

    id: str
    rrf_score: float
    lexical_score: float | None = None
    vector_distance: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "rrf_score": self.rrf_score,
            "lexical_score": self.lexical_score,
            "vector_distance": self.vector_distance,
        }


class SearchMode(Enum):
    """Which local store(s) a search consults."""
    LEXICAL = "lexical"
    VECTOR = "vector"
    HYBRID = "hybrid"

    @classmethod
    def parse(cls, value: str | SearchMode) -> SearchMode:
        """Parse a mode name; ``keyword`` is accepted as an alias of lexical."""
        if isinstance(value, SearchMode):
            return value
        normalized = (value or "").strip().lower()
        if normalized == "keyword":
            return cls.LEXICAL
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidParameterError(
                "mode", value, "one of 'hybrid', 'lexical' (or 'keyword'), 'vector'"
            ) from None
