"""
Lexical Index - BM25 full-text search over title, abstract and authors.

Writes are staged and only become visible to searches after ``commit()``.
Each commit writes a JSON snapshot of the committed entries to
``<path>/documents.json`` (temp file + atomic rename) and swaps in a freshly
built reader, so a failed commit leaves the previous committed state intact
on disk and in memory.

BM25 formula per query term q_i:
    score(q_i, D) = IDF(q_i) × (f(q_i, D) × (k1 + 1)) / (f(q_i, D) + k1 × (1 - b + b × |D|/avgdl))

    IDF(q_i) = ln(1 + (N - n(q_i) + 0.5) / (n(q_i) + 0.5))

Example:
    index = LexicalIndex.open(data_dir / "lexical")
    index.add("arxiv:1", "Holographic entanglement", "Ryu-Takayanagi ...", ["Ryu"], 2006)
    index.commit()
    index.search("holographic", limit=10)   # [("arxiv:1", 0.98)]
"""

from __future__ import annotations

import json
import logging
import math
import os
import tempfile
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from paper_search.shared.exceptions import IndexCommitError, IndexOpenError

from .query_parser import IndexedDocument, parse_query, tokenize

logger = logging.getLogger(__name__)

# BM25 parameters
_BM25_K1 = 1.2  # Term frequency saturation
_BM25_B = 0.75  # Document length normalization

SNAPSHOT_NAME = "documents.json"
_SNAPSHOT_VERSION = 1


@dataclass(frozen=True)
class LexicalEntry:
    """Projection of a paper kept by the lexical index."""

    id: str
    title: str
    abstract_text: str
    authors: str  # "A. Author, B. Author"
    year: int | None = None

    def analyze(self) -> IndexedDocument:
        return IndexedDocument(
            id=self.id,
            year=self.year,
            fields={
                "title": tokenize(self.title),
                "abstract_text": tokenize(self.abstract_text),
                "authors": tokenize(self.authors),
            },
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "abstract_text": self.abstract_text,
            "authors": self.authors,
            "year": self.year,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LexicalEntry:
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            abstract_text=data.get("abstract_text", ""),
            authors=data.get("authors", ""),
            year=data.get("year"),
        )


@dataclass
class BM25Corpus:
    """
    Corpus statistics for BM25 scoring.

    Built once per committed snapshot.
    """

    total_docs: int = 0
    avg_doc_length: float = 0.0
    doc_freq: dict[str, int] = field(default_factory=dict)  # term → number of docs containing term

    @classmethod
    def from_documents(cls, documents: list[IndexedDocument]) -> BM25Corpus:
        corpus = cls(total_docs=len(documents))
        total_length = 0
        for doc in documents:
            total_length += doc.length
            unique_terms: set[str] = set()
            for tokens in doc.fields.values():
                unique_terms.update(tokens)
            for term in unique_terms:
                corpus.doc_freq[term] = corpus.doc_freq.get(term, 0) + 1
        corpus.avg_doc_length = total_length / max(corpus.total_docs, 1)
        return corpus

    def idf(self, term: str) -> float:
        df = self.doc_freq.get(term, 0)
        return math.log(1.0 + (self.total_docs - df + 0.5) / (df + 0.5))


def bm25_score(doc: IndexedDocument, query_terms: list[str], corpus: BM25Corpus) -> float:
    """BM25 relevance of ``doc`` for the positive terms of a parsed query."""
    if not query_terms or corpus.total_docs == 0:
        return 0.0

    tf_map: dict[str, int] = {}
    for tokens in doc.fields.values():
        for term in tokens:
            tf_map[term] = tf_map.get(term, 0) + 1

    length_norm = 1 - _BM25_B + _BM25_B * doc.length / max(corpus.avg_doc_length, 1)
    score = 0.0
    for term in dict.fromkeys(query_terms):
        tf = tf_map.get(term, 0)
        if tf == 0:
            continue
        tf_norm = (tf * (_BM25_K1 + 1)) / (tf + _BM25_K1 * length_norm)
        score += corpus.idf(term) * tf_norm
    return score


class _Reader:
    """Immutable searchable view over one committed snapshot."""

    def __init__(self, entries: dict[str, LexicalEntry]) -> None:
        self.documents = [entry.analyze() for entry in entries.values()]
        self.corpus = BM25Corpus.from_documents(self.documents)

    def search(self, query_text: str, limit: int) -> list[tuple[str, float]]:
        query = parse_query(query_text)
        if limit <= 0 or not self.documents:
            return []
        terms = query.positive_terms()
        hits = [
            (doc.id, bm25_score(doc, terms, self.corpus))
            for doc in self.documents
            if query.matches(doc)
        ]
        hits.sort(key=lambda hit: hit[1], reverse=True)
        return hits[:limit]


class LexicalIndex:
    """
    Persistent BM25 index with staged writes.

    ``add`` and ``delete`` are buffered; ``commit`` applies them atomically.
    Re-adding an id replaces its entry, so at most one committed entry exists
    per id.
    """

    def __init__(self, path: Path, entries: dict[str, LexicalEntry] | None = None) -> None:
        self._path = Path(path)
        self._committed: dict[str, LexicalEntry] = dict(entries or {})
        # id → staged entry, or None for a staged delete; insertion-ordered
        self._pending: dict[str, LexicalEntry | None] = {}
        self._lock = threading.Lock()
        self._reader = _Reader(self._committed)

    @classmethod
    def open(cls, path: Path | str) -> LexicalIndex:
        """Create the index directory if needed and load the committed snapshot."""
        path = Path(path)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"Cannot create lexical index directory {path}: {e}"
            raise IndexOpenError(msg) from e

        snapshot = path / SNAPSHOT_NAME
        entries: dict[str, LexicalEntry] = {}
        if snapshot.exists():
            try:
                payload = json.loads(snapshot.read_text(encoding="utf-8"))
                for item in payload.get("documents", []):
                    entry = LexicalEntry.from_dict(item)
                    entries[entry.id] = entry
            except (OSError, ValueError, KeyError, TypeError) as e:
                msg = f"Cannot read lexical snapshot {snapshot}: {e}"
                raise IndexOpenError(msg) from e

        logger.info(f"Opened lexical index at {path} ({len(entries)} documents)")
        return cls(path, entries)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def add(
        self,
        id: str,
        title: str,
        abstract_text: str | None,
        authors: Sequence[str],
        year: int | None,
    ) -> None:
        """Stage an entry for ``id``, replacing any existing one at commit."""
        entry = LexicalEntry(
            id=id,
            title=title or "",
            abstract_text=abstract_text or "",
            authors=", ".join(authors),
            year=year,
        )
        with self._lock:
            self._pending.pop(id, None)
            self._pending[id] = entry

    def delete(self, id: str) -> None:
        """Stage removal of ``id``; a no-op at commit if it is absent."""
        with self._lock:
            self._pending.pop(id, None)
            self._pending[id] = None

    def rollback(self) -> None:
        """Discard every staged change."""
        with self._lock:
            if self._pending:
                logger.debug(f"Discarding {len(self._pending)} staged lexical changes")
            self._pending.clear()

    def commit(self) -> None:
        """
        Make staged changes durable and visible to searches.

        Raises:
            IndexCommitError: if the snapshot cannot be written; staged
                changes are kept so the caller may retry or roll back.
        """
        with self._lock:
            updated = dict(self._committed)
            for id, entry in self._pending.items():
                if entry is None:
                    updated.pop(id, None)
                else:
                    updated[id] = entry

            self._write_snapshot(updated)
            self._committed = updated
            self._reader = _Reader(updated)
            logger.debug(f"Committed {len(self._pending)} lexical changes ({len(updated)} documents)")
            self._pending.clear()

    def _write_snapshot(self, entries: dict[str, LexicalEntry]) -> None:
        payload = {
            "version": _SNAPSHOT_VERSION,
            "documents": [entry.to_dict() for entry in entries.values()],
        }
        tmp_name: str | None = None
        try:
            self._path.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path,
                prefix=".documents-",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                json.dump(payload, handle, ensure_ascii=False)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path / SNAPSHOT_NAME)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            msg = f"Failed to commit lexical index at {self._path}: {e}"
            raise IndexCommitError(msg) from e

    def search(self, query_text: str, limit: int) -> list[tuple[str, float]]:
        """
        Return at most ``limit`` ``(id, score)`` pairs by descending BM25 score.

        Only committed entries are visible.

        Raises:
            QueryParseError: if ``query_text`` is malformed.
        """
        reader = self._reader
        return reader.search(query_text, limit)

    def count(self) -> int:
        return len(self._committed)

    def ids(self) -> list[str]:
        return list(self._committed)

    def get(self, id: str) -> LexicalEntry | None:
        return self._committed.get(id)
