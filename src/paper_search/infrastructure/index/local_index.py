"""
Local Index - one storage location holding a lexical index and a vector store.

Layout:
    <data_dir>/lexical/   committed BM25 snapshot
    <data_dir>/vectors/   LanceDB papers table

The vector store is the source of truth for full records and for ``count()``.
The two stores are not updated transactionally: ``index_paper`` and
``delete`` order their steps so that a failure leaves at most one store
ahead of the other, and ``reconcile()`` reports (and can repair) any
divergence.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from paper_search.domain.entities import EMBEDDING_DIMENSION, PaperRecord, ScoredResult, SearchMode
from paper_search.shared.exceptions import PaperSearchError

from .fusion import hybrid_search
from .lexical import LexicalIndex
from .vector_store import VectorStore

logger = logging.getLogger(__name__)

LEXICAL_DIR = "lexical"
VECTOR_DIR = "vectors"


@dataclass
class ReconcileReport:
    """Ids present in only one of the two stores."""

    lexical_only: list[str] = field(default_factory=list)
    vector_only: list[str] = field(default_factory=list)
    repaired: bool = False

    @property
    def consistent(self) -> bool:
        return not self.lexical_only and not self.vector_only

    def to_dict(self) -> dict[str, Any]:
        return {
            "consistent": self.consistent,
            "lexical_only": self.lexical_only,
            "vector_only": self.vector_only,
            "repaired": self.repaired,
        }


class LocalIndex:
    """Hybrid lexical + vector index over a curated set of papers."""

    def __init__(self, data_dir: Path, lexical: LexicalIndex, vectors: VectorStore) -> None:
        self._data_dir = data_dir
        self._lexical = lexical
        self._vectors = vectors
        self.write_lock = asyncio.Lock()

    @classmethod
    def open(cls, data_dir: Path | str, dimension: int = EMBEDDING_DIMENSION) -> LocalIndex:
        """Create or open both stores under ``data_dir`` (blocking)."""
        data_dir = Path(data_dir).expanduser()
        lexical = LexicalIndex.open(data_dir / LEXICAL_DIR)
        vectors = VectorStore.open(data_dir / VECTOR_DIR, dimension)
        return cls(data_dir, lexical, vectors)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def dimension(self) -> int:
        return self._vectors.dimension

    @property
    def lexical(self) -> LexicalIndex:
        return self._lexical

    @property
    def vectors(self) -> VectorStore:
        return self._vectors

    def _stage(self, record: PaperRecord) -> None:
        self._lexical.add(
            record.id,
            record.title,
            record.abstract_text,
            record.authors,
            record.year,
        )

    async def index_paper(self, record: PaperRecord, embedding: Sequence[float]) -> None:
        """
        Ingest or replace one paper.

        Order: check the embedding, stage the lexical entry, replace the
        vector row, then commit the lexical index. A wrong-width embedding
        is rejected before either store changes. If the vector write fails
        the staged lexical change is discarded, the previous vector row is
        kept and the error propagates.
        """
        self._vectors.check_dimension(embedding)
        async with self.write_lock:
            self._stage(record)
            try:
                await self._vectors.replace(record, embedding)
            except Exception:
                self._lexical.rollback()
                raise
            await asyncio.to_thread(self._lexical.commit)
        logger.info(f"Indexed {record.id}")

    async def index_papers(self, items: Sequence[tuple[PaperRecord, Sequence[float]]]) -> int:
        """
        Bulk ingestion with a single lexical commit.

        Each paper is written on its own. A paper whose embedding has the
        wrong width or whose vector write fails is logged and skipped; its
        stored state is left as it was. Returns the number of papers indexed.
        """
        if not items:
            return 0
        indexed = 0
        async with self.write_lock:
            for record, embedding in items:
                try:
                    self._vectors.check_dimension(embedding)
                    await self._vectors.replace(record, embedding)
                except PaperSearchError as e:
                    logger.warning(f"Skipping {record.id}: {e}")
                    continue
                self._stage(record)
                indexed += 1
            if indexed:
                await asyncio.to_thread(self._lexical.commit)
        logger.info(f"Indexed {indexed} of {len(items)} papers")
        return indexed

    async def delete(self, id: str) -> None:
        """Remove ``id`` from both stores: lexical retract and commit, then vector delete."""
        async with self.write_lock:
            self._lexical.delete(id)
            await asyncio.to_thread(self._lexical.commit)
            await self._vectors.delete(id)
        logger.info(f"Deleted {id}")

    async def search(
        self,
        mode: SearchMode,
        limit: int,
        query_text: str | None = None,
        embedding: Sequence[float] | None = None,
    ) -> list[ScoredResult]:
        return await hybrid_search(
            self._lexical,
            self._vectors,
            mode,
            limit,
            query_text=query_text,
            embedding=embedding,
        )

    async def resolve(self, scored: Sequence[ScoredResult]) -> list[PaperRecord]:
        """Full records for fused results, in order; unresolvable ids are dropped."""
        papers: list[PaperRecord] = []
        for result in scored:
            paper = await self._vectors.get(result.id)
            if paper is None:
                logger.debug(f"Dropping {result.id}: not in vector store")
                continue
            papers.append(paper)
        return papers

    async def get_paper(self, id: str) -> PaperRecord | None:
        return await self._vectors.get(id)

    async def count(self) -> int:
        return await self._vectors.count()

    async def reconcile(self, repair: bool = False) -> ReconcileReport:
        """
        Compare the id sets of both stores.

        With ``repair=True`` lexical-only ids are retracted and vector-only
        ids are re-staged from their stored record, then committed.
        """
        async with self.write_lock:
            lexical_ids = set(self._lexical.ids())
            vector_ids = set(await self._vectors.list_ids())
            report = ReconcileReport(
                lexical_only=sorted(lexical_ids - vector_ids),
                vector_only=sorted(vector_ids - lexical_ids),
            )
            if report.consistent:
                return report

            logger.warning(
                f"Local index diverged: {len(report.lexical_only)} lexical-only, "
                f"{len(report.vector_only)} vector-only"
            )
            if repair:
                for id in report.lexical_only:
                    self._lexical.delete(id)
                for id in report.vector_only:
                    paper = await self._vectors.get(id)
                    if paper is not None:
                        self._stage(paper)
                await asyncio.to_thread(self._lexical.commit)
                report.repaired = True
            return report
