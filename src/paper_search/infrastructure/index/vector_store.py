"""
Vector Store - LanceDB table of paper records with their embeddings.

Each row carries the full PaperRecord (authors serialized as JSON) plus a
fixed-size float32 ``vector`` column of the store-wide dimension. Nearest
neighbour search uses Euclidean distance; LanceDB reports squared L2, so
distances are square-rooted before being returned.

LanceDB calls are blocking and run in a worker thread.

Example:
    store = VectorStore.open(data_dir / "vectors")
    await store.add(paper, embedding)
    await store.search_similar(embedding, limit=5)   # [(paper.id, 0.0)]
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Callable, TypeVar

import lancedb
import pyarrow as pa

from paper_search.domain.entities import EMBEDDING_DIMENSION, PaperRecord
from paper_search.shared.exceptions import (
    DimensionMismatchError,
    IndexOpenError,
    VectorStoreError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TABLE_NAME = "papers"
VECTOR_COLUMN = "vector"


def paper_schema(dimension: int = EMBEDDING_DIMENSION) -> pa.Schema:
    """Arrow schema of the papers table."""
    return pa.schema([
        pa.field("id", pa.string(), nullable=False),
        pa.field("title", pa.string()),
        pa.field("authors_json", pa.string()),
        pa.field("abstract_text", pa.string()),
        pa.field("year", pa.int64()),
        pa.field("source", pa.string()),
        pa.field("doi", pa.string()),
        pa.field("external_id", pa.string()),
        pa.field("url", pa.string()),
        pa.field("pdf_url", pa.string()),
        pa.field("citation_count", pa.int64()),
        pa.field(VECTOR_COLUMN, pa.list_(pa.float32(), dimension)),
    ])


def _quote(value: str) -> str:
    """SQL string literal for LanceDB filter expressions."""
    return "'" + value.replace("'", "''") + "'"


def _row_from_record(record: PaperRecord, embedding: list[float]) -> dict[str, Any]:
    return {
        "id": record.id,
        "title": record.title,
        "authors_json": json.dumps(record.authors, ensure_ascii=False),
        "abstract_text": record.abstract_text,
        "year": record.year,
        "source": record.source,
        "doi": record.doi,
        "external_id": record.external_id,
        "url": record.url,
        "pdf_url": record.pdf_url,
        "citation_count": record.citation_count,
        VECTOR_COLUMN: embedding,
    }


def _record_from_row(row: dict[str, Any]) -> PaperRecord:
    data = dict(row)
    data["authors"] = json.loads(row.get("authors_json") or "[]")
    return PaperRecord.from_dict(data)


class VectorStore:
    """Embedding-plus-metadata store with Euclidean nearest-neighbour search."""

    def __init__(self, table: Any, path: Path, dimension: int = EMBEDDING_DIMENSION) -> None:
        self._table = table
        self._path = path
        self._dimension = dimension
        self._schema = paper_schema(dimension)

    @classmethod
    def open(cls, path: Path | str, dimension: int = EMBEDDING_DIMENSION) -> VectorStore:
        """
        Create or open the papers table under ``path``. Idempotent and blocking.

        Raises:
            IndexOpenError: if the location cannot be opened.
            DimensionMismatchError: if an existing table uses another dimension.
        """
        path = Path(path)

        try:
            path.mkdir(parents=True, exist_ok=True)
            db = lancedb.connect(str(path))
            if (path / f"{TABLE_NAME}.lance").exists():
                table = db.open_table(TABLE_NAME)
            else:
                table = db.create_table(TABLE_NAME, schema=paper_schema(dimension))
        except Exception as e:
            msg = f"Cannot open vector store at {path}: {e}"
            raise IndexOpenError(msg) from e

        existing = table.schema.field(VECTOR_COLUMN).type.list_size
        if existing != dimension:
            raise DimensionMismatchError(existing, dimension)

        logger.info(f"Opened vector store at {path} (dimension={dimension})")
        return cls(table, path, dimension)

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def path(self) -> Path:
        return self._path

    def check_dimension(self, embedding: Sequence[float]) -> list[float]:
        """Float list of ``embedding``; raises DimensionMismatchError on a wrong width."""
        if len(embedding) != self._dimension:
            raise DimensionMismatchError(self._dimension, len(embedding))
        return [float(x) for x in embedding]

    def _to_table(self, record: PaperRecord, embedding: Sequence[float]) -> pa.Table:
        vector = self.check_dimension(embedding)
        return pa.Table.from_pylist([_row_from_record(record, vector)], schema=self._schema)

    async def _run(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(func, *args)
        except Exception as e:
            msg = f"Vector store {operation} failed: {e}"
            raise VectorStoreError(msg) from e

    async def add(self, record: PaperRecord, embedding: Sequence[float]) -> None:
        """Append one row. Existing rows for the same id are left in place."""
        data = self._to_table(record, embedding)
        await self._run("add", self._table.add, data)

    async def replace(self, record: PaperRecord, embedding: Sequence[float]) -> None:
        """
        Make ``record`` the only row for its id.

        The row is validated before storage is touched. If the write fails
        after the old rows were removed, they are written back and the
        error propagates, so a failed replace leaves the previous state.
        """
        data = self._to_table(record, embedding)
        where = f"id = {_quote(record.id)}"

        def _replace() -> None:
            matches = self._table.count_rows(where)
            previous = None
            if matches:
                previous = (
                    self._table.search()
                    .where(where)
                    .select(self._schema.names)
                    .limit(matches)
                    .to_arrow()
                    .select(self._schema.names)
                )
                self._table.delete(where)
            try:
                self._table.add(data)
            except Exception:
                if previous is not None:
                    logger.warning(f"Restoring {matches} row(s) for {record.id} after failed write")
                    self._table.add(previous)
                raise

        await self._run("replace", _replace)

    async def search_similar(self, embedding: Sequence[float], limit: int) -> list[tuple[str, float]]:
        """Up to ``limit`` ``(id, distance)`` pairs by ascending Euclidean distance."""
        vector = self.check_dimension(embedding)
        if limit <= 0:
            return []

        def _search() -> list[dict[str, Any]]:
            if self._table.count_rows() == 0:
                return []
            return (
                self._table.search(vector, vector_column_name=VECTOR_COLUMN)
                .distance_type("l2")
                .select(["id"])
                .limit(limit)
                .to_list()
            )

        rows = await self._run("search", _search)
        hits = [(row["id"], math.sqrt(max(float(row["_distance"]), 0.0))) for row in rows]
        hits.sort(key=lambda hit: hit[1])
        return hits

    async def get(self, id: str) -> PaperRecord | None:
        """Most recently written record for ``id``, or None."""
        where = f"id = {_quote(id)}"

        def _get() -> list[dict[str, Any]]:
            matches = self._table.count_rows(where)
            if matches == 0:
                return []
            return self._table.search().where(where).limit(matches).to_list()

        rows = await self._run("get", _get)
        if not rows:
            return None
        return _record_from_row(rows[-1])

    async def delete(self, id: str) -> None:
        """Remove every row for ``id``."""
        await self._run("delete", self._table.delete, f"id = {_quote(id)}")

    async def count(self) -> int:
        return await self._run("count", self._table.count_rows)

    async def list_ids(self) -> list[str]:
        """Distinct ids present in the store."""

        def _ids() -> list[str]:
            total = self._table.count_rows()
            if total == 0:
                return []
            rows = self._table.search().select(["id"]).limit(total).to_list()
            return list(dict.fromkeys(row["id"] for row in rows))

        return await self._run("list_ids", _ids)
