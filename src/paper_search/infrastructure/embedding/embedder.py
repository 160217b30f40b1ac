"""
Embedding providers: text → fixed-length float vector.

- ``MockEmbedder``: deterministic, hash-seeded vectors in [-1, 1). Same text
  gives the same vector in every process, no model download required.
- ``Specter2Embedder``: SPECTER2 base model via sentence-transformers
  (optional ``embeddings`` extra), loaded on first use.
"""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from paper_search.domain.entities import EMBEDDING_DIMENSION
from paper_search.shared.exceptions import ConfigurationError, DimensionMismatchError

logger = logging.getLogger(__name__)

SPECTER2_MODEL = "allenai/specter2_base"


class EmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    name: str = "embedder"

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of every vector this provider returns."""

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Embed one text."""

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        return [self.embed(text) for text in texts]


class MockEmbedder(EmbeddingProvider):
    """
    Deterministic pseudo-embeddings for tests and offline use.

    The text's BLAKE2b digest seeds a NumPy generator, so identical texts map
    to identical vectors while different texts are uncorrelated.
    """

    name = "mock"

    def __init__(self, dimension: int = EMBEDDING_DIMENSION) -> None:
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> list[float]:
        digest = hashlib.blake2b(text.encode("utf-8"), digest_size=8).digest()
        rng = np.random.default_rng(int.from_bytes(digest, "little"))
        vector = rng.uniform(-1.0, 1.0, self._dimension).astype(np.float32)
        return vector.tolist()


class Specter2Embedder(EmbeddingProvider):
    """SPECTER2 document embeddings (768-d) through sentence-transformers."""

    name = "specter2"

    def __init__(self, model_name: str = SPECTER2_MODEL, dimension: int = EMBEDDING_DIMENSION) -> None:
        self.model_name = model_name
        self._dimension = dimension
        self._model: Any = None

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model(self) -> Any:
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as e:
                msg = "Specter2Embedder requires the 'embeddings' extra (sentence-transformers)"
                raise ConfigurationError(msg) from e
            logger.info(f"Loading embedding model {self.model_name}")
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed(self, text: str) -> list[float]:
        return self.embed_many([text])[0]

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        vectors = self.model.encode(texts, convert_to_numpy=True)
        vectors = np.asarray(vectors, dtype=np.float32)
        if vectors.shape[-1] != self._dimension:
            raise DimensionMismatchError(self._dimension, int(vectors.shape[-1]))
        return vectors.tolist()


def create_embedder(kind: str, dimension: int = EMBEDDING_DIMENSION) -> EmbeddingProvider:
    """Build the embedder named by configuration (``mock`` or ``specter2``)."""
    normalized = (kind or "mock").strip().lower()
    if normalized == "mock":
        return MockEmbedder(dimension)
    if normalized == "specter2":
        return Specter2Embedder(dimension=dimension)
    msg = f"Unknown embedder {kind!r} (expected 'mock' or 'specter2')"
    raise ConfigurationError(msg)
