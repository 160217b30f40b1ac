"""Text embedding providers."""

from .embedder import (
    SPECTER2_MODEL,
    EmbeddingProvider,
    MockEmbedder,
    Specter2Embedder,
    create_embedder,
)

__all__ = [
    "SPECTER2_MODEL",
    "EmbeddingProvider",
    "MockEmbedder",
    "Specter2Embedder",
    "create_embedder",
]
