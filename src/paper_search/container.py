"""
Application DI Container (dependency-injector).

Centralizes service creation and lifecycle management.

Usage::

    from paper_search.container import build_container
    from paper_search.shared.settings import Settings

    container = build_container(Settings.from_env())
    service = container.search_service()

    # In tests - override any provider:
    container.embedder.override(providers.Object(MockEmbedder(dimension=8)))
"""

from __future__ import annotations

import logging
from typing import Any

from dependency_injector import containers, providers

from paper_search.shared.settings import Settings

logger = logging.getLogger(__name__)


def _create_embedder(kind: str) -> object:
    """Lazy factory for the embedding provider (avoids loading models at import)."""
    from paper_search.infrastructure.embedding import create_embedder

    return create_embedder(kind)


def _create_local_index(data_dir: str, embedder: Any) -> object:
    """Open the local index with the embedder's dimension."""
    from paper_search.infrastructure.index import LocalIndex

    return LocalIndex.open(data_dir, dimension=embedder.dimension)


def _create_sources(settings: Settings) -> list[Any]:
    from paper_search.infrastructure.sources import build_sources

    return build_sources(settings)


def _create_federated_searcher(sources: list[Any], provider_timeout: float | None) -> object:
    from paper_search.application.search import FederatedSearcher

    return FederatedSearcher(sources, provider_timeout=provider_timeout)


def _create_search_service(
    local_index: Any,
    embedder: Any,
    federated: Any,
    settings: Settings,
) -> object:
    from paper_search.application.search import PaperSearchService

    return PaperSearchService(local_index, embedder, federated, settings=settings)


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container for the Paper Search application.

    Manages creation and lifecycle of all core services:
    - ``embedder``: text embedding provider (mock or SPECTER2)
    - ``local_index``: lexical + vector index under ``config.data_dir``
    - ``sources``: enabled providers (registered adapters and peers)
    - ``federated_searcher``: concurrent multi-provider search
    - ``search_service``: facade used by the MCP tools and the peer API
    """

    config = providers.Configuration()

    settings = providers.Dependency(instance_of=Settings, default=Settings())

    embedder = providers.Singleton(
        _create_embedder,
        kind=config.embedder,
    )

    local_index = providers.Singleton(
        _create_local_index,
        data_dir=config.data_dir,
        embedder=embedder,
    )

    sources = providers.Singleton(
        _create_sources,
        settings=settings,
    )

    federated_searcher = providers.Singleton(
        _create_federated_searcher,
        sources=sources,
        provider_timeout=config.provider_timeout,
    )

    search_service = providers.Singleton(
        _create_search_service,
        local_index=local_index,
        embedder=embedder,
        federated=federated_searcher,
        settings=settings,
    )


def build_container(settings: Settings) -> ApplicationContainer:
    """Container wired to ``settings`` (both as object and as ``config``)."""
    container = ApplicationContainer(settings=settings)
    container.config.from_dict(settings.to_dict())
    logger.info(f"Container configured: data_dir={settings.data_dir}, embedder={settings.embedder}")
    return container


__all__ = ["ApplicationContainer", "build_container"]
