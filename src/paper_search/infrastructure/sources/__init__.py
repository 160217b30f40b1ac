"""
Paper sources (providers) for federated search.

Adapters for external scholarly databases plug in by subclassing
``PaperSource``; ``PeerPaperSource`` queries other paper-search nodes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from paper_search.shared.settings import Settings

from .base import PaperSource
from .base_client import BaseAPIClient
from .peer import PeerPaperSource

logger = logging.getLogger(__name__)


def build_sources(
    settings: Settings,
    extra: Iterable[PaperSource] = (),
) -> list[PaperSource]:
    """
    Instantiate the providers enabled by ``settings``.

    Args:
        settings: Runtime settings (peers and source filter)
        extra: Externally constructed adapters to register alongside peers
    """
    sources: list[PaperSource] = []
    for source in extra:
        if settings.is_enabled(source.name):
            sources.append(source)
        else:
            logger.info(f"Source {source.name} disabled by PAPER_SEARCH_SOURCES filter")

    for peer in settings.peers:
        if settings.is_enabled(peer.name):
            sources.append(PeerPaperSource(peer.name, peer.url))
        else:
            logger.info(f"Peer {peer.name} disabled by PAPER_SEARCH_SOURCES filter")

    logger.info(f"Enabled sources: {', '.join(s.name for s in sources) or '(none)'}")
    return sources


__all__ = [
    "BaseAPIClient",
    "PaperSource",
    "PeerPaperSource",
    "build_sources",
]
