"""
Peer Source - another paper-search node used as a provider.

A peer exposes its local index over the HTTP API in
``paper_search.api.server``; records travel in ``PaperRecord.to_dict()``
form, so no third-party wire format is involved.

Usage:
    async with PeerPaperSource("lab", "http://lab-server:8765") as peer:
        papers = await peer.search("holographic entanglement", 10)
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import Any

import httpx

from paper_search.domain.entities import PaperRecord
from paper_search.shared.exceptions import ParseError

from .base import PaperSource
from .base_client import BaseAPIClient

logger = logging.getLogger(__name__)

PAPERS_PATH = "/api/papers"


class PeerPaperSource(BaseAPIClient, PaperSource):
    """Paper source backed by a remote paper-search HTTP API."""

    _service_name = "Peer"

    def __init__(
        self,
        name: str,
        base_url: str,
        timeout: float = 30.0,
        min_interval: float = 0.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._name = name.strip().lower()
        self._service_name = f"Peer[{self._name}]"
        super().__init__(
            base_url=base_url,
            timeout=timeout,
            min_interval=min_interval,
            headers={"Accept": "application/json", "User-Agent": "paper-search/0.1"},
            transport=transport,
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def base_url(self) -> str:
        return self._base_url

    @staticmethod
    def _paper_path(id: str, suffix: str = "") -> str:
        return f"{PAPERS_PATH}/{urllib.parse.quote(id, safe=':')}{suffix}"

    def _decode_records(self, payload: Any) -> list[PaperRecord]:
        if payload is None:
            return []
        if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
            raise ParseError("expected an object with a 'results' list", source=self._service_name)
        try:
            return [PaperRecord.from_dict(item) for item in payload["results"]]
        except (KeyError, TypeError, ValueError) as e:
            raise ParseError(f"invalid record: {e}", source=self._service_name) from e

    async def search(self, query: str, max_results: int) -> list[PaperRecord]:
        payload = await self._make_request(
            f"{PAPERS_PATH}/search",
            params={"q": query, "max_results": max_results},
        )
        papers = self._decode_records(payload)
        logger.debug(f"{self._service_name}: {len(papers)} results for {query!r}")
        return papers[:max_results]

    async def get_paper(self, id: str) -> PaperRecord | None:
        payload = await self._make_request(self._paper_path(id))
        if payload is None:
            return None
        try:
            return PaperRecord.from_dict(payload["paper"])
        except (KeyError, TypeError, ValueError) as e:
            raise ParseError(f"invalid record: {e}", source=self._service_name) from e

    async def get_citations(self, id: str) -> list[PaperRecord]:
        return self._decode_records(await self._make_request(self._paper_path(id, "/citations")))

    async def get_references(self, id: str) -> list[PaperRecord]:
        return self._decode_records(await self._make_request(self._paper_path(id, "/references")))
