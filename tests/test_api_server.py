"""Tests for the peer HTTP API."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from paper_search import __version__
from paper_search.api import create_api_server
from paper_search.application.search import FederatedSearcher, PaperSearchService
from paper_search.infrastructure.index import LocalIndex
from paper_search.infrastructure.sources import PeerPaperSource
from paper_search.shared.exceptions import (
    InvalidParameterError,
    NetworkError,
    QueryParseError,
    VectorStoreError,
)

from conftest import TEST_DIMENSION


@pytest.fixture
def mock_service(holographic_paper, quantum_paper):
    service = MagicMock()
    service.count = AsyncMock(return_value=2)
    service.search_local = AsyncMock(return_value=[holographic_paper, quantum_paper])
    service.get_citations = AsyncMock(return_value=[quantum_paper])
    service.get_references = AsyncMock(return_value=[])
    service.local_index.get_paper = AsyncMock(return_value=holographic_paper)
    return service


@pytest.fixture
def client(mock_service):
    return TestClient(create_api_server(mock_service))


class TestHealth:
    def test_healthy(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": __version__, "indexed_papers": 2}

    def test_degraded(self, client, mock_service):
        mock_service.count.side_effect = VectorStoreError("lance down")
        assert client.get("/health").json()["status"] == "degraded"


class TestSearch:
    def test_search(self, client, mock_service, holographic_paper):
        response = client.get("/api/papers/search", params={"q": "entropy", "max_results": 5, "mode": "lexical"})
        assert response.status_code == 200
        results = response.json()["results"]
        assert results[0] == holographic_paper.to_dict()
        mock_service.search_local.assert_awaited_once_with("entropy", mode="lexical", limit=5)

    def test_defaults(self, client, mock_service):
        client.get("/api/papers/search", params={"q": "entropy"})
        mock_service.search_local.assert_awaited_once_with("entropy", mode="hybrid", limit=10)

    def test_missing_query(self, client):
        assert client.get("/api/papers/search").status_code == 422

    def test_bad_limit(self, client):
        assert client.get("/api/papers/search", params={"q": "x", "max_results": 0}).status_code == 422

    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (QueryParseError("(x", "unbalanced parenthesis"), 400),
            (InvalidParameterError("mode", "fuzzy", "hybrid"), 400),
            (NetworkError("down"), 502),
            (VectorStoreError("lance down"), 500),
        ],
    )
    def test_error_status(self, client, mock_service, error, status):
        mock_service.search_local.side_effect = error
        response = client.get("/api/papers/search", params={"q": "x"})
        assert response.status_code == status
        assert response.json()["detail"] == str(error)


class TestPapers:
    def test_get_paper_with_slash_in_id(self, client, mock_service, holographic_paper):
        response = client.get("/api/papers/arxiv:hep-th%2F0603001")
        assert response.status_code == 200
        assert response.json()["paper"] == holographic_paper.to_dict()
        mock_service.local_index.get_paper.assert_awaited_once_with("arxiv:hep-th/0603001")

    def test_get_paper_missing(self, client, mock_service):
        mock_service.local_index.get_paper.return_value = None
        response = client.get("/api/papers/arxiv:none")
        assert response.status_code == 404
        assert "arxiv:none" in response.json()["detail"]

    def test_citations(self, client, mock_service, quantum_paper):
        response = client.get("/api/papers/arxiv:hep-th/0603001/citations")
        assert response.json()["results"] == [quantum_paper.to_dict()]
        mock_service.get_citations.assert_awaited_once_with("arxiv:hep-th/0603001")

    def test_references(self, client):
        assert client.get("/api/papers/arxiv:1/references").json() == {"results": []}


class TestPeerRoundTrip:
    """A PeerPaperSource talking to a real API over an in-process transport."""

    @pytest.fixture
    async def peer(self, temp_dir, embedder, sample_papers):
        local_index = LocalIndex.open(temp_dir / "node", dimension=TEST_DIMENSION)
        service = PaperSearchService(local_index, embedder, FederatedSearcher([]))
        for paper in sample_papers:
            await service.index_record(paper)

        transport = httpx.ASGITransport(app=create_api_server(service))
        source = PeerPaperSource("node", "http://node.test", transport=transport)
        yield source
        await source.close()

    async def test_search(self, peer, holographic_paper):
        papers = await peer.search("holographic", 5)
        assert papers[0] == holographic_paper

    async def test_get_paper(self, peer, holographic_paper):
        assert await peer.get_paper(holographic_paper.id) == holographic_paper
        assert await peer.get_paper("arxiv:unknown") is None

    async def test_relations_empty(self, peer):
        assert await peer.get_citations("arxiv:1234.5678") == []
