"""Tests for PaperSearchService over a real local index and fake providers."""

import pytest

from paper_search.application.search import FederatedSearcher, PaperSearchService
from paper_search.application.search.service import MAX_SEARCH_LIMIT, clamp_limit
from paper_search.infrastructure.embedding import MockEmbedder
from paper_search.infrastructure.index import LocalIndex
from paper_search.shared.exceptions import (
    DimensionMismatchError,
    InvalidParameterError,
    InvalidQueryError,
    NotFoundError,
    QueryParseError,
)
from paper_search.shared.settings import PeerConfig, Settings

from conftest import TEST_DIMENSION, FakeSource


@pytest.fixture
def local_index(temp_dir):
    return LocalIndex.open(temp_dir / "index", dimension=TEST_DIMENSION)


@pytest.fixture
def arxiv(sample_papers, holographic_paper, quantum_paper):
    return FakeSource("arxiv", sample_papers, citations=[quantum_paper], references=[holographic_paper])


@pytest.fixture
def service(local_index, embedder, arxiv):
    return PaperSearchService(local_index, embedder, FederatedSearcher([arxiv]))


class TestClampLimit:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, 10), (0, 1), (-5, 1), (7, 7), (1000, MAX_SEARCH_LIMIT)],
    )
    def test_clamp(self, value, expected):
        assert clamp_limit(value, MAX_SEARCH_LIMIT) == expected


class TestConstruction:
    def test_dimension_mismatch(self, local_index):
        with pytest.raises(DimensionMismatchError):
            PaperSearchService(local_index, MockEmbedder(TEST_DIMENSION + 1), FederatedSearcher([]))


class TestFederated:
    async def test_search_papers(self, service, arxiv, holographic_paper):
        papers = await service.search_papers("entropy", max_results=2)
        assert papers[0] == holographic_paper
        assert len(papers) == 2
        assert arxiv.search_calls == [("entropy", 5)]

    async def test_empty_query(self, service):
        with pytest.raises(InvalidQueryError):
            await service.search_papers("  ")

    async def test_get_paper_prefers_local(self, service, arxiv, holographic_paper):
        await service.index_record(holographic_paper)
        assert await service.get_paper(holographic_paper.id) == holographic_paper
        assert arxiv.get_calls == []

    async def test_get_paper_falls_back_to_providers(self, service, arxiv, quantum_paper):
        assert await service.get_paper(quantum_paper.id) == quantum_paper
        assert arxiv.get_calls == [quantum_paper.id]

    async def test_relations(self, service, holographic_paper, quantum_paper):
        assert await service.get_citations("arxiv:1") == [quantum_paper]
        assert await service.get_references("arxiv:1") == [holographic_paper]


class TestLocal:
    async def test_index_paper_then_search_each_mode(self, service, holographic_paper, quantum_paper):
        await service.index_paper(holographic_paper.id)
        await service.index_paper(quantum_paper.id)
        assert await service.count() == 2

        lexical = await service.search_local("holographic", mode="lexical")
        assert [p.id for p in lexical] == [holographic_paper.id]

        vector = await service.search_local(quantum_paper.embedding_text(), mode="vector", limit=1)
        assert [p.id for p in vector] == [quantum_paper.id]

        hybrid = await service.search_local(holographic_paper.embedding_text())
        assert hybrid[0].id == holographic_paper.id

    async def test_index_paper_unknown(self, service):
        with pytest.raises(NotFoundError):
            await service.index_paper("arxiv:0000.0000")

    async def test_index_from_query(self, service, sample_papers):
        indexed, found = await service.index_from_query("physics", max_results=10)
        assert (indexed, found) == (3, 3)
        assert await service.count() == 3

    async def test_index_from_query_nothing_found(self, local_index, embedder):
        service = PaperSearchService(local_index, embedder, FederatedSearcher([FakeSource("arxiv")]))
        assert await service.index_from_query("nothing") == (0, 0)

    async def test_search_similar(self, service, quantum_paper, holographic_paper):
        await service.index_record(holographic_paper)
        await service.index_record(quantum_paper)
        papers = await service.search_similar(quantum_paper.embedding_text(), limit=5)
        assert papers[0] == quantum_paper

    async def test_delete(self, service, holographic_paper):
        await service.index_record(holographic_paper)
        await service.delete_paper(holographic_paper.id)
        assert await service.count() == 0
        assert await service.search_local("holographic", mode="lexical") == []

    async def test_validation(self, service):
        with pytest.raises(InvalidQueryError):
            await service.search_local("")
        with pytest.raises(InvalidQueryError):
            await service.search_similar(" ")
        with pytest.raises(InvalidParameterError):
            await service.search_local("entropy", mode="fuzzy")
        with pytest.raises(QueryParseError):
            await service.search_local("(entropy", mode="lexical")

    async def test_reconcile(self, service, holographic_paper):
        await service.index_record(holographic_paper)
        assert (await service.reconcile()).consistent


class TestStatus:
    async def test_stats(self, service, temp_dir):
        stats = await service.stats()
        assert stats["data_dir"] == str(temp_dir / "index")
        assert stats["indexed_papers"] == 0
        assert stats["embedding_dimension"] == TEST_DIMENSION
        assert stats["embedder"] == "mock"
        assert stats["sources"] == ["arxiv"]

    def test_source_status_separates_peers(self, local_index, embedder):
        settings = Settings(peers=(PeerConfig("lab", "http://lab:8765"),))
        service = PaperSearchService(
            local_index,
            embedder,
            FederatedSearcher([FakeSource("arxiv"), FakeSource("lab")]),
            settings=settings,
        )
        statuses = {s.name: s for s in service.source_status()}
        assert statuses["arxiv"].enabled
        assert statuses["lab"].note.startswith("Peer node")

    async def test_close(self, service, arxiv):
        await service.close()
        assert arxiv.closed
