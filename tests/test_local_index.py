"""
Integration tests for LocalIndex: real lexical snapshot + real LanceDB table.
"""

from unittest.mock import AsyncMock, patch

import pytest

from paper_search.domain.entities import SearchMode
from paper_search.infrastructure.index import LocalIndex
from paper_search.shared.exceptions import DimensionMismatchError, QueryParseError, VectorStoreError

from conftest import TEST_DIMENSION, make_paper


@pytest.fixture
def local_index(temp_dir):
    return LocalIndex.open(temp_dir / "index", dimension=TEST_DIMENSION)


async def _index_all(local_index, embedder, papers):
    for paper in papers:
        await local_index.index_paper(paper, embedder.embed(paper.embedding_text()))


async def _search(local_index, embedder, mode, text, limit=10):
    scored = await local_index.search(
        mode,
        limit,
        query_text=text,
        embedding=embedder.embed(text) if mode is not SearchMode.LEXICAL else None,
    )
    return scored, await local_index.resolve(scored)


class TestOpen:
    def test_layout(self, local_index, temp_dir):
        assert (temp_dir / "index" / "lexical").is_dir()
        assert (temp_dir / "index" / "vectors").is_dir()
        assert local_index.dimension == TEST_DIMENSION

    async def test_reopen(self, temp_dir, local_index, embedder, sample_papers):
        await _index_all(local_index, embedder, sample_papers)
        reopened = LocalIndex.open(temp_dir / "index", dimension=TEST_DIMENSION)
        assert await reopened.count() == 3
        assert reopened.lexical.count() == 3


class TestSearchModes:
    async def test_lexical(self, local_index, embedder, holographic_paper, quantum_paper):
        await _index_all(local_index, embedder, [holographic_paper, quantum_paper])
        scored, papers = await _search(local_index, embedder, SearchMode.LEXICAL, "holographic")
        assert [p.id for p in papers] == [holographic_paper.id]
        assert scored[0].lexical_score > 0

    async def test_vector_exact_text(self, local_index, embedder, holographic_paper, quantum_paper):
        await _index_all(local_index, embedder, [holographic_paper, quantum_paper])
        _, papers = await _search(
            local_index, embedder, SearchMode.VECTOR, quantum_paper.embedding_text()
        )
        assert papers[0].id == quantum_paper.id
        assert len(papers) == 2

    async def test_hybrid(self, local_index, embedder, holographic_paper, quantum_paper):
        await _index_all(local_index, embedder, [holographic_paper, quantum_paper])
        scored, papers = await _search(
            local_index, embedder, SearchMode.HYBRID, holographic_paper.embedding_text()
        )
        assert papers[0] == holographic_paper
        assert scored[0].lexical_score is not None
        assert scored[0].vector_distance == pytest.approx(0.0, abs=1e-3)

    async def test_malformed_query(self, local_index, embedder, sample_papers):
        await _index_all(local_index, embedder, sample_papers)
        with pytest.raises(QueryParseError):
            await _search(local_index, embedder, SearchMode.LEXICAL, "entropy AND")

    async def test_empty_index(self, local_index, embedder):
        scored, papers = await _search(local_index, embedder, SearchMode.HYBRID, "entropy")
        assert scored == []
        assert papers == []


class TestWrites:
    async def test_reindex_replaces(self, local_index, embedder, holographic_paper):
        await _index_all(local_index, embedder, [holographic_paper])
        updated = make_paper(holographic_paper.id, "Renamed holography paper", year=2006)
        await local_index.index_paper(updated, embedder.embed(updated.embedding_text()))

        assert await local_index.count() == 1
        assert local_index.lexical.count() == 1
        assert (await local_index.get_paper(holographic_paper.id)).title == "Renamed holography paper"
        _, papers = await _search(local_index, embedder, SearchMode.LEXICAL, "renamed")
        assert [p.id for p in papers] == [holographic_paper.id]

    async def test_index_papers_bulk(self, local_index, embedder, sample_papers):
        items = [(p, embedder.embed(p.embedding_text())) for p in sample_papers]
        assert await local_index.index_papers(items) == 3
        assert await local_index.count() == 3
        assert await local_index.index_papers([]) == 0

    async def test_index_papers_skips_bad_item(self, local_index, embedder, sample_papers):
        first, second, third = sample_papers
        await _index_all(local_index, embedder, [third])
        items = [
            (first, embedder.embed(first.embedding_text())),
            (second, embedder.embed(second.embedding_text())),
            (make_paper(third.id, "Replacement title"), [0.0, 0.0, 0.0]),
        ]

        assert await local_index.index_papers(items) == 2
        assert await local_index.count() == 3
        assert local_index.lexical.count() == 3
        assert (await local_index.get_paper(third.id)) == third
        assert (await local_index.reconcile()).consistent

    async def test_index_papers_skips_failed_write(self, local_index, embedder, sample_papers):
        first, second, _ = sample_papers
        real_replace = local_index.vectors.replace

        async def replace(record, embedding):
            if record.id == first.id:
                raise VectorStoreError("lance down")
            await real_replace(record, embedding)

        items = [(p, embedder.embed(p.embedding_text())) for p in (first, second)]
        with patch.object(local_index.vectors, "replace", side_effect=replace):
            assert await local_index.index_papers(items) == 1

        assert await local_index.get_paper(first.id) is None
        assert local_index.lexical.ids() == [second.id]
        assert (await local_index.reconcile()).consistent

    async def test_delete_from_every_mode(self, local_index, embedder, sample_papers):
        await _index_all(local_index, embedder, sample_papers)
        target = sample_papers[0]
        await local_index.delete(target.id)

        assert await local_index.count() == 2
        assert await local_index.get_paper(target.id) is None
        for mode in SearchMode:
            _, papers = await _search(local_index, embedder, mode, target.embedding_text())
            assert target.id not in [p.id for p in papers]

    async def test_vector_failure_rolls_back_lexical(self, local_index, embedder, holographic_paper):
        with patch.object(
            local_index.vectors, "replace", AsyncMock(side_effect=VectorStoreError("lance down"))
        ):
            with pytest.raises(VectorStoreError):
                await local_index.index_paper(holographic_paper, embedder.embed("x"))

        assert not local_index.lexical.has_pending
        assert local_index.lexical.count() == 0
        assert await local_index.count() == 0

    async def test_reindex_with_wrong_dimension_keeps_record(
        self, local_index, embedder, holographic_paper
    ):
        await _index_all(local_index, embedder, [holographic_paper])
        with pytest.raises(DimensionMismatchError):
            await local_index.index_paper(holographic_paper, [0.0] * (TEST_DIMENSION + 1))

        assert await local_index.count() == 1
        assert await local_index.get_paper(holographic_paper.id) == holographic_paper
        assert local_index.lexical.count() == 1
        assert not local_index.lexical.has_pending
        assert (await local_index.reconcile()).consistent

    async def test_failed_replace_keeps_previous_version(
        self, local_index, embedder, holographic_paper
    ):
        await _index_all(local_index, embedder, [holographic_paper])
        renamed = make_paper(holographic_paper.id, "Renamed holography paper")
        with patch.object(
            local_index.vectors, "replace", AsyncMock(side_effect=VectorStoreError("lance down"))
        ):
            with pytest.raises(VectorStoreError):
                await local_index.index_paper(renamed, embedder.embed(renamed.embedding_text()))

        assert (await local_index.get_paper(holographic_paper.id)).title == holographic_paper.title
        _, papers = await _search(local_index, embedder, SearchMode.LEXICAL, "renamed")
        assert papers == []
        assert (await local_index.reconcile()).consistent


class TestReconcile:
    async def test_consistent(self, local_index, embedder, sample_papers):
        await _index_all(local_index, embedder, sample_papers)
        report = await local_index.reconcile()
        assert report.consistent
        assert report.to_dict()["repaired"] is False

    async def test_detects_and_repairs(self, local_index, embedder, holographic_paper, quantum_paper):
        await _index_all(local_index, embedder, [holographic_paper, quantum_paper])
        # Simulate a crash between the two stores
        local_index.lexical.delete(quantum_paper.id)
        local_index.lexical.add("arxiv:ghost", "Ghost entry", None, [], None)
        local_index.lexical.commit()

        report = await local_index.reconcile()
        assert report.lexical_only == ["arxiv:ghost"]
        assert report.vector_only == [quantum_paper.id]
        assert not report.repaired

        report = await local_index.reconcile(repair=True)
        assert report.repaired
        assert (await local_index.reconcile()).consistent
        _, papers = await _search(local_index, embedder, SearchMode.LEXICAL, "decoherence")
        assert [p.id for p in papers] == [quantum_paper.id]
