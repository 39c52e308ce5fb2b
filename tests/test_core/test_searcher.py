"""Tests for the Searcher across keyword, vector and hybrid modes."""

from unittest.mock import Mock

import pytest

from codebase_rag.config.settings import Settings
from codebase_rag.core.indexer import Indexer
from codebase_rag.core.searcher import Searcher
from codebase_rag.chunking.line import LineChunker
from codebase_rag.models.query import SearchOptions
from codebase_rag.reranking.base import Reranker

from conftest import FailingEmbedder, FakeEmbedder, write_file


AUTH_TEST_TS = """import { authenticateUser } from '../a';

describe('authenticateUser', () => {
  it('rejects a wrong password', async () => {
    expect(await authenticateUser('alice', 'nope')).toBe(false);
  });
});
"""

AUTH_PY = """def authenticate_user(username, password):
    record = find_user_record(username)
    return record is not None and check_password(record, password)
"""


@pytest.fixture
def hybrid_indexer(make_indexer):
    indexer = make_indexer(FakeEmbedder())
    indexer.index_repository()
    return indexer


@pytest.fixture
def keyword_indexer(make_indexer):
    indexer = make_indexer(None)
    indexer.index_repository()
    return indexer


def result_files(results):
    return [r.file_path for r in results]


class TestKeywordSearch:
    def test_identifier_query_finds_defining_file(self, keyword_indexer, settings):
        searcher = Searcher(keyword_indexer, settings)

        results = searcher.search("authenticateUser", SearchOptions(mode="keyword", max_results=1))

        assert len(results) == 1
        assert results[0].file_path == "a.ts"
        assert results[0].score > 0
        assert results[0].bm25_score == results[0].score
        assert results[0].vector_score is None

    def test_results_survive_reload(self, keyword_indexer, settings):
        before = Searcher(keyword_indexer, settings).search("formatCurrency amount", SearchOptions(mode="keyword"))

        reloaded = Indexer(settings=settings, chunker=LineChunker())
        reloaded.index_repository()
        after = Searcher(reloaded, settings).search("formatCurrency amount", SearchOptions(mode="keyword"))

        assert [(r.id, r.score) for r in after] == [(r.id, r.score) for r in before]

    def test_blank_query_returns_nothing(self, keyword_indexer, settings):
        searcher = Searcher(keyword_indexer, settings)

        assert searcher.search("") == []
        assert searcher.search("   \n") == []

    def test_empty_index_returns_nothing(self, make_indexer, settings):
        searcher = Searcher(make_indexer(FakeEmbedder()), settings, embedder=FakeEmbedder())

        assert searcher.search("authenticateUser") == []

    def test_unknown_terms_return_nothing(self, keyword_indexer, settings):
        results = Searcher(keyword_indexer, settings).search("kubernetes", SearchOptions(mode="keyword"))

        assert results == []


class TestFilters:
    @pytest.fixture
    def indexer(self, sample_repo, make_indexer):
        write_file(sample_repo, "tests/a.test.ts", AUTH_TEST_TS)
        write_file(sample_repo, "auth.py", AUTH_PY)
        indexer = make_indexer(None)
        indexer.index_repository()
        return indexer

    def test_unfiltered_query_matches_tests(self, indexer, settings):
        results = Searcher(indexer, settings).search("authenticateUser", SearchOptions(mode="keyword"))

        assert "tests/a.test.ts" in result_files(results)

    def test_exclude_tests(self, indexer, settings):
        options = SearchOptions(mode="keyword", exclude_tests=True)

        results = Searcher(indexer, settings).search("authenticateUser", options)

        assert "tests/a.test.ts" not in result_files(results)
        assert "a.ts" in result_files(results)

    def test_file_types(self, indexer, settings):
        options = SearchOptions(mode="keyword", file_types=[".py"])

        results = Searcher(indexer, settings).search("authenticate user", options)

        assert result_files(results) == ["auth.py"]


class TestModeSelection:
    def test_default_mode_is_hybrid_with_vectors(self, hybrid_indexer, settings):
        searcher = Searcher(hybrid_indexer, settings, embedder=FakeEmbedder())

        results = searcher.search("authenticateUser")

        assert results[0].file_path == "a.ts"
        assert results[0].vector_score is not None
        assert results[0].bm25_score is not None
        # RRF scores are bounded by one first place in each list
        assert results[0].score <= 2 / (settings.rrf_k + 1)

    def test_default_mode_is_vector_when_hybrid_disabled(self, hybrid_indexer, sample_repo):
        settings = Settings(repo_path=sample_repo, use_hybrid_search=False)
        searcher = Searcher(hybrid_indexer, settings, embedder=FakeEmbedder())

        results = searcher.search("authenticateUser")

        assert all(r.bm25_score is None for r in results)
        assert all(r.vector_score is not None for r in results)

    def test_default_mode_is_keyword_without_vectors(self, keyword_indexer, settings):
        searcher = Searcher(keyword_indexer, settings, embedder=FakeEmbedder())

        results = searcher.search("authenticateUser")

        assert result_files(results) == ["a.ts"]
        assert results[0].vector_score is None

    @pytest.mark.parametrize("mode", ["vector", "hybrid"])
    def test_requested_vector_mode_degrades_without_vectors(self, keyword_indexer, settings, mode):
        searcher = Searcher(keyword_indexer, settings, embedder=FakeEmbedder())

        results = searcher.search("authenticateUser", SearchOptions(mode=mode))

        assert result_files(results) == ["a.ts"]
        assert results[0].vector_score is None

    def test_failing_embedder_build_still_serves_hybrid_requests(self, make_indexer, settings):
        indexer = make_indexer(FailingEmbedder())
        indexer.index_repository()
        searcher = Searcher(indexer, settings, embedder=FailingEmbedder())

        results = searcher.search("authenticateUser", SearchOptions(mode="hybrid"))

        assert results
        assert results[0].file_path == "a.ts"
        assert all(r.vector_score is None for r in results)

    def test_query_embedding_failure_falls_back_to_keyword(self, hybrid_indexer, settings):
        searcher = Searcher(hybrid_indexer, settings, embedder=FailingEmbedder())

        results = searcher.search("authenticateUser", SearchOptions(mode="hybrid"))

        assert result_files(results) == ["a.ts"]
        assert results[0].vector_score is None

    def test_vector_mode_ranks_by_cosine(self, hybrid_indexer, settings):
        searcher = Searcher(hybrid_indexer, settings, embedder=FakeEmbedder())

        results = searcher.search("formatCurrency", SearchOptions(mode="vector"))

        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert all(-1.0 <= s <= 1.0 + 1e-6 for s in scores)

    def test_max_results_is_respected(self, hybrid_indexer, settings):
        searcher = Searcher(hybrid_indexer, settings, embedder=FakeEmbedder())

        results = searcher.search("export function const", SearchOptions(max_results=2))

        assert len(results) <= 2


class TestReranking:
    def _reranker(self, scores):
        reranker = Mock(spec=Reranker)
        reranker.rerank.side_effect = lambda query, docs, top_k=None: sorted(
            ((i, scores[i]) for i in range(len(docs))), key=lambda item: -item[1]
        )
        return reranker

    def test_rerank_reorders_and_replaces_scores(self, hybrid_indexer, settings):
        reranker = self._reranker([0.1, 0.9, 0.5])
        searcher = Searcher(hybrid_indexer, settings, embedder=FakeEmbedder(), reranker=reranker)
        options = SearchOptions(mode="keyword", rerank=True)

        # "export" appears in all three files
        fused = searcher.search("export", SearchOptions(mode="keyword"))
        reranked = searcher.search("export", options)

        assert len(fused) == 3
        assert [r.id for r in reranked] == [fused[1].id, fused[2].id, fused[0].id]
        assert [r.score for r in reranked] == [0.9, 0.5, 0.1]
        assert reranked[0].rerank_score == 0.9
        reranker.rerank.assert_called_once()

    def test_rerank_not_requested_leaves_reranker_unused(self, hybrid_indexer, settings):
        reranker = self._reranker([1.0, 1.0, 1.0])
        searcher = Searcher(hybrid_indexer, settings, embedder=FakeEmbedder(), reranker=reranker)

        searcher.search("export")

        reranker.rerank.assert_not_called()

    def test_reranker_failure_keeps_fused_order(self, hybrid_indexer, settings):
        reranker = Mock(spec=Reranker)
        reranker.rerank.side_effect = RuntimeError("model crashed")
        searcher = Searcher(hybrid_indexer, settings, embedder=FakeEmbedder(), reranker=reranker)

        plain = searcher.search("export", SearchOptions(mode="keyword"))
        reranked = searcher.search("export", SearchOptions(mode="keyword", rerank=True))

        assert [r.id for r in reranked] == [r.id for r in plain]
        assert all(r.rerank_score is None for r in reranked)
