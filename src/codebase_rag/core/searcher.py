"""
Search Engine Module

Answers queries against the snapshot published by the Indexer: BM25 keyword
search, brute-force vector search, or both fused with Reciprocal Rank Fusion,
optionally followed by cross-encoder reranking.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from codebase_rag.config.settings import Settings
from codebase_rag.core.fusion import reciprocal_rank_fusion
from codebase_rag.core.prioritizer import is_test_file
from codebase_rag.db.store import IndexSnapshot
from codebase_rag.embeddings.base import Embedder
from codebase_rag.exceptions import VectorIndexError
from codebase_rag.models.chunk import CodeChunk
from codebase_rag.models.query import SearchMode, SearchOptions
from codebase_rag.models.search_result import SearchResult
from codebase_rag.reranking.base import Reranker
from codebase_rag.utils.progress import log_info, log_warning

# Candidates fetched per result, before filtering
SINGLE_MODE_CANDIDATES = 2
HYBRID_MODE_CANDIDATES = 3

MAX_QUERY_CHARS = 2000


class Searcher:
    """
    Query engine over the Indexer's published snapshot.

    Responsibilities:
    - Pick the retrieval mode the current index can serve
    - Run keyword and/or vector retrieval and apply path filters
    - Fuse ranked lists with RRF
    - Rerank the fused candidates when asked to
    """

    def __init__(
        self,
        indexer,
        settings: Settings,
        embedder: Optional[Embedder] = None,
        reranker: Optional[Reranker] = None,
    ):
        """
        Args:
            indexer: Object exposing the current IndexSnapshot as ``snapshot``
            settings: Retrieval settings (hybrid default, RRF k, rerank multiplier)
            embedder: Query embedder; without one, search is keyword-only
            reranker: Optional cross-encoder used when SearchOptions.rerank is set
        """
        self.indexer = indexer
        self.settings = settings
        self.embedder = embedder
        self.reranker = reranker

    def search(self, query: str, options: Optional[SearchOptions] = None) -> List[SearchResult]:
        """
        Search the index.

        An empty index or a blank query yields [], never an exception.
        Vector and hybrid modes fall back to keyword search when there is no
        vector index or the query cannot be embedded.

        Returns:
            Up to ``options.max_results`` results, best first
        """
        options = options or SearchOptions()
        # One reference for the whole query, even if the indexer publishes meanwhile
        snapshot: IndexSnapshot = self.indexer.snapshot

        if not query or not query.strip() or snapshot.document_count == 0:
            return []

        mode = self._resolve_mode(options.mode, snapshot)
        log_info(f"Searching ({mode}) for: {query[:50]}...")

        query_vector = None
        if mode != "keyword":
            query_vector = self._embed_query(query)
            if query_vector is None:
                mode = "keyword"

        if mode == "keyword":
            candidates = self._keyword_results(query, snapshot, options)
        elif mode == "vector":
            candidates = self._vector_results(query_vector, snapshot, options)
            if candidates is None:
                candidates = self._keyword_results(query, snapshot, options)
        else:
            candidates = self._hybrid_results(query, query_vector, snapshot, options)

        if options.rerank and self.reranker is not None and candidates:
            candidates = self._rerank_results(query, candidates)

        return candidates[:options.max_results]

    # ------------------------------------------------------------------
    # Mode selection
    # ------------------------------------------------------------------

    def _resolve_mode(self, requested: Optional[SearchMode], snapshot: IndexSnapshot) -> SearchMode:
        vectors_usable = snapshot.has_vectors and self.embedder is not None

        if requested is None:
            if not vectors_usable:
                return "keyword"
            return "hybrid" if self.settings.use_hybrid_search else "vector"

        if requested != "keyword" and not vectors_usable:
            log_info(f"No vector index available; using keyword search instead of {requested}")
            return "keyword"
        return requested

    def _embed_query(self, query: str) -> Optional[List[float]]:
        try:
            return self.embedder.embed(query[:MAX_QUERY_CHARS])
        except Exception as e:
            log_warning(f"Query embedding failed, using keyword search: {e}")
            return None

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    @staticmethod
    def _passes_filters(chunk: CodeChunk, options: SearchOptions) -> bool:
        if options.exclude_tests and is_test_file(chunk.file_path):
            return False
        if options.file_types and not chunk.file_path.endswith(tuple(options.file_types)):
            return False
        return True

    def _filtered(
        self,
        ranked: Sequence[Tuple[int, float]],
        snapshot: IndexSnapshot,
        options: SearchOptions,
    ) -> List[Tuple[int, float]]:
        return [
            (doc_id, score) for doc_id, score in ranked
            if doc_id in snapshot.metadata and self._passes_filters(snapshot.metadata[doc_id], options)
        ]

    def _keyword_ranked(self, query: str, snapshot: IndexSnapshot, limit: int) -> List[Tuple[int, float]]:
        return snapshot.bm25.search(query, top_k=limit)

    def _vector_ranked(
        self,
        query_vector: List[float],
        snapshot: IndexSnapshot,
        limit: int,
    ) -> Optional[List[Tuple[int, float]]]:
        """Vector hits, or None when the index cannot answer the query."""
        try:
            ids, scores = snapshot.vector_index.search(query_vector, limit)
        except VectorIndexError as e:
            log_warning(f"Vector search failed, using keyword search: {e}")
            return None
        return list(zip(ids, scores))

    def _keyword_results(self, query: str, snapshot: IndexSnapshot, options: SearchOptions) -> List[SearchResult]:
        limit = options.max_results * SINGLE_MODE_CANDIDATES
        ranked = self._filtered(self._keyword_ranked(query, snapshot, limit), snapshot, options)
        return [
            SearchResult(chunk=snapshot.metadata[doc_id], score=score, bm25_score=score, doc_id=doc_id)
            for doc_id, score in ranked
        ]

    def _vector_results(
        self,
        query_vector: List[float],
        snapshot: IndexSnapshot,
        options: SearchOptions,
    ) -> Optional[List[SearchResult]]:
        limit = options.max_results * SINGLE_MODE_CANDIDATES
        ranked = self._vector_ranked(query_vector, snapshot, limit)
        if ranked is None:
            return None
        return [
            SearchResult(chunk=snapshot.metadata[doc_id], score=score, vector_score=score, doc_id=doc_id)
            for doc_id, score in self._filtered(ranked, snapshot, options)
        ]

    def _hybrid_results(
        self,
        query: str,
        query_vector: List[float],
        snapshot: IndexSnapshot,
        options: SearchOptions,
    ) -> List[SearchResult]:
        limit = options.max_results * HYBRID_MODE_CANDIDATES

        vector_ranked = self._vector_ranked(query_vector, snapshot, limit) or []
        vector_hits = self._filtered(vector_ranked, snapshot, options)
        keyword_hits = self._filtered(self._keyword_ranked(query, snapshot, limit), snapshot, options)

        vector_scores: Dict[int, float] = dict(vector_hits)
        bm25_scores: Dict[int, float] = dict(keyword_hits)

        fused = reciprocal_rank_fusion(
            [[doc_id for doc_id, _ in vector_hits], [doc_id for doc_id, _ in keyword_hits]],
            k=self.settings.rrf_k,
        )

        keep = options.max_results
        if options.rerank and self.reranker is not None:
            keep *= self.settings.rerank_multiplier

        return [
            SearchResult(
                chunk=snapshot.metadata[doc_id],
                score=fused_score,
                vector_score=vector_scores.get(doc_id),
                bm25_score=bm25_scores.get(doc_id),
                doc_id=doc_id,
            )
            for doc_id, fused_score in fused[:keep]
        ]

    # ------------------------------------------------------------------
    # Reranking
    # ------------------------------------------------------------------

    def _rerank_results(self, query: str, results: List[SearchResult]) -> List[SearchResult]:
        """Reorder by cross-encoder score; on failure keep the incoming order."""
        log_info(f"Reranking {len(results)} results with cross-encoder...")
        try:
            ranked = self.reranker.rerank(query, [r.content for r in results])
        except Exception as e:
            log_warning(f"Reranking failed, keeping fused order: {e}")
            return results

        reranked = []
        for idx, score in ranked:
            result = results[idx]
            result.rerank_score = float(score)
            result.score = float(score)
            reranked.append(result)
        return reranked
