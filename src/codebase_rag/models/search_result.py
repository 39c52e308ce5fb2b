"""Search result model returned by the Searcher."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .chunk import CodeChunk


@dataclass
class SearchResult:
    """A ranked chunk with the scores that produced its position.

    ``score`` is the value the result list is ordered by: cosine similarity in
    vector mode, BM25 in keyword mode, the fused RRF score in hybrid mode, or
    the reranker score when reranking ran. The per-signal scores are kept
    alongside for display and debugging.
    """

    chunk: CodeChunk
    score: float
    vector_score: Optional[float] = None
    bm25_score: Optional[float] = None
    rerank_score: Optional[float] = None
    doc_id: Optional[int] = None

    @property
    def id(self) -> str:
        return self.chunk.id

    @property
    def file_path(self) -> str:
        return self.chunk.file_path

    @property
    def content(self) -> str:
        return self.chunk.content

    def get_display_title(self) -> str:
        """Short label such as ``src/auth.ts:10-42 (login)``."""
        title = f"{self.chunk.file_path}:{self.chunk.start_line}-{self.chunk.end_line}"
        if self.chunk.name:
            title += f" ({self.chunk.name})"
        return title

    def to_dict(self) -> Dict[str, Any]:
        """Flatten into the chunk's camelCase record plus score fields."""
        data = self.chunk.to_metadata()
        data["score"] = self.score
        if self.vector_score is not None:
            data["vectorScore"] = self.vector_score
        if self.bm25_score is not None:
            data["bm25Score"] = self.bm25_score
        if self.rerank_score is not None:
            data["rerankScore"] = self.rerank_score
        return data
