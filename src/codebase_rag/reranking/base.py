from abc import ABC, abstractmethod
from typing import List, Optional, Tuple


class Reranker(ABC):
    """Rescores (query, document) pairs after first-stage retrieval."""

    @abstractmethod
    def rerank(
        self,
        query: str,
        documents: List[str],
        top_k: Optional[int] = None
    ) -> List[Tuple[int, float]]:
        """Rerank documents by relevance to query.

        Args:
            query: Search query
            documents: Candidate document texts
            top_k: Return only top K results (optional)

        Returns:
            List of (document_index, score) sorted by score descending
        """
