"""Core package initialization."""

from codebase_rag.core.fusion import reciprocal_rank_fusion
from codebase_rag.core.indexer import Indexer, IndexStatus
from codebase_rag.core.searcher import Searcher

__all__ = ["Indexer", "IndexStatus", "Searcher", "reciprocal_rank_fusion"]
