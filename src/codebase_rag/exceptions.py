"""Exceptions raised by the indexing pipeline, index store and searcher."""

from pathlib import Path
from typing import Optional, Union


class RAGError(Exception):
    """Base exception for all codebase-rag errors."""
    pass


class IndexNotFoundError(RAGError):
    """Raised when an operation needs a persisted index that does not exist."""

    def __init__(self, store_path: Union[str, Path], message: Optional[str] = None):
        """Initialize exception.

        Args:
            store_path: Directory where the index artifacts were expected
            message: Optional custom message
        """
        self.store_path = Path(store_path)
        if message is None:
            message = (
                f"No index found at '{self.store_path}'. "
                f"Run a full index (index_repository) before updating it."
            )
        super().__init__(message)


class CorruptIndexError(RAGError):
    """Raised when persisted index artifacts are unreadable or inconsistent."""

    def __init__(self, path: Union[str, Path], reason: str, message: Optional[str] = None):
        self.path = Path(path)
        self.reason = reason
        if message is None:
            message = f"Index artifact '{self.path}' is corrupt: {reason}"
        super().__init__(message)


class PersistenceError(RAGError):
    """Raised when index artifacts could not be written.

    The previously persisted artifacts are left in place.
    """

    def __init__(self, store_path: Union[str, Path], reason: str, message: Optional[str] = None):
        self.store_path = Path(store_path)
        self.reason = reason
        if message is None:
            message = f"Failed to persist index to '{self.store_path}': {reason}"
        super().__init__(message)


class IndexingCancelledError(RAGError):
    """Raised when a cancellation request is observed during indexing."""

    def __init__(self, stage: str = "indexing"):
        self.stage = stage
        super().__init__(f"Indexing cancelled during {stage}")


class VectorIndexError(RAGError):
    """Raised by vector index backends on insert, search or load failures."""
    pass
