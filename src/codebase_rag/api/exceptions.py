"""Exceptions surfaced by the codebase-rag API.

Defined in ``codebase_rag.exceptions`` so the indexing internals can raise
them without importing the API layer.
"""

from codebase_rag.exceptions import (
    CorruptIndexError,
    IndexingCancelledError,
    IndexNotFoundError,
    PersistenceError,
    RAGError,
    VectorIndexError,
)

__all__ = [
    'RAGError',
    'IndexNotFoundError',
    'CorruptIndexError',
    'PersistenceError',
    'IndexingCancelledError',
    'VectorIndexError',
]
