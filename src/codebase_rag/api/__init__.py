"""Public API for codebase-rag library usage.

Available exports:
    - Context: RAGContext for sharing providers between operations
    - Operations: index_repository, update_index, index_batch,
      finalize_index, search_repository, get_index_state
    - Exceptions: RAGError and its subclasses
    - Models: SearchOptions, SearchResult, IndexState, UpdateResult, BatchInfo

Example:
    ```python
    from codebase_rag.api import index_repository, search_repository

    state = index_repository(Path("."))
    print(f"{state.chunk_count} chunks, hybrid={state.has_hybrid_index}")

    for result in search_repository("parse config file", max_results=5):
        print(result.get_display_title())
    ```
"""

from .context import RAGContext

from .operations import (
    index_repository,
    update_index,
    index_batch,
    finalize_index,
    search_repository,
    get_index_state,
)

from .exceptions import (
    RAGError,
    IndexNotFoundError,
    CorruptIndexError,
    PersistenceError,
    IndexingCancelledError,
    VectorIndexError,
)

from codebase_rag.models import (
    BatchInfo,
    IndexState,
    SearchOptions,
    SearchResult,
    UpdateResult,
)

__all__ = [
    # Context
    'RAGContext',

    # Operations
    'index_repository',
    'update_index',
    'index_batch',
    'finalize_index',
    'search_repository',
    'get_index_state',

    # Exceptions
    'RAGError',
    'IndexNotFoundError',
    'CorruptIndexError',
    'PersistenceError',
    'IndexingCancelledError',
    'VectorIndexError',

    # Models
    'BatchInfo',
    'IndexState',
    'SearchOptions',
    'SearchResult',
    'UpdateResult',
]
