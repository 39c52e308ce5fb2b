"""Core operations for the codebase-rag API.

This module wraps the Indexer and Searcher for one-call use:
- index_repository: Build (or load) the index for a repository
- update_index: Re-index files changed since the last build
- index_batch / finalize_index: Build a large index across several runs
- search_repository: Query the index
- get_index_state: Inspect what the persisted index was built from
"""

from pathlib import Path
from typing import List, Optional, Sequence

from codebase_rag.models.index_state import BatchInfo, IndexState, UpdateResult
from codebase_rag.models.query import SearchMode, SearchOptions
from codebase_rag.models.search_result import SearchResult
from codebase_rag.utils.progress import log_info

from .context import RAGContext
from .exceptions import IndexNotFoundError


def _context(
    ctx: Optional[RAGContext],
    repo_path: Optional[Path],
    store_dir: Optional[Path],
    **kwargs,
) -> RAGContext:
    if ctx is not None:
        return ctx
    return RAGContext(repo_path=repo_path, store_dir=store_dir, **kwargs)


def index_repository(
    repo_path: Optional[Path] = None,
    force: bool = False,
    store_dir: Optional[Path] = None,
    embedding_provider: Optional[str] = None,
    max_chunks: Optional[int] = None,
    ctx: Optional[RAGContext] = None,
) -> Optional[IndexState]:
    """Index a repository, reusing the cached build unless ``force`` is set.

    Args:
        repo_path: Repository root (default: current directory)
        force: Rebuild even if a cached index exists
        store_dir: Optional custom index directory
        embedding_provider: "local" (default) or "none" for keyword-only
        max_chunks: Optional chunk budget; the most relevant chunks are kept
        ctx: Existing context to reuse instead of creating one

    Returns:
        State of the published index, or None if nothing was indexable

    Raises:
        IndexingCancelledError: If ctx.cancellation was triggered
        PersistenceError: If the index could not be written
    """
    ctx = _context(ctx, repo_path, store_dir, embedding_provider=embedding_provider, max_chunks=max_chunks)
    snapshot = ctx.indexer.index_repository(force=force)
    return snapshot.state


def update_index(
    changed_files: Optional[Sequence[str]] = None,
    repo_path: Optional[Path] = None,
    store_dir: Optional[Path] = None,
    embedding_provider: Optional[str] = None,
    ctx: Optional[RAGContext] = None,
) -> UpdateResult:
    """Re-index changed files.

    When ``changed_files`` is None, the files changed since the commit
    recorded in the index state are asked from source control.

    Raises:
        IndexNotFoundError: If the repository was never fully indexed
    """
    ctx = _context(ctx, repo_path, store_dir, embedding_provider=embedding_provider)
    indexer = ctx.indexer

    if changed_files is None:
        state = indexer.store.load_state()
        if state is None:
            raise IndexNotFoundError(indexer.store.store_path)
        changed_files = indexer.get_changed_files_since(state.commit_hash)
        log_info(f"{len(changed_files)} files changed since commit {state.short_commit}")

    return indexer.update_index(changed_files)


def index_batch(
    batch_number: int,
    batch_size: int,
    repo_path: Optional[Path] = None,
    store_dir: Optional[Path] = None,
    embedding_provider: Optional[str] = None,
    ctx: Optional[RAGContext] = None,
) -> BatchInfo:
    """Process one batch of a batched build; see ``Indexer.index_batch``."""
    ctx = _context(ctx, repo_path, store_dir, embedding_provider=embedding_provider)
    return ctx.indexer.index_batch(batch_number, batch_size)


def finalize_index(
    repo_path: Optional[Path] = None,
    store_dir: Optional[Path] = None,
    embedding_provider: Optional[str] = None,
    ctx: Optional[RAGContext] = None,
) -> Optional[IndexState]:
    """Complete a batched build; see ``Indexer.finalize_index``."""
    ctx = _context(ctx, repo_path, store_dir, embedding_provider=embedding_provider)
    snapshot = ctx.indexer.finalize_index()
    return snapshot.state if snapshot is not None else None


def search_repository(
    query: str,
    max_results: int = 10,
    file_types: Optional[List[str]] = None,
    exclude_tests: bool = False,
    mode: Optional[SearchMode] = None,
    rerank: bool = False,
    repo_path: Optional[Path] = None,
    store_dir: Optional[Path] = None,
    embedding_provider: Optional[str] = None,
    ctx: Optional[RAGContext] = None,
) -> List[SearchResult]:
    """Search the persisted index of a repository.

    The index is loaded from disk as it is; nothing is re-indexed. A
    repository without an index returns [].

    Example:
        ```python
        results = search_repository("authenticate user", max_results=5, exclude_tests=True)
        for result in results:
            print(f"{result.score:.3f} {result.get_display_title()}")
        ```
    """
    options = SearchOptions(
        max_results=max_results,
        file_types=file_types,
        exclude_tests=exclude_tests,
        mode=mode,
        rerank=rerank,
    )
    ctx = _context(
        ctx,
        repo_path,
        store_dir,
        embedding_provider=embedding_provider,
        enable_reranking=True if rerank else None,
    )

    indexer = ctx.indexer
    if indexer.get_document_count() == 0 and indexer.store.has_metadata():
        indexer.load_metadata_only()

    return ctx.searcher.search(query, options)


def get_index_state(
    repo_path: Optional[Path] = None,
    store_dir: Optional[Path] = None,
    ctx: Optional[RAGContext] = None,
) -> Optional[IndexState]:
    """Read index-state.json without loading any model."""
    ctx = _context(ctx, repo_path, store_dir, embedding_provider="none")
    return ctx.indexer.store.load_state()
