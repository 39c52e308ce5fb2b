"""Context holding the providers shared by indexing and search operations."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from codebase_rag.chunking.base import Chunker
from codebase_rag.chunking.line import LineChunker
from codebase_rag.config.settings import Settings
from codebase_rag.core.indexer import Indexer
from codebase_rag.core.searcher import Searcher
from codebase_rag.embeddings.base import Embedder
from codebase_rag.reranking.base import Reranker
from codebase_rag.utils.cancellation import CancellationToken
from codebase_rag.utils.debug import DebugLogger
from codebase_rag.vcs.base import VCSProvider

# embedding_provider value that disables vectors entirely
NO_EMBEDDINGS = "none"


@dataclass
class RAGContext:
    """Builds each provider once, on first access, and shares it.

    The Indexer and Searcher created here receive the same embedder instance,
    so a model is loaded at most once per context.

    Example:
        ```python
        with RAGContext(repo_path=Path("~/src/app").expanduser()) as ctx:
            ctx.indexer.index_repository()
            for result in ctx.searcher.search("authenticate user"):
                print(result.get_display_title(), result.score)
        ```

    Attributes:
        repo_path: Repository to index (default: current directory)
        store_dir: Where index artifacts live (default: <repo>/.codebase-rag-cache)
        embedding_provider: "local", or "none" for keyword-only indexing
        enable_reranking: Load the cross-encoder reranker
        max_chunks: Optional chunk budget for large repositories
        debug: Enable debug logging of model calls
    """

    repo_path: Optional[Path] = None
    store_dir: Optional[Path] = None
    embedding_provider: Optional[str] = None
    enable_reranking: Optional[bool] = None
    max_chunks: Optional[int] = None
    debug: bool = False

    cancellation: CancellationToken = field(default_factory=CancellationToken, repr=False)

    # Lazy-initialized components
    _settings: Optional[Settings] = field(default=None, init=False, repr=False)
    _embedder: Optional[Embedder] = field(default=None, init=False, repr=False)
    _embedder_loaded: bool = field(default=False, init=False, repr=False)
    _reranker: Optional[Reranker] = field(default=None, init=False, repr=False)
    _reranker_loaded: bool = field(default=False, init=False, repr=False)
    _chunker: Optional[Chunker] = field(default=None, init=False, repr=False)
    _vcs: Optional[VCSProvider] = field(default=None, init=False, repr=False)
    _vcs_detected: bool = field(default=False, init=False, repr=False)
    _indexer: Optional[Indexer] = field(default=None, init=False, repr=False)
    _searcher: Optional[Searcher] = field(default=None, init=False, repr=False)

    @property
    def settings(self) -> Settings:
        """Settings from the environment, overridden by the fields set here."""
        if self._settings is None:
            settings_kwargs = {}
            for name in ('repo_path', 'store_dir', 'embedding_provider', 'enable_reranking', 'max_chunks'):
                value = getattr(self, name)
                if value is not None:
                    settings_kwargs[name] = value
            if self.debug:
                settings_kwargs['debug'] = True

            self._settings = Settings(**settings_kwargs)
            if self._settings.debug:
                DebugLogger.configure(enabled=True, log_dir=self._settings.debug_log_dir)
        return self._settings

    @property
    def embedder(self) -> Optional[Embedder]:
        """Embedding provider, or None when embeddings are disabled."""
        if not self._embedder_loaded:
            if self.settings.embedding_provider != NO_EMBEDDINGS:
                from codebase_rag.embeddings.factory import create_embedder
                self._embedder = create_embedder(self.settings)
            self._embedder_loaded = True
        return self._embedder

    @property
    def reranker(self) -> Optional[Reranker]:
        """Cross-encoder reranker, or None when reranking is disabled."""
        if not self._reranker_loaded:
            from codebase_rag.reranking.factory import create_reranker
            self._reranker = create_reranker(self.settings)
            self._reranker_loaded = True
        return self._reranker

    @property
    def chunker(self) -> Chunker:
        if self._chunker is None:
            self._chunker = LineChunker(
                chunk_size=self.settings.chunk_size,
                chunk_overlap=self.settings.chunk_overlap,
            )
        return self._chunker

    @property
    def vcs(self) -> Optional[VCSProvider]:
        """Detected source-control provider, or None outside a repository."""
        if not self._vcs_detected:
            from codebase_rag.vcs.detector import detect_vcs
            self._vcs = detect_vcs(str(self.settings.repo_path))
            self._vcs_detected = True
        return self._vcs

    @property
    def indexer(self) -> Indexer:
        if self._indexer is None:
            self._indexer = Indexer(
                settings=self.settings,
                chunker=self.chunker,
                embedder=self.embedder,
                vcs=self.vcs,
                cancellation=self.cancellation,
            )
        return self._indexer

    @property
    def searcher(self) -> Searcher:
        if self._searcher is None:
            self._searcher = Searcher(
                indexer=self.indexer,
                settings=self.settings,
                embedder=self.embedder,
                reranker=self.reranker,
            )
        return self._searcher

    def close(self) -> None:
        """Release providers so their models can be garbage collected."""
        self._searcher = None
        self._indexer = None
        self._embedder = None
        self._embedder_loaded = False
        self._reranker = None
        self._reranker_loaded = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
