"""Configuration management for codebase-rag."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Embedding model characteristics - local sentence-transformers default
DEFAULT_EMBEDDING_MODEL_ID = "BAAI/bge-small-en-v1.5"
DEFAULT_EMBEDDING_DIMENSION = 384
FALLBACK_EMBEDDING_MODEL_ID = "sentence-transformers/all-MiniLM-L6-v2"

# Cross-encoder reranker
DEFAULT_CROSS_ENCODER_MODEL_ID = "cross-encoder/ms-marco-MiniLM-L-6-v2"

# Lexical ranking defaults
BM25_K1 = 1.2
BM25_B = 0.75
RRF_K = 60

# Directory created inside the repository when no store_dir is configured
DEFAULT_STORE_DIRNAME = ".codebase-rag-cache"


class Settings(BaseSettings):
    """Application settings.

    Values come from keyword arguments, environment variables and a ``.env``
    file, in that order of precedence.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow"
    )

    # Home for debug logs and model caches
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".codebase-rag")

    # Repository and index location
    repo_path: Path = Field(default_factory=Path.cwd)
    store_dir: Optional[Path] = None

    # Chunking
    chunk_size: int = Field(default=1500, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    max_chunks: Optional[int] = Field(default=None, gt=0)

    # Embeddings
    embedding_provider: str = "local"  # "local", or "none" for keyword-only indexes
    embedding_model: str = DEFAULT_EMBEDDING_MODEL_ID
    embedding_dimension: int = DEFAULT_EMBEDDING_DIMENSION
    embedding_batch_size: int = Field(default=32, gt=0)
    embedding_tokens_per_gb: int = 2048

    # Reranking
    enable_reranking: bool = False
    reranking_provider: str = "local"
    cross_encoder_model: str = DEFAULT_CROSS_ENCODER_MODEL_ID
    reranking_tokens_per_gb: int = 1024
    rerank_multiplier: int = Field(default=3, ge=1)

    # Retrieval
    use_hybrid_search: bool = True
    rrf_k: int = Field(default=RRF_K, gt=0)
    bm25_k1: float = Field(default=BM25_K1, ge=0.0)
    bm25_b: float = Field(default=BM25_B, ge=0.0, le=1.0)

    # When enabled, a cached index recorded at a different commit is rebuilt
    # instead of reused. Off by default: callers refresh the index explicitly.
    verify_commit_on_load: bool = False

    # Debug settings
    debug: bool = False

    @property
    def store_path(self) -> Path:
        """Directory holding the persisted index artifacts."""
        if self.store_dir is not None:
            return Path(self.store_dir)
        return Path(self.repo_path) / DEFAULT_STORE_DIRNAME

    @property
    def debug_log_dir(self) -> Path:
        """Get the debug log directory."""
        return self.data_dir / "logs"
