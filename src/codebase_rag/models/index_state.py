"""Records describing a persisted index build and batched indexing progress."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


UNKNOWN_COMMIT = "unknown"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class _CamelModel(BaseModel):
    """Base for records persisted as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class IndexState(_CamelModel):
    """What produced the currently persisted index (index-state.json).

    Attributes:
        commit_hash: Source-control commit the build was made from
        indexed_at: ISO-8601 UTC timestamp of the build
        file_count: Number of files the chunks came from
        chunk_count: Number of indexed chunks (== number of docIds)
        embedding_model: Embedding model identifier used for the vectors
        has_hybrid_index: False when the build fell back to keyword-only search
    """

    commit_hash: str = UNKNOWN_COMMIT
    indexed_at: str = Field(default_factory=utc_now_iso)
    file_count: int = Field(default=0, ge=0)
    chunk_count: int = Field(default=0, ge=0)
    embedding_model: Optional[str] = None
    has_hybrid_index: bool = False

    @property
    def short_commit(self) -> str:
        return self.commit_hash[:7]


class BatchInfo(_CamelModel):
    """Progress of a batched indexing run, returned by ``index_batch``."""

    total_chunks: int
    total_batches: int
    current_batch: int
    batch_start: int
    batch_end: int
    chunks_in_batch: int


class BatchState(_CamelModel):
    """Checkpoint written after each batch (batch-<n>-state.json)."""

    batch_number: int
    batch_size: int
    batch_start: int
    batch_end: int
    chunks_processed: int
    completed_at: str = Field(default_factory=utc_now_iso)


class UpdateResult(_CamelModel):
    """Outcome of an incremental ``update_index`` call."""

    files_updated: int
    chunks_removed: int
    chunks_added: int
    commit_hash: str
