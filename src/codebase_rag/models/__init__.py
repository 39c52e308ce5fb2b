from .chunk import CodeChunk, make_chunk_id
from .index_state import (
    UNKNOWN_COMMIT,
    BatchInfo,
    BatchState,
    IndexState,
    UpdateResult,
)
from .query import SearchMode, SearchOptions
from .search_result import SearchResult
