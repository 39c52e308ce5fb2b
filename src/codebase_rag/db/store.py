"""On-disk persistence of index builds.

A build is four artifacts in one directory:

- ``metadata.json``: doc id (string) -> chunk record
- ``index.npy``: the vector index (absent for keyword-only builds)
- ``bm25-index.json``: lexical index statistics
- ``index-state.json``: IndexState record

All four are published together. ``save_build`` writes them into a staging
directory, moves the current artifacts aside, and moves the staged ones into
place; if any move fails, the previous artifacts are restored. Readers never
see metadata from one build next to vectors from another.
"""

import json
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ..config.settings import BM25_B, BM25_K1
from ..exceptions import (
    CorruptIndexError,
    IndexNotFoundError,
    PersistenceError,
    VectorIndexError,
)
from ..models.chunk import CodeChunk
from ..models.index_state import BatchState, IndexState
from ..utils.progress import log_error, log_warning
from .lexical.bm25 import BM25Index
from .vector.base import VectorIndex
from .vector.flat import FlatVectorIndex

METADATA_FILE = "metadata.json"
VECTOR_INDEX_FILE = "index.npy"
BM25_INDEX_FILE = "bm25-index.json"
INDEX_STATE_FILE = "index-state.json"

# Swap order: state last, so a present state file implies the rest moved
BUILD_ARTIFACTS = (METADATA_FILE, VECTOR_INDEX_FILE, BM25_INDEX_FILE, INDEX_STATE_FILE)


@dataclass
class IndexSnapshot:
    """One consistent build: chunks keyed by doc id plus both indices.

    The searcher holds a reference to a snapshot; the indexer publishes a new
    snapshot by replacing that reference, never by mutating one in place.
    """

    metadata: Dict[int, CodeChunk] = field(default_factory=dict)
    bm25: BM25Index = field(default_factory=BM25Index)
    vector_index: Optional[VectorIndex] = None
    state: Optional[IndexState] = None

    @property
    def document_count(self) -> int:
        return len(self.metadata)

    @property
    def has_vectors(self) -> bool:
        return self.vector_index is not None and self.vector_index.count > 0

    def ordered_chunks(self) -> List[CodeChunk]:
        """Chunks in doc id order."""
        return [self.metadata[doc_id] for doc_id in sorted(self.metadata)]


def _write_json(path: Path, payload, indent: Optional[int] = None) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=indent, ensure_ascii=False)
        f.flush()
        os.fsync(f.fileno())


def atomic_write_json(path: Path, payload, indent: Optional[int] = None) -> None:
    """Write JSON to a sibling ``*.tmp`` file and rename it over ``path``."""
    tmp = path.with_name(path.name + ".tmp")
    try:
        _write_json(tmp, payload, indent=indent)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def metadata_to_json(metadata: Dict[int, CodeChunk]) -> dict:
    return {str(doc_id): metadata[doc_id].to_metadata() for doc_id in sorted(metadata)}


def metadata_from_json(payload: dict, path: Path) -> Dict[int, CodeChunk]:
    if not isinstance(payload, dict):
        raise CorruptIndexError(path, "expected a JSON object of doc id -> chunk")
    metadata: Dict[int, CodeChunk] = {}
    for key, record in payload.items():
        try:
            metadata[int(key)] = CodeChunk.from_metadata(record)
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptIndexError(path, f"bad record for doc id {key!r}: {e}") from e
    return metadata


class IndexStore:
    """Reads and writes index builds under a single store directory.

    Single writer, many readers: callers serialise writes (the Indexer holds
    a lock); reads may happen at any time and see either the old or the new
    build, never a mix.
    """

    def __init__(self, store_path: Path, bm25_k1: float = BM25_K1, bm25_b: float = BM25_B):
        self.store_path = Path(store_path)
        self.bm25_k1 = bm25_k1
        self.bm25_b = bm25_b

    @property
    def metadata_path(self) -> Path:
        return self.store_path / METADATA_FILE

    @property
    def vector_index_path(self) -> Path:
        return self.store_path / VECTOR_INDEX_FILE

    @property
    def bm25_path(self) -> Path:
        return self.store_path / BM25_INDEX_FILE

    @property
    def state_path(self) -> Path:
        return self.store_path / INDEX_STATE_FILE

    def batch_state_path(self, batch_number: int) -> Path:
        return self.store_path / f"batch-{batch_number}-state.json"

    def exists(self) -> bool:
        """True when a completed build (metadata + state) is on disk."""
        return self.metadata_path.exists() and self.state_path.exists()

    def has_metadata(self) -> bool:
        return self.metadata_path.exists()

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def load_state(self) -> Optional[IndexState]:
        """Read index-state.json, or None if absent.

        Raises:
            CorruptIndexError: If the file exists but cannot be parsed
        """
        if not self.state_path.exists():
            return None
        try:
            with open(self.state_path, "r", encoding="utf-8") as f:
                return IndexState.model_validate(json.load(f))
        except (OSError, ValueError) as e:
            raise CorruptIndexError(self.state_path, str(e)) from e

    def load_metadata(self) -> Dict[int, CodeChunk]:
        """Read metadata.json.

        Raises:
            IndexNotFoundError: If metadata.json does not exist
            CorruptIndexError: If it cannot be parsed
        """
        if not self.metadata_path.exists():
            raise IndexNotFoundError(self.store_path)
        try:
            with open(self.metadata_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError) as e:
            raise CorruptIndexError(self.metadata_path, str(e)) from e
        return metadata_from_json(payload, self.metadata_path)

    def load_bm25(self, metadata: Dict[int, CodeChunk]) -> BM25Index:
        """Read bm25-index.json, rebuilding it from metadata when absent.

        Raises:
            CorruptIndexError: If the file is unreadable or covers other doc ids
        """
        if not self.bm25_path.exists():
            return self.build_bm25(metadata)
        try:
            with open(self.bm25_path, "r", encoding="utf-8") as f:
                bm25 = BM25Index.from_dict(json.load(f), k1=self.bm25_k1, b=self.bm25_b)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise CorruptIndexError(self.bm25_path, str(e)) from e
        if set(bm25.term_frequency) != set(metadata):
            raise CorruptIndexError(self.bm25_path, "doc ids do not match metadata.json")
        return bm25

    def build_bm25(self, metadata: Dict[int, CodeChunk]) -> BM25Index:
        return BM25Index.build(
            ((doc_id, chunk.lexical_text()) for doc_id, chunk in sorted(metadata.items())),
            k1=self.bm25_k1,
            b=self.bm25_b,
        )

    def load_build(self, strict: bool = True) -> IndexSnapshot:
        """Load the persisted build.

        Args:
            strict: Raise on any inconsistency. When False, a mismatched
                lexical index is rebuilt from metadata, and a mismatched
                vector index is dropped with a warning so the snapshot
                degrades to keyword-only search.

        Raises:
            IndexNotFoundError: If no metadata.json exists
            CorruptIndexError: If artifacts are unreadable or disagree
        """
        metadata = self.load_metadata()
        state = self.load_state()
        dense = set(metadata) == set(range(len(metadata)))

        if strict and not dense:
            raise CorruptIndexError(self.metadata_path, "doc ids are not a dense 0..N-1 range")

        try:
            bm25 = self.load_bm25(metadata)
        except CorruptIndexError as e:
            if strict:
                raise
            log_warning(f"Rebuilding lexical index: {e.reason}")
            bm25 = self.build_bm25(metadata)

        vector_index: Optional[VectorIndex] = None
        try:
            vector_index = self._load_vector_index(metadata, dense)
        except CorruptIndexError as e:
            if strict:
                raise
            log_warning(f"Ignoring vector index: {e.reason}")

        if strict and state is not None and state.has_hybrid_index and vector_index is None:
            raise CorruptIndexError(self.vector_index_path, "index state expects a vector index")

        return IndexSnapshot(metadata=metadata, bm25=bm25, vector_index=vector_index, state=state)

    def _load_vector_index(self, metadata: Dict[int, CodeChunk], dense: bool) -> Optional[VectorIndex]:
        if not self.vector_index_path.exists():
            return None
        try:
            vector_index = FlatVectorIndex.load(self.vector_index_path)
        except VectorIndexError as e:
            raise CorruptIndexError(self.vector_index_path, str(e)) from e
        if not dense or vector_index.count != len(metadata):
            raise CorruptIndexError(
                self.vector_index_path,
                f"{vector_index.count} vectors for {len(metadata)} metadata records",
            )
        return vector_index

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def save_build(self, snapshot: IndexSnapshot) -> None:
        """Publish all artifacts of a build, or leave the previous build intact.

        A snapshot without a vector index removes any stale index.npy.

        Raises:
            PersistenceError: If staging or swapping fails
        """
        if snapshot.state is None:
            raise ValueError("Cannot persist a build without an index state")

        try:
            self.store_path.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=".staging-", dir=self.store_path))
        except OSError as e:
            raise PersistenceError(self.store_path, str(e)) from e

        try:
            staged = self._stage(snapshot, staging)
            self._swap(staging, staged)
        except OSError as e:
            raise PersistenceError(self.store_path, str(e)) from e
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    def _stage(self, snapshot: IndexSnapshot, staging: Path) -> List[str]:
        staged = [METADATA_FILE, BM25_INDEX_FILE]
        _write_json(staging / METADATA_FILE, metadata_to_json(snapshot.metadata))
        _write_json(staging / BM25_INDEX_FILE, snapshot.bm25.to_dict())
        if snapshot.vector_index is not None:
            snapshot.vector_index.save(staging / VECTOR_INDEX_FILE)
            staged.append(VECTOR_INDEX_FILE)
        _write_json(staging / INDEX_STATE_FILE, snapshot.state.to_json_dict(), indent=2)
        staged.append(INDEX_STATE_FILE)
        return [name for name in BUILD_ARTIFACTS if name in staged]

    def _swap(self, staging: Path, staged: List[str]) -> None:
        backup = Path(tempfile.mkdtemp(prefix=".backup-", dir=self.store_path))
        moved_aside: List[str] = []
        published: List[str] = []
        try:
            for name in BUILD_ARTIFACTS:
                current = self.store_path / name
                if current.exists():
                    os.replace(current, backup / name)
                    moved_aside.append(name)
            for name in staged:
                os.replace(staging / name, self.store_path / name)
                published.append(name)
        except OSError as e:
            log_error(f"Publishing index artifacts failed ({e}); restoring the previous build")
            for name in published:
                (self.store_path / name).unlink(missing_ok=True)
            for name in moved_aside:
                os.replace(backup / name, self.store_path / name)
            raise
        finally:
            shutil.rmtree(backup, ignore_errors=True)

    def clear_build(self) -> bool:
        """Remove the published build artifacts; True if anything was removed.

        State goes first, so an interrupted clear never looks like a complete build.

        Raises:
            PersistenceError: If an artifact could not be removed
        """
        removed = False
        try:
            for name in reversed(BUILD_ARTIFACTS):
                path = self.store_path / name
                if path.exists():
                    path.unlink()
                    removed = True
        except OSError as e:
            raise PersistenceError(self.store_path, str(e)) from e
        return removed

    def save_metadata(self, metadata: Dict[int, CodeChunk]) -> None:
        """Atomically replace metadata.json on its own (batched indexing)."""
        try:
            self.store_path.mkdir(parents=True, exist_ok=True)
            atomic_write_json(self.metadata_path, metadata_to_json(metadata))
        except OSError as e:
            raise PersistenceError(self.store_path, str(e)) from e

    def write_batch_state(self, batch_state: BatchState) -> None:
        try:
            atomic_write_json(
                self.batch_state_path(batch_state.batch_number),
                batch_state.to_json_dict(),
                indent=2,
            )
        except OSError as e:
            raise PersistenceError(self.store_path, str(e)) from e

    def clear_batch_states(self) -> int:
        """Delete batch checkpoint files; returns how many were removed."""
        removed = 0
        if not self.store_path.exists():
            return removed
        for path in self.store_path.glob("batch-*-state.json"):
            path.unlink(missing_ok=True)
            removed += 1
        return removed
