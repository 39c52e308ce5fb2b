import threading
from dataclasses import replace
from enum import Enum
from math import ceil
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from codebase_rag.chunking.base import Chunker
from codebase_rag.config.settings import Settings
from codebase_rag.core.discovery import discover_files, is_indexable
from codebase_rag.core.prioritizer import DEFAULT_POLICY, PriorityPolicy, prioritize_chunks
from codebase_rag.db.store import IndexSnapshot, IndexStore
from codebase_rag.db.vector.base import VectorIndex
from codebase_rag.db.vector.flat import FlatVectorIndex
from codebase_rag.embeddings.base import Embedder
from codebase_rag.exceptions import CorruptIndexError, IndexNotFoundError, VectorIndexError
from codebase_rag.models.chunk import CodeChunk
from codebase_rag.models.index_state import (
    UNKNOWN_COMMIT,
    BatchInfo,
    BatchState,
    IndexState,
    UpdateResult,
)
from codebase_rag.utils.batching import fixed_size_batches
from codebase_rag.utils.cancellation import CancellationToken
from codebase_rag.utils.progress import (
    console,
    create_progress_bar,
    log_info,
    log_success,
    log_warning,
    update_progress,
)
from codebase_rag.vcs.base import VCSProvider

# Embedding text budget
MAX_EMBEDDING_CHARS = 2000
MIN_CONTENT_CHARS = 500
MAX_DOCUMENTATION_CHARS = 300

Vector = List[float]


class IndexStatus(str, Enum):
    EMPTY = "empty"
    BUILDING = "building"
    BUILT = "built"
    UPDATING = "updating"
    BATCH_BUILDING = "batch_building"
    FINALIZING = "finalizing"


def build_embedding_text(chunk: CodeChunk) -> str:
    """Text sent to the embedder for a chunk.

    Domain context and a documentation excerpt go first so the vector
    reflects what the code is for, not only its tokens.
    """
    prefix = ""
    if chunk.domain_context:
        prefix = f"{chunk.domain_context}\n\n"
    if chunk.documentation:
        prefix += f"{chunk.documentation[:MAX_DOCUMENTATION_CHARS]}\n\n"
    budget = max(MAX_EMBEDDING_CHARS - len(prefix), MIN_CONTENT_CHARS)
    return prefix + chunk.content[:budget]


class Indexer:
    """Builds, updates and persists the hybrid index for one repository.

    The indexer owns all index structures while it builds them. Readers (the
    Searcher) only ever see ``snapshot``, which is replaced as a whole once a
    build has been persisted.

    Without an embedder every build is keyword-only.
    """

    def __init__(
        self,
        settings: Settings,
        chunker: Chunker,
        embedder: Optional[Embedder] = None,
        vcs: Optional[VCSProvider] = None,
        store: Optional[IndexStore] = None,
        cancellation: Optional[CancellationToken] = None,
        priority_policy: PriorityPolicy = DEFAULT_POLICY,
    ):
        self.settings = settings
        self.repo_path = Path(settings.repo_path)
        self.chunker = chunker
        self.embedder = embedder
        self.vcs = vcs
        self.store = store or IndexStore(settings.store_path, settings.bm25_k1, settings.bm25_b)
        self.cancellation = cancellation or CancellationToken()
        self.priority_policy = priority_policy

        self.status = IndexStatus.EMPTY
        self._snapshot = IndexSnapshot()
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> IndexSnapshot:
        """The latest published build."""
        return self._snapshot

    def _publish(self, snapshot: IndexSnapshot) -> None:
        self._snapshot = snapshot

    def _check_cancelled(self, stage: str) -> None:
        self.cancellation.raise_if_cancelled(stage)

    def _current_commit(self) -> str:
        if self.vcs is None:
            return UNKNOWN_COMMIT
        return self.vcs.get_current_commit(str(self.repo_path))

    # ------------------------------------------------------------------
    # Discovery and chunking
    # ------------------------------------------------------------------

    def _chunk_file(self, file_path: str) -> Optional[List[CodeChunk]]:
        """Chunk one file; None when it cannot be read or chunked."""
        try:
            return self.chunker.chunk_file(file_path, self.repo_path)
        except (OSError, UnicodeDecodeError, ValueError) as e:
            log_warning(f"Skipping {file_path}: {e}")
            return None

    def _chunk_files(self, files: Sequence[str], description: str = "Chunking files") -> List[CodeChunk]:
        chunks: List[CodeChunk] = []
        progress, task_id = create_progress_bar(description, total=len(files))
        with progress:
            for file_path in files:
                self._check_cancelled("chunking")
                file_chunks = self._chunk_file(file_path)
                if file_chunks:
                    chunks.extend(file_chunks)
                progress.advance(task_id)
        return chunks

    def _discover_and_chunk(self) -> Tuple[List[str], List[CodeChunk]]:
        files = discover_files(self.repo_path, self.cancellation)
        log_info(f"Found {len(files)} indexable files")
        chunks = self._chunk_files(files)
        log_info(f"Produced {len(chunks)} chunks")
        return files, chunks

    def _apply_budget(self, chunks: List[CodeChunk]) -> List[CodeChunk]:
        max_chunks = self.settings.max_chunks
        if max_chunks is None or len(chunks) <= max_chunks:
            return chunks
        log_info(f"Limiting {len(chunks)} chunks to the {max_chunks} most relevant")
        return prioritize_chunks(chunks, max_chunks, self.priority_policy)

    # ------------------------------------------------------------------
    # Embedding and index construction
    # ------------------------------------------------------------------

    def _embed_one(self, text: str, position: int) -> Optional[Vector]:
        try:
            return self.embedder.embed(text)
        except Exception as e:
            log_warning(f"Embedding failed for chunk {position}, using a zero vector: {e}")
            return None

    def _embed_chunks(self, chunks: Sequence[CodeChunk]) -> List[Optional[Vector]]:
        """Embed chunks in fixed-size batches.

        A failing batch is retried one text at a time; texts that still fail
        come back as None and later become zero vectors.

        Raises:
            IndexingCancelledError: Checked before every batch
        """
        texts = [build_embedding_text(chunk) for chunk in chunks]
        vectors: List[Optional[Vector]] = []

        progress, task_id = create_progress_bar("Embedding chunks", total=len(texts))
        with progress:
            for offset, batch in fixed_size_batches(texts, self.settings.embedding_batch_size):
                self._check_cancelled("embedding")
                try:
                    batch_vectors = self.embedder.embed_batch(list(batch))
                    if len(batch_vectors) != len(batch):
                        raise ValueError(
                            f"embedder returned {len(batch_vectors)} vectors for {len(batch)} texts"
                        )
                except Exception as e:
                    log_warning(f"Embedding batch at chunk {offset} failed ({e}); retrying chunk by chunk")
                    batch_vectors = [self._embed_one(text, offset + i) for i, text in enumerate(batch)]
                vectors.extend(batch_vectors)
                update_progress(progress, task_id, advance=len(batch))

        return vectors

    def _assemble_vector_index(self, vectors: List[Optional[Vector]]) -> Optional[VectorIndex]:
        """Build the vector index, or None to fall back to keyword-only search."""
        dimension = next((len(v) for v in vectors if v is not None), None)
        if dimension is None:
            log_warning("No chunk could be embedded; building a keyword-only index")
            return None

        if dimension != self.settings.embedding_dimension:
            log_info(
                f"Adjusting embedding dimension: expected {self.settings.embedding_dimension}, got {dimension}"
            )

        failed = sum(1 for v in vectors if v is None)
        if failed:
            log_warning(f"{failed} chunks have zero vectors and only match by keyword")

        zeros = [0.0] * dimension
        try:
            vector_index = FlatVectorIndex(dimension)
            vector_index.add([v if v is not None else zeros for v in vectors])
        except VectorIndexError as e:
            log_warning(f"Vector index build failed, falling back to keyword search: {e}")
            return None
        return vector_index

    def _build_snapshot(self, chunks: List[CodeChunk], commit: str) -> IndexSnapshot:
        """Assign dense doc ids and build both indices from one chunk list."""
        metadata: Dict[int, CodeChunk] = dict(enumerate(chunks))

        vector_index = None
        if self.embedder is not None and chunks:
            vector_index = self._assemble_vector_index(self._embed_chunks(chunks))

        bm25 = self.store.build_bm25(metadata)
        state = IndexState(
            commit_hash=commit,
            file_count=len({c.file_path for c in chunks}),
            chunk_count=len(chunks),
            embedding_model=getattr(self.embedder, "model_id", None) if vector_index is not None else None,
            has_hybrid_index=vector_index is not None,
        )
        return IndexSnapshot(metadata=metadata, bm25=bm25, vector_index=vector_index, state=state)

    def _log_summary(self, verb: str, snapshot: IndexSnapshot) -> None:
        state = snapshot.state
        mode = "hybrid" if snapshot.has_vectors else "keyword-only"
        log_success(
            f"{verb} {snapshot.document_count} chunks from {state.file_count} files "
            f"({mode}, commit {state.short_commit})"
        )

    # ------------------------------------------------------------------
    # Full build
    # ------------------------------------------------------------------

    def _embedding_mismatch(self, snapshot: IndexSnapshot) -> Optional[str]:
        """Describe how the stored vectors differ from the current embedder, or None.

        Vectors from another model (or of another length) cannot be compared
        with query vectors, so such a build has to be re-embedded.
        """
        if self.embedder is None or not snapshot.has_vectors:
            return None

        recorded_model = snapshot.state.embedding_model if snapshot.state else None
        current_model = getattr(self.embedder, "model_id", None)
        if recorded_model != current_model:
            return f"model {recorded_model}, current model is {current_model}"

        if snapshot.vector_index.dimension != self.embedder.dimension:
            return (
                f"{snapshot.vector_index.dimension}-dimensional vectors, "
                f"current embedder produces {self.embedder.dimension}"
            )
        return None

    def _load_cached(self, commit: str) -> Optional[IndexSnapshot]:
        try:
            snapshot = self.store.load_build(strict=True)
        except CorruptIndexError as e:
            log_warning(f"Cached index is unusable ({e.reason}); rebuilding")
            return None

        mismatch = self._embedding_mismatch(snapshot)
        if mismatch:
            log_info(f"Cached index was built with {mismatch}; rebuilding")
            return None

        recorded = snapshot.state.commit_hash if snapshot.state else UNKNOWN_COMMIT
        if (
            self.settings.verify_commit_on_load
            and UNKNOWN_COMMIT not in (recorded, commit)
            and recorded != commit
        ):
            log_info(f"Cached index is from commit {recorded[:7]}, repository is at {commit[:7]}; rebuilding")
            return None

        log_info(f"Loaded cached index: {snapshot.document_count} chunks (commit {recorded[:7]})")
        return snapshot

    def index_repository(self, force: bool = False) -> IndexSnapshot:
        """Build the index, or load the cached build when one exists.

        The recorded commit of a cached build is only logged, not compared,
        unless ``settings.verify_commit_on_load`` is set. Callers refresh a
        stale index with ``force=True`` or ``update_index``.

        Args:
            force: Ignore any cached build and re-index everything

        Returns:
            The published snapshot

        Raises:
            IndexingCancelledError: If cancelled; nothing is persisted
            PersistenceError: If the artifacts could not be written
        """
        with self._lock:
            previous = self.status
            commit = self._current_commit()

            if not force and self.store.exists():
                cached = self._load_cached(commit)
                if cached is not None:
                    self._publish(cached)
                    self.status = IndexStatus.BUILT
                    return cached

            self.status = IndexStatus.BUILDING
            try:
                console.print(f"[green]Indexing {self.repo_path} (commit {commit[:7]})")
                files, chunks = self._discover_and_chunk()

                if not chunks:
                    log_warning("No indexable chunks found; nothing to index")
                    if self.store.clear_build():
                        log_info("Removed the previous build from the index store")
                    snapshot = IndexSnapshot()
                    self._publish(snapshot)
                    self.status = IndexStatus.EMPTY
                    return snapshot

                chunks = self._apply_budget(chunks)
                snapshot = self._build_snapshot(chunks, commit)
                self._check_cancelled("persistence")
                self.store.save_build(snapshot)
            except BaseException:
                self.status = previous
                raise

            self._publish(snapshot)
            self.status = IndexStatus.BUILT
            self._log_summary("Indexed", snapshot)
            return snapshot

    # ------------------------------------------------------------------
    # Incremental update
    # ------------------------------------------------------------------

    def update_index(self, changed_files: Iterable[str]) -> UpdateResult:
        """Re-chunk changed files and rebuild both indices over the result.

        Chunks of unchanged files are kept as they are; chunks of changed
        files are dropped and replaced by fresh chunks of the files that still
        exist. The whole working set is re-embedded, since the flat vector
        index has no delete.

        Args:
            changed_files: Paths relative to the repository root

        Raises:
            IndexNotFoundError: If no full index was persisted before
            CorruptIndexError: If the persisted metadata is unreadable
            IndexingCancelledError: If cancelled; nothing is persisted
            PersistenceError: If the artifacts could not be written
        """
        with self._lock:
            if not self.store.has_metadata():
                raise IndexNotFoundError(self.store.store_path)

            previous = self.status
            self.status = IndexStatus.UPDATING
            try:
                metadata = self.store.load_metadata()
                changed = sorted({Path(p).as_posix() for p in changed_files})
                changed_set = set(changed)

                kept = [c for _, c in sorted(metadata.items()) if c.file_path not in changed_set]
                removed = len(metadata) - len(kept)

                added: List[CodeChunk] = []
                files_updated = 0
                for file_path in changed:
                    self._check_cancelled("chunking")
                    if not (self.repo_path / file_path).is_file() or not is_indexable(file_path):
                        continue
                    file_chunks = self._chunk_file(file_path)
                    if file_chunks is None:
                        continue
                    files_updated += 1
                    added.extend(file_chunks)

                log_info(
                    f"Updating index: {len(changed)} changed files, "
                    f"{removed} chunks removed, {len(added)} chunks added"
                )

                commit = self._current_commit()
                snapshot = self._build_snapshot(kept + added, commit)
                self._check_cancelled("persistence")
                self.store.save_build(snapshot)
            except BaseException:
                self.status = previous
                raise

            self._publish(snapshot)
            self.status = IndexStatus.BUILT
            self._log_summary("Updated index:", snapshot)
            return UpdateResult(
                files_updated=files_updated,
                chunks_removed=removed,
                chunks_added=len(added),
                commit_hash=commit,
            )

    def get_changed_files_since(self, commit_hash: str) -> List[str]:
        """Files changed between ``commit_hash`` and HEAD; [] without a VCS."""
        if self.vcs is None:
            return []
        return self.vcs.get_changed_files_since(str(self.repo_path), commit_hash)

    # ------------------------------------------------------------------
    # Batched build
    # ------------------------------------------------------------------

    def discover_chunk_count(self) -> Tuple[int, int]:
        """Return ``(files, chunks)`` for planning a batched build."""
        files = discover_files(self.repo_path, self.cancellation)
        chunks = self._chunk_files(files, description="Counting chunks")
        return len(files), len(chunks)

    def index_batch(self, batch_number: int, batch_size: int) -> BatchInfo:
        """Embed one slice of the repository's chunks and checkpoint it.

        The whole repository is discovered and chunked on every call so that
        slices line up across process invocations. The slice's chunks are
        merged into metadata.json under their global positions; batch 0 starts
        a fresh map. Vectors are not kept: ``finalize_index`` embeds the full
        set once all batches are done.

        Raises:
            ValueError: If batch_number is negative or batch_size is not positive
            IndexingCancelledError: If cancelled; this batch is not recorded
            PersistenceError: If metadata or the checkpoint could not be written
        """
        if batch_number < 0:
            raise ValueError(f"batch_number must not be negative, got {batch_number}")
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        with self._lock:
            previous = self.status
            self.status = IndexStatus.BATCH_BUILDING
            try:
                _, chunks = self._discover_and_chunk()
                total_chunks = len(chunks)
                total_batches = ceil(total_chunks / batch_size)
                batch_start = batch_number * batch_size
                batch_end = min(batch_start + batch_size, total_chunks)

                if batch_start >= total_chunks:
                    self.status = previous
                    return BatchInfo(
                        total_chunks=total_chunks,
                        total_batches=total_batches,
                        current_batch=batch_number,
                        batch_start=batch_start,
                        batch_end=batch_start,
                        chunks_in_batch=0,
                    )

                batch_chunks = chunks[batch_start:batch_end]
                log_info(
                    f"[Batch {batch_number}] Processing chunks {batch_start + 1}-{batch_end} of {total_chunks}"
                )

                # Embedding here surfaces unprocessable chunks before finalize
                if self.embedder is not None:
                    self._embed_chunks(batch_chunks)
                self._check_cancelled("persistence")

                if batch_number == 0 or not self.store.has_metadata():
                    merged: Dict[int, CodeChunk] = {}
                else:
                    merged = self.store.load_metadata()
                for offset, chunk in enumerate(batch_chunks):
                    merged[batch_start + offset] = chunk

                self.store.save_metadata(merged)
                self.store.write_batch_state(
                    BatchState(
                        batch_number=batch_number,
                        batch_size=batch_size,
                        batch_start=batch_start,
                        batch_end=batch_end,
                        chunks_processed=len(batch_chunks),
                    )
                )
            except BaseException:
                self.status = previous
                raise

            log_success(
                f"[Batch {batch_number}] Indexed {len(batch_chunks)} chunks (total: {len(merged)})"
            )
            return BatchInfo(
                total_chunks=total_chunks,
                total_batches=total_batches,
                current_batch=batch_number,
                batch_start=batch_start,
                batch_end=batch_end,
                chunks_in_batch=len(batch_chunks),
            )

    def finalize_index(self) -> Optional[IndexSnapshot]:
        """Turn the metadata accumulated by ``index_batch`` into a full build.

        Doc ids are renumbered densely in global-position order, both indices
        are rebuilt over the accumulated chunks, and batch checkpoints are
        removed once the build is persisted.

        Returns:
            The published snapshot, or None when there was nothing to finalize
        """
        with self._lock:
            if not self.store.has_metadata():
                log_warning("No metadata found to finalize")
                return None

            previous = self.status
            self.status = IndexStatus.FINALIZING
            try:
                accumulated = self.store.load_metadata()
                chunks = [accumulated[position] for position in sorted(accumulated)]
                log_info(f"Finalizing index with {len(chunks)} chunks...")

                snapshot = self._build_snapshot(chunks, self._current_commit())
                self._check_cancelled("persistence")
                self.store.save_build(snapshot)
            except BaseException:
                self.status = previous
                raise

            removed = self.store.clear_batch_states()
            self._publish(snapshot)
            self.status = IndexStatus.BUILT if chunks else IndexStatus.EMPTY
            self._log_summary("Finalized index with", snapshot)
            if removed:
                log_info(f"Removed {removed} batch checkpoints")
            return snapshot

    def load_metadata_only(self) -> Optional[IndexSnapshot]:
        """Publish whatever is on disk without embedding anything.

        The vector index is used only when it matches the metadata; otherwise
        search runs keyword-only.
        """
        with self._lock:
            if not self.store.has_metadata():
                log_warning("No metadata found to load")
                return None

            snapshot = self.store.load_build(strict=False)
            mismatch = self._embedding_mismatch(snapshot)
            if mismatch:
                log_warning(f"Stored vectors were built with {mismatch}; searching by keyword only")
                snapshot = replace(snapshot, vector_index=None)

            self._publish(snapshot)
            self.status = IndexStatus.BUILT if snapshot.document_count else IndexStatus.EMPTY

            if snapshot.has_vectors:
                log_info(f"Loaded vector index with {snapshot.document_count} chunks")
            else:
                log_info(f"Loaded {snapshot.document_count} chunks (keyword search mode)")
            return snapshot

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_document_count(self) -> int:
        return self._snapshot.document_count

    def get_index_state(self) -> Optional[IndexState]:
        return self._snapshot.state

    def get_indexed_files(self) -> List[str]:
        """Distinct file paths in the published build, sorted."""
        return sorted({chunk.file_path for chunk in self._snapshot.metadata.values()})
