import hashlib
from pathlib import Path

import pytest

from codebase_rag.chunking.line import LineChunker
from codebase_rag.config.settings import Settings
from codebase_rag.core.indexer import Indexer
from codebase_rag.db.lexical.bm25 import tokenize
from codebase_rag.embeddings.base import Embedder


class DummyProgress:
    """
    Test-only no-op progress object to avoid Rich LiveError from Live/Progress.

    Matches the Progress API usage in the indexer closely enough to stand in
    for Rich's Progress.
    """

    def __init__(self, *args, **kwargs):
        self.finished = False

    def add_task(self, *args, **kwargs):
        return "task-id"

    def update(self, *args, **kwargs):
        pass

    def advance(self, *args, **kwargs):
        pass

    def start(self):
        self.finished = False

    def stop(self):
        self.finished = True

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()


@pytest.fixture(autouse=True)
def dummy_progress(monkeypatch):
    """
    Patch codebase_rag.utils.progress so tests never start a Rich Live display.

    Both the factory and the Progress symbol it uses are replaced, so callers
    that imported create_progress_bar directly also get a DummyProgress.
    """
    from codebase_rag.utils import progress as progress_utils

    def _create_progress_bar(description: str = "Processing", total=None):
        return DummyProgress(), "task-id"

    monkeypatch.setattr(progress_utils, "create_progress_bar", _create_progress_bar)
    monkeypatch.setattr(progress_utils, "Progress", DummyProgress)
    yield


class FakeEmbedder(Embedder):
    """Deterministic bag-of-words embedder: each token hashes to one dimension."""

    model_id = "fake-hashing-embedder"

    def __init__(self, dimension: int = 32):
        self._dimension = dimension
        self.embed_calls = 0
        self.batch_calls = 0

    def _vector(self, text: str):
        vector = [0.0] * self._dimension
        for token in tokenize(text):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            vector[digest[0] % self._dimension] += 1.0
        return vector

    def embed(self, text):
        self.embed_calls += 1
        return self._vector(text)

    def embed_batch(self, texts, progress_callback=None):
        self.batch_calls += 1
        vectors = [self._vector(t) for t in texts]
        if progress_callback:
            progress_callback(len(texts), len(texts))
        return vectors

    @property
    def dimension(self):
        return self._dimension


class FailingEmbedder(Embedder):
    """Embedder whose every call raises."""

    model_id = "always-failing"

    def embed(self, text):
        raise RuntimeError("embedding backend unavailable")

    def embed_batch(self, texts, progress_callback=None):
        raise RuntimeError("embedding backend unavailable")

    @property
    def dimension(self):
        return 32


A_TS = """import { hash } from './crypto';

export async function authenticateUser(username: string, password: string) {
  const record = await findUserRecord(username);
  return record !== null && hash(password) === record.passwordHash;
}
"""

B_TS = """export function formatCurrency(amount: number, currency: string): string {
  return new Intl.NumberFormat('en-US', { style: 'currency', currency }).format(amount);
}
"""

C_TS = """export const routes = [
  { path: '/dashboard', component: 'DashboardPage' },
  { path: '/reports', component: 'ReportsPage' },
];
"""


def write_file(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def sample_repo(tmp_path):
    """Three-file TypeScript repository; only a.ts mentions authenticateUser."""
    repo = tmp_path / "repo"
    repo.mkdir()
    write_file(repo, "a.ts", A_TS)
    write_file(repo, "b.ts", B_TS)
    write_file(repo, "c.ts", C_TS)
    return repo


@pytest.fixture
def settings(sample_repo):
    return Settings(repo_path=sample_repo, embedding_dimension=32)


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def make_indexer(settings):
    """Factory for indexers over the sample repository."""

    def _make(embedder=None, **kwargs):
        return Indexer(settings=settings, chunker=LineChunker(), embedder=embedder, **kwargs)

    return _make
