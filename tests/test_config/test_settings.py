"""Tests for Settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from codebase_rag.config.settings import DEFAULT_STORE_DIRNAME, RRF_K, Settings


def test_store_path_defaults_inside_repository(tmp_path):
    """Test the default cache directory."""
    settings = Settings(repo_path=tmp_path)

    assert settings.store_path == tmp_path / DEFAULT_STORE_DIRNAME


def test_store_dir_overrides_store_path(tmp_path):
    """Test an explicit store directory."""
    settings = Settings(repo_path=tmp_path, store_dir=tmp_path / "elsewhere")

    assert settings.store_path == tmp_path / "elsewhere"


def test_retrieval_defaults(tmp_path):
    """Test ranking constants."""
    settings = Settings(repo_path=tmp_path)

    assert settings.rrf_k == RRF_K == 60
    assert settings.bm25_k1 == 1.2
    assert settings.bm25_b == 0.75
    assert settings.use_hybrid_search is True
    assert settings.verify_commit_on_load is False
    assert settings.max_chunks is None


def test_environment_overrides(tmp_path, monkeypatch):
    """Test that environment variables populate fields."""
    monkeypatch.setenv("EMBEDDING_PROVIDER", "none")
    monkeypatch.setenv("MAX_CHUNKS", "500")

    settings = Settings(repo_path=tmp_path)

    assert settings.embedding_provider == "none"
    assert settings.max_chunks == 500


@pytest.mark.parametrize("field,value", [
    ("rrf_k", 0),
    ("max_chunks", 0),
    ("chunk_size", 0),
    ("bm25_b", 1.5),
])
def test_invalid_values_rejected(tmp_path, field, value):
    """Test field constraints."""
    with pytest.raises(ValidationError):
        Settings(repo_path=tmp_path, **{field: value})


def test_debug_log_dir(tmp_path):
    """Test log directory under data_dir."""
    settings = Settings(repo_path=tmp_path, data_dir=tmp_path / "data")

    assert settings.debug_log_dir == Path(tmp_path / "data" / "logs")
