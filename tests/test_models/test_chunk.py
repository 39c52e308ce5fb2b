"""Tests for the CodeChunk model."""

import pytest

from codebase_rag.models.chunk import CodeChunk, make_chunk_id


def make_chunk(**overrides):
    values = dict(
        id="src/auth.ts:10-20",
        file_path="src/auth.ts",
        start_line=10,
        end_line=20,
        content="export function login() {}",
        language="typescript",
    )
    values.update(overrides)
    return CodeChunk(**values)


def test_make_chunk_id():
    """Test the path:start-end identifier format."""
    assert make_chunk_id("src/auth.ts", 10, 20) == "src/auth.ts:10-20"


def test_invalid_line_range_rejected():
    """Test that start_line after end_line raises."""
    with pytest.raises(ValueError):
        make_chunk(start_line=21, end_line=20)


def test_single_line_chunk_allowed():
    """Test that a one-line span is valid."""
    chunk = make_chunk(start_line=5, end_line=5)

    assert chunk.start_line == chunk.end_line == 5


def test_chunks_are_immutable():
    """Test that chunks cannot be modified after creation."""
    chunk = make_chunk()

    with pytest.raises(AttributeError):
        chunk.content = "changed"


def test_to_metadata_uses_camel_case_and_skips_none():
    """Test the persisted record layout."""
    record = make_chunk(name="login", domain_categories=["auth"]).to_metadata()

    assert record == {
        "id": "src/auth.ts:10-20",
        "filePath": "src/auth.ts",
        "startLine": 10,
        "endLine": 20,
        "content": "export function login() {}",
        "language": "typescript",
        "name": "login",
        "domainCategories": ["auth"],
    }


def test_metadata_round_trip_preserves_optional_fields():
    """Test that enrichment fields survive serialisation."""
    chunk = make_chunk(
        chunk_type="function",
        name="login",
        parent_name="AuthService",
        documentation="Signs the user in.",
        domain_categories=["auth", "security"],
        domain_context="Authentication",
        is_public_api=True,
        signature="login(user: string): boolean",
    )

    assert CodeChunk.from_metadata(chunk.to_metadata()) == chunk


def test_from_metadata_requires_core_fields():
    """Test that a record without content is rejected."""
    record = make_chunk().to_metadata()
    del record["content"]

    with pytest.raises(KeyError):
        CodeChunk.from_metadata(record)


def test_lexical_text_includes_descriptive_fields():
    """Test the text indexed by BM25."""
    chunk = make_chunk(name="login", documentation="Signs the user in.")

    text = chunk.lexical_text()

    assert "export function login() {}" in text
    assert "Signs the user in." in text
    assert "src/auth.ts" in text
