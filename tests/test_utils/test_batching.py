"""Tests for batching helpers."""

from unittest.mock import MagicMock, patch

import pytest

from codebase_rag.utils.batching import (
    CANONICAL_TOKEN_SIZE,
    build_token_batches,
    calculate_max_batch_tokens,
    estimate_tokens,
    fixed_size_batches,
)


def test_estimate_tokens():
    """Test the 4-bytes-per-token heuristic."""
    assert estimate_tokens("") == 0
    assert estimate_tokens("a" * 400) == 100
    assert estimate_tokens("é" * 4) == 2


def test_fixed_size_batches():
    """Test offsets and slice sizes."""
    batches = list(fixed_size_batches(list(range(7)), 3))

    assert batches == [(0, [0, 1, 2]), (3, [3, 4, 5]), (6, [6])]


def test_fixed_size_batches_empty():
    """Test that no items yields no batches."""
    assert list(fixed_size_batches([], 3)) == []


def test_fixed_size_batches_rejects_bad_size():
    """Test batch size validation."""
    with pytest.raises(ValueError):
        list(fixed_size_batches([1, 2], 0))


def test_short_items_share_a_batch():
    """Test that cheap items fill one batch."""
    assert build_token_batches(["short"] * 4, 1024, estimate_tokens) == [[0, 1, 2, 3]]


def test_capacity_splits_batches():
    """Test that batches never exceed capacity."""
    # Each item costs exactly one unit; capacity is two units
    items = ["x" * (CANONICAL_TOKEN_SIZE * 4)] * 5

    batches = build_token_batches(items, CANONICAL_TOKEN_SIZE * 2, estimate_tokens)

    assert batches == [[0, 1], [2, 3], [4]]


def test_oversized_item_gets_own_batch():
    """Test that an item above capacity is isolated."""
    items = ["a", "b" * (CANONICAL_TOKEN_SIZE * 4 * 10), "c"]

    batches = build_token_batches(items, CANONICAL_TOKEN_SIZE * 4, estimate_tokens)

    assert batches == [[0], [1], [2]]


def test_build_token_batches_empty():
    """Test that no items yields no batches."""
    assert build_token_batches([], 1024, estimate_tokens) == []


@patch("torch.cuda.is_available", return_value=False)
def test_max_batch_tokens_on_cpu(mock_cuda):
    """Test the CPU budget of two virtual GB."""
    max_tokens, device, torch_module = calculate_max_batch_tokens(2048, "embedder")

    assert max_tokens == 4096
    assert device == "cpu"
    assert torch_module is not None


@patch("torch.cuda.get_device_properties")
@patch("torch.cuda.is_available", return_value=True)
def test_max_batch_tokens_on_gpu(mock_cuda, mock_props):
    """Test the GPU budget scales with device memory."""
    mock_props.return_value = MagicMock(total_memory=8 * 1024**3)

    max_tokens, device, _ = calculate_max_batch_tokens(1024, "reranker")

    assert max_tokens == 8192
    assert device == "cuda"
