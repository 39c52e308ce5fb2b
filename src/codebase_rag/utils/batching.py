"""Batching helpers for embedding and reranking workloads."""

from typing import Any, Callable, Iterator, List, Sequence, Tuple, TypeVar

T = TypeVar('T')

# A text of this many tokens costs one "canonical" unit of batch capacity
CANONICAL_TOKEN_SIZE = 256


def estimate_tokens(text: str) -> int:
    """Estimate token count from text using the 1 token ≈ 4 UTF-8 bytes heuristic."""
    return len(text.encode('utf-8')) // 4


def fixed_size_batches(items: Sequence[T], batch_size: int) -> Iterator[Tuple[int, Sequence[T]]]:
    """Yield ``(offset, slice)`` pairs of at most ``batch_size`` items.

    Raises:
        ValueError: If batch_size is not positive
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    for start in range(0, len(items), batch_size):
        yield start, items[start:start + batch_size]


def build_token_batches(
    items: List[T],
    max_batch_tokens: int,
    item_token_estimator: Callable[[T], int]
) -> List[List[int]]:
    """Group item indices into batches sized for transformer attention cost.

    Each item costs ``max(1, tokens / CANONICAL_TOKEN_SIZE) ** 2`` canonical
    units, and a batch holds at most ``max_batch_tokens / CANONICAL_TOKEN_SIZE``
    units. An item that alone exceeds the capacity gets a batch of its own.

    Args:
        items: Items to batch (texts, (query, doc) pairs, ...)
        max_batch_tokens: Token budget per batch
        item_token_estimator: Estimates the tokens of a single item

    Returns:
        List of batches, each a list of indices into ``items``

    Examples:
        >>> build_token_batches(["short"] * 4, 1024, estimate_tokens)
        [[0, 1, 2, 3]]
    """
    if not items:
        return []

    capacity = max_batch_tokens / CANONICAL_TOKEN_SIZE

    batches: List[List[int]] = []
    current: List[int] = []
    current_cost = 0.0

    for i, item in enumerate(items):
        ratio = max(1.0, item_token_estimator(item) / CANONICAL_TOKEN_SIZE)
        cost = ratio ** 2

        if cost > capacity:
            if current:
                batches.append(current)
                current, current_cost = [], 0.0
            batches.append([i])
            continue

        if current and current_cost + cost > capacity:
            batches.append(current)
            current, current_cost = [], 0.0

        current.append(i)
        current_cost += cost

    if current:
        batches.append(current)

    return batches


def calculate_max_batch_tokens(
    tokens_per_gb: int,
    device_name: str = "model"
) -> Tuple[int, str, Any]:
    """Work out a token budget per batch from the available hardware.

    torch is imported lazily here so that modules which never load a model
    do not pay for the import.

    Args:
        tokens_per_gb: Maximum tokens per GB of GPU memory
        device_name: Label used in debug output (e.g., "embedder", "reranker")

    Returns:
        Tuple of (max_batch_tokens, device, torch_module)
    """
    from .progress import log_debug

    log_debug("Loading PyTorch...")
    import torch

    device = "cuda" if torch.cuda.is_available() else "cpu"

    if device == "cuda":
        props = torch.cuda.get_device_properties(0)
        total_memory_gb = props.total_memory / (1024**3)
        max_batch_tokens = int(tokens_per_gb * total_memory_gb)
    else:
        # CPU: two "virtual GB"
        max_batch_tokens = tokens_per_gb * 2

    log_debug(
        f"{device_name}: device={device}, "
        f"tokens_per_gb={tokens_per_gb}, max_batch_tokens={max_batch_tokens}"
    )

    return max_batch_tokens, device, torch
