"""Chunk budget prioritization for repositories too large to index in full."""

import re
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from ..models.chunk import CodeChunk

_TEST_PATTERNS = tuple(
    re.compile(p)
    for p in (
        r"\.test\.",
        r"\.spec\.",
        r"_test\.",
        r"test_",
        r"__tests__",
        r"tests/",
        r"\.stories\.",
        r"__mocks__",
    )
)


def is_test_file(file_path: str) -> bool:
    """Heuristic test/fixture detection on a relative path (case-sensitive)."""
    return any(p.search(file_path) for p in _TEST_PATTERNS)


@dataclass(frozen=True)
class PriorityPolicy:
    """Weights used by score_chunk. Paths are compared lowercased."""

    source_dir_prefixes: Tuple[str, ...] = ("src/", "lib/", "app/")
    source_dir_bonus: int = 100
    entry_point_markers: Tuple[str, ...] = ("index.", "main.", "app.")
    entry_point_bonus: int = 50
    config_marker: str = "config"
    config_suffixes: Tuple[str, ...] = (".json", ".yaml")
    config_bonus: int = 30
    test_penalty: int = 50
    generated_markers: Tuple[str, ...] = ("vendor/", "generated/", ".min.")
    generated_penalty: int = 100
    small_chunk_chars: int = 1000
    small_chunk_bonus: int = 20
    large_chunk_chars: int = 3000
    large_chunk_penalty: int = 10


DEFAULT_POLICY = PriorityPolicy()


def score_chunk(chunk: CodeChunk, policy: PriorityPolicy = DEFAULT_POLICY) -> int:
    """Importance of a chunk; higher survives truncation first."""
    fp = chunk.file_path.lower()
    score = 0

    if fp.startswith(policy.source_dir_prefixes):
        score += policy.source_dir_bonus

    if any(marker in fp for marker in policy.entry_point_markers):
        score += policy.entry_point_bonus

    if policy.config_marker in fp or fp.endswith(policy.config_suffixes):
        score += policy.config_bonus

    if is_test_file(chunk.file_path):
        score -= policy.test_penalty

    if any(marker in fp for marker in policy.generated_markers):
        score -= policy.generated_penalty

    size = len(chunk.content)
    if size < policy.small_chunk_chars:
        score += policy.small_chunk_bonus
    elif size > policy.large_chunk_chars:
        score -= policy.large_chunk_penalty

    return score


def prioritize_chunks(
    chunks: Sequence[CodeChunk],
    max_chunks: int,
    policy: PriorityPolicy = DEFAULT_POLICY,
) -> List[CodeChunk]:
    """Keep the ``max_chunks`` highest-scoring chunks.

    The sort is stable, so equally scored chunks keep their discovery order.
    Returns ``min(max_chunks, len(chunks))`` chunks, best first.

    Raises:
        ValueError: If max_chunks is negative
    """
    if max_chunks < 0:
        raise ValueError(f"max_chunks must not be negative, got {max_chunks}")
    ranked = sorted(chunks, key=lambda c: score_chunk(c, policy), reverse=True)
    return ranked[:max_chunks]
