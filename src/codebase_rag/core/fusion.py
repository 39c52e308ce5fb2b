"""Reciprocal Rank Fusion of independently ranked result lists."""

from collections import defaultdict
from typing import Dict, Iterable, List, Sequence, Tuple

from ..config.settings import RRF_K


def reciprocal_rank_fusion(
    ranked_lists: Iterable[Sequence[int]],
    k: int = RRF_K,
) -> List[Tuple[int, float]]:
    """Fuse ranked doc id lists by summing ``1 / (k + rank + 1)``.

    Ranks are 0-based. A document missing from a list gets nothing from it.
    Only rank positions matter, so lists scored on incomparable scales (cosine
    similarity, BM25) can be combined directly.

    Args:
        ranked_lists: Doc ids per source, best first
        k: Damping constant; larger values flatten the rank contribution

    Returns:
        ``(doc_id, fused_score)`` pairs, highest first, ties by doc id

    Raises:
        ValueError: If k is not positive
    """
    if k <= 0:
        raise ValueError(f"RRF constant k must be positive, got {k}")

    fused: Dict[int, float] = defaultdict(float)
    for ranked in ranked_lists:
        for rank, doc_id in enumerate(ranked):
            fused[doc_id] += 1.0 / (k + rank + 1)

    return sorted(fused.items(), key=lambda item: (-item[1], item[0]))
