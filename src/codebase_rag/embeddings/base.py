"""Embedding provider interface used by the indexer and the searcher."""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

# callback(texts_done, texts_total)
ProgressCallback = Callable[[int, int], None]


class Embedder(ABC):
    """Turns chunk and query text into fixed-length vectors.

    Implementations raise on failure instead of returning placeholder
    vectors; the indexer decides how to recover (per-text retry, then a zero
    vector for texts that still fail).
    """

    # Recorded as embeddingModel in index-state.json
    model_id: Optional[str] = None

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """Embed one text, a chunk or a search query."""

    @abstractmethod
    def embed_batch(
        self,
        texts: List[str],
        progress_callback: Optional[ProgressCallback] = None
    ) -> List[List[float]]:
        """Embed many texts.

        Returns:
            Exactly one vector per input text, in input order
        """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of the vectors this embedder produces."""
