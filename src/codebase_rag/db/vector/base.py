"""Abstract base class for vector index implementations.

A vector index stores one embedding per document id, where the id is the
row position (insertion order). Metadata lives in the index store; the
vector index only knows about vectors.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Sequence, Tuple, Union

import numpy as np

VectorLike = Union[Sequence[float], np.ndarray]


def normalize_vector(vector: VectorLike) -> np.ndarray:
    """Scale a vector to unit L2 norm.

    A zero vector is returned unchanged, so inner products against it are 0.
    """
    arr = np.asarray(vector, dtype=np.float32)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        return arr
    return arr / norm


class VectorIndex(ABC):
    """Interface shared by the brute-force index and any future ANN backend."""

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Dimensionality of stored vectors."""

    @property
    @abstractmethod
    def count(self) -> int:
        """Number of stored vectors (== highest doc id + 1)."""

    @abstractmethod
    def add(self, vectors: Sequence[VectorLike]) -> None:
        """Append vectors; the first added vector gets doc id ``count``.

        Raises:
            VectorIndexError: If a vector has the wrong dimension
        """

    @abstractmethod
    def search(self, query: VectorLike, k: int) -> Tuple[List[int], List[float]]:
        """Return up to ``k`` (doc ids, cosine scores), best first."""

    @abstractmethod
    def save(self, path: Path) -> None:
        """Write the index to ``path``."""

    @classmethod
    @abstractmethod
    def load(cls, path: Path) -> "VectorIndex":
        """Read an index written by ``save``.

        Raises:
            VectorIndexError: If the file is missing or unreadable
        """
