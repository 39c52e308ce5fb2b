from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np

from ...exceptions import VectorIndexError
from .base import VectorIndex, VectorLike, normalize_vector


class FlatVectorIndex(VectorIndex):
    """Exhaustive inner-product search over L2-normalised float32 rows.

    Every query is compared against every stored vector. Fine for the tens of
    thousands of chunks a single repository produces; beyond that an ANN
    backend implementing VectorIndex should be swapped in.
    """

    def __init__(self, dimension: int):
        if dimension <= 0:
            raise VectorIndexError(f"Vector dimension must be positive, got {dimension}")
        self._dimension = dimension
        self._matrix = np.empty((0, dimension), dtype=np.float32)

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def count(self) -> int:
        return int(self._matrix.shape[0])

    def add(self, vectors: Sequence[VectorLike]) -> None:
        if len(vectors) == 0:
            return

        rows = []
        for i, vector in enumerate(vectors):
            arr = normalize_vector(vector)
            if arr.ndim != 1 or arr.shape[0] != self._dimension:
                raise VectorIndexError(
                    f"Vector {i} has shape {arr.shape}, expected ({self._dimension},)"
                )
            rows.append(arr)

        self._matrix = np.vstack([self._matrix, np.stack(rows)])

    def search(self, query: VectorLike, k: int) -> Tuple[List[int], List[float]]:
        if k <= 0 or self.count == 0:
            return [], []

        q = normalize_vector(query)
        if q.shape != (self._dimension,):
            raise VectorIndexError(
                f"Query has shape {q.shape}, expected ({self._dimension},)"
            )

        scores = self._matrix @ q
        k = min(k, self.count)
        # Stable sort on -score keeps equal scores in doc id order
        order = np.argsort(-scores, kind="stable")[:k]
        return [int(i) for i in order], [float(scores[i]) for i in order]

    def save(self, path: Path) -> None:
        # Write through a file handle so numpy does not append ".npy"
        with open(path, "wb") as f:
            np.save(f, self._matrix, allow_pickle=False)

    @classmethod
    def load(cls, path: Path) -> "FlatVectorIndex":
        try:
            with open(path, "rb") as f:
                matrix = np.load(f, allow_pickle=False)
        except (OSError, ValueError) as e:
            raise VectorIndexError(f"Could not read vector index {path}: {e}") from e

        if matrix.ndim != 2 or matrix.shape[1] == 0:
            raise VectorIndexError(f"Vector index {path} has invalid shape {matrix.shape}")

        index = cls(int(matrix.shape[1]))
        index._matrix = matrix.astype(np.float32, copy=False)
        return index
