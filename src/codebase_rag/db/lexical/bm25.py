"""BM25 lexical index over code chunks.

Tokenization is code-aware: camelCase and PascalCase identifiers are split at
their case boundaries and snake_case identifiers at underscores, so a query
for ``authenticate user`` matches ``authenticateUser`` and ``authenticate_user``.
"""

import math
import re
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

from ...config.settings import BM25_B, BM25_K1

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_NON_WORD = re.compile(r"[^a-z0-9]+")

MIN_TOKEN_LENGTH = 2


def tokenize(text: str) -> List[str]:
    """Split text into lowercase search terms.

    Examples:
        >>> tokenize("getUserById(user_id)")
        ['get', 'user', 'by', 'id', 'user', 'id']
    """
    if not text:
        return []
    text = _ACRONYM_BOUNDARY.sub(r"\1 \2", text)
    text = _CAMEL_BOUNDARY.sub(r"\1 \2", text)
    # "_" counts as punctuation once everything outside [a-z0-9] is a separator
    return [t for t in _NON_WORD.split(text.lower()) if len(t) >= MIN_TOKEN_LENGTH]


class BM25Index:
    """Okapi BM25 term statistics for a fixed document population.

    The index is built in one pass and never patched: whenever the set of
    chunks changes, a new index is built over the full population.
    """

    def __init__(self, k1: float = BM25_K1, b: float = BM25_B):
        self.k1 = k1
        self.b = b
        self.document_frequency: Dict[str, int] = {}
        self.term_frequency: Dict[int, Dict[str, int]] = {}
        self.document_length: Dict[int, int] = {}
        self.average_document_length: float = 0.0
        self.document_count: int = 0

    @classmethod
    def build(
        cls,
        documents: Iterable[Tuple[int, str]],
        k1: float = BM25_K1,
        b: float = BM25_B,
    ) -> "BM25Index":
        """Build an index from ``(doc_id, text)`` pairs."""
        index = cls(k1=k1, b=b)
        total_length = 0

        for doc_id, text in documents:
            counts = Counter(tokenize(text))
            index.term_frequency[doc_id] = dict(counts)
            length = sum(counts.values())
            index.document_length[doc_id] = length
            total_length += length
            for term in counts:
                index.document_frequency[term] = index.document_frequency.get(term, 0) + 1

        index.document_count = len(index.term_frequency)
        if index.document_count:
            index.average_document_length = total_length / index.document_count
        return index

    def idf(self, term: str) -> float:
        df = self.document_frequency.get(term, 0)
        return math.log((self.document_count - df + 0.5) / (df + 0.5) + 1)

    def score(self, doc_id: int, query_terms: List[str]) -> float:
        """BM25 score of one document for already-tokenized query terms."""
        tf_map = self.term_frequency.get(doc_id)
        if not tf_map:
            return 0.0

        doc_length = self.document_length.get(doc_id, 0)
        # Guard against an all-empty corpus
        length_ratio = doc_length / self.average_document_length if self.average_document_length else 0.0
        norm = self.k1 * (1 - self.b + self.b * length_ratio)

        total = 0.0
        for term in query_terms:
            tf = tf_map.get(term, 0)
            if tf == 0:
                continue
            total += self.idf(term) * (tf * (self.k1 + 1)) / (tf + norm)
        return total

    def search(self, query: str, top_k: Optional[int] = None) -> List[Tuple[int, float]]:
        """Rank documents for a query string.

        Returns:
            ``(doc_id, score)`` pairs with score > 0, best first; equal scores
            are ordered by doc_id.
        """
        query_terms = tokenize(query)
        if not query_terms or self.document_count == 0:
            return []

        # Only documents containing at least one query term can score > 0
        known_terms = [t for t in query_terms if t in self.document_frequency]
        if not known_terms:
            return []
        candidates = [
            doc_id for doc_id, tf_map in self.term_frequency.items()
            if any(t in tf_map for t in known_terms)
        ]

        scored = []
        for doc_id in candidates:
            s = self.score(doc_id, query_terms)
            if s > 0:
                scored.append((doc_id, s))

        scored.sort(key=lambda item: (-item[1], item[0]))
        if top_k is not None:
            scored = scored[:top_k]
        return scored

    def to_dict(self) -> dict:
        """Serialise to the bm25-index.json layout (doc ids as strings)."""
        return {
            "documentFrequency": self.document_frequency,
            "termFrequency": {str(doc_id): tf for doc_id, tf in self.term_frequency.items()},
            "documentLength": {str(doc_id): n for doc_id, n in self.document_length.items()},
            "averageDocumentLength": self.average_document_length,
            "documentCount": self.document_count,
        }

    @classmethod
    def from_dict(cls, data: dict, k1: float = BM25_K1, b: float = BM25_B) -> "BM25Index":
        """Inverse of ``to_dict``.

        Raises:
            KeyError, TypeError, ValueError: On a malformed payload
        """
        index = cls(k1=k1, b=b)
        index.document_frequency = {str(t): int(n) for t, n in data["documentFrequency"].items()}
        index.term_frequency = {
            int(doc_id): {str(t): int(n) for t, n in tf.items()}
            for doc_id, tf in data["termFrequency"].items()
        }
        index.document_length = {int(doc_id): int(n) for doc_id, n in data["documentLength"].items()}
        index.average_document_length = float(data["averageDocumentLength"])
        index.document_count = int(data["documentCount"])
        return index

    def __len__(self) -> int:
        return self.document_count
