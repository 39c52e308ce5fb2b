from typing import Dict, List, Optional, Tuple

from .base import Reranker
from ..config.settings import DEFAULT_CROSS_ENCODER_MODEL_ID
from ..utils.batching import build_token_batches, estimate_tokens, calculate_max_batch_tokens
from ..utils.debug import DebugLogger
from ..utils.progress import console, log_debug
from ..utils.symbols import SYMBOLS


class LocalCrossEncoderReranker(Reranker):
    """Cross-encoder reranker backed by sentence-transformers.

    Code chunks longer than ``max_chunk_chars`` are split into windows; each
    window is scored against the query and the document keeps its best score.
    """

    def __init__(
        self,
        model_id: str = DEFAULT_CROSS_ENCODER_MODEL_ID,
        tokens_per_gb: int = 1024,
        max_chunk_chars: int = 2000  # ~512 tokens
    ):
        self.model_id = model_id
        self.max_chunk_chars = max_chunk_chars

        self.max_batch_tokens, self.device, torch = calculate_max_batch_tokens(
            tokens_per_gb,
            device_name="reranker"
        )

        # sentence_transformers is slow to import
        log_debug(f"Loading cross-encoder {model_id}...")
        from sentence_transformers import CrossEncoder

        self.model = CrossEncoder(model_id, device=self.device)
        self.torch = torch

        if self.device == "cuda":
            console.print(f"{SYMBOLS['success']} Cross-encoder reranker using GPU: {torch.cuda.get_device_name(0)}")
        else:
            console.print(f"{SYMBOLS['info']} Cross-encoder reranker using CPU (slower)")

    def _windows(self, document: str) -> List[str]:
        if len(document) <= self.max_chunk_chars:
            return [document]
        return [
            document[i:i + self.max_chunk_chars]
            for i in range(0, len(document), self.max_chunk_chars)
        ]

    def rerank(
        self,
        query: str,
        documents: List[str],
        top_k: Optional[int] = None
    ) -> List[Tuple[int, float]]:
        """Score every document against the query; best first, ties by index."""
        if not documents:
            return []

        pairs: List[Tuple[str, str]] = []
        owner: List[int] = []
        for doc_idx, doc in enumerate(documents):
            for window in self._windows(doc):
                pairs.append((query, window))
                owner.append(doc_idx)

        request_id = None
        if DebugLogger.is_enabled():
            request_id = DebugLogger.log_request(
                "rerank",
                {
                    "model_id": self.model_id,
                    "query": query,
                    "document_count": len(documents),
                    "pair_count": len(pairs),
                },
                category="reranking"
            )

        batches = build_token_batches(
            pairs,
            self.max_batch_tokens,
            item_token_estimator=lambda pair: estimate_tokens(pair[0]) + estimate_tokens(pair[1])
        )

        scores: List[float] = [0.0] * len(pairs)
        with self.torch.no_grad():
            for batch_indices in batches:
                batch_scores = self.model.predict(
                    [pairs[i] for i in batch_indices],
                    batch_size=len(batch_indices),
                    show_progress_bar=False  # Avoid conflict with rich Progress
                )
                for i, score in zip(batch_indices, batch_scores):
                    scores[i] = float(score)

        # Max pooling over windows
        doc_scores: Dict[int, float] = {}
        for pair_idx, score in enumerate(scores):
            doc_idx = owner[pair_idx]
            if doc_idx not in doc_scores or score > doc_scores[doc_idx]:
                doc_scores[doc_idx] = score

        ranked = sorted(doc_scores.items(), key=lambda x: (-x[1], x[0]))
        if top_k is not None:
            ranked = ranked[:top_k]

        if DebugLogger.is_enabled():
            DebugLogger.log_response("rerank", {"ranked": ranked}, request_id, category="reranking")

        return ranked
