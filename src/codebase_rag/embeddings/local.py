import gc
from typing import List, Optional

from .base import Embedder, ProgressCallback
from ..utils.batching import build_token_batches, estimate_tokens, calculate_max_batch_tokens
from ..utils.debug import DebugLogger
from ..utils.progress import console, log_debug
from ..utils.symbols import SYMBOLS

sentence_transformers_import = None


class SentenceTransformerEmbedder(Embedder):
    """Local embeddings from a sentence-transformers model.

    Vectors are L2-normalised by the model so that inner product equals
    cosine similarity in the flat vector index.
    """

    def __init__(self, model_id: str, dimension: Optional[int] = None, tokens_per_gb: int = 2048):
        """
        Args:
            model_id: Hugging Face model identifier
            dimension: Expected dimension; the model's own dimension wins if they differ
            tokens_per_gb: Maximum tokens per batch per GB of GPU memory
        """
        self.model_id = model_id

        self.max_batch_tokens, self.device, torch = calculate_max_batch_tokens(
            tokens_per_gb,
            device_name="embedder"
        )
        self.torch = torch

        # Heavy import, deferred until a model is actually needed
        global sentence_transformers_import
        if sentence_transformers_import is None:
            log_debug("Loading sentence_transformers...")
            sentence_transformers_import = __import__("sentence_transformers")

        self.model = sentence_transformers_import.SentenceTransformer(model_id, device=self.device)

        model_dimension = self.model.get_sentence_embedding_dimension()
        if dimension is not None and model_dimension and model_dimension != dimension:
            console.print(
                f"{SYMBOLS['info']} {model_id} produces {model_dimension}-dimensional vectors "
                f"(configured {dimension}); using {model_dimension}"
            )
        self._dimension = model_dimension or dimension

        if self.device == "cuda":
            console.print(f"{SYMBOLS['success']} Embedding {model_id} on GPU: {torch.cuda.get_device_name(0)}")
        else:
            console.print(f"{SYMBOLS['info']} Embedding {model_id} on CPU (this will be slower)")

    def _encode(self, texts, batch_size: int = 1):
        # tqdm would fight with the rich progress bar
        return self.model.encode(
            texts,
            batch_size=batch_size,
            convert_to_numpy=True,
            normalize_embeddings=True,
            show_progress_bar=False,
        )

    def _release_memory(self) -> None:
        gc.collect()
        if self.device == "cuda":
            self.torch.cuda.empty_cache()

    def _log_request(self, operation: str, **payload) -> Optional[str]:
        if not DebugLogger.is_enabled():
            return None
        return DebugLogger.log_request(
            operation, {"model_id": self.model_id, **payload}, category="embedding"
        )

    def _log_response(self, operation: str, request_id: Optional[str], **payload) -> None:
        if request_id is not None:
            DebugLogger.log_response(
                operation, {"model_id": self.model_id, **payload}, request_id, category="embedding"
            )

    def embed(self, text: str) -> List[float]:
        request_id = self._log_request("embed", text_length=len(text))

        with self.torch.no_grad():
            vector = self._encode(text).tolist()

        self._log_response("embed", request_id, dimension=len(vector), embedding=vector)
        return vector

    def embed_batch(
        self,
        texts: List[str],
        progress_callback: Optional[ProgressCallback] = None
    ) -> List[List[float]]:
        """Embed texts in batches sized by estimated token count.

        Grouping by tokens keeps a handful of very long chunks from
        exhausting GPU memory; results are placed back in input order.
        """
        if not texts:
            return []

        batches = build_token_batches(texts, self.max_batch_tokens, item_token_estimator=estimate_tokens)
        request_id = self._log_request(
            "embed_batch",
            text_count=len(texts),
            batch_count=len(batches),
            max_batch_tokens=self.max_batch_tokens,
        )

        vectors: List[Optional[List[float]]] = [None] * len(texts)
        done = 0
        with self.torch.no_grad():
            for indices in batches:
                encoded = self._encode([texts[i] for i in indices], batch_size=len(indices))
                for i, row in zip(indices, encoded):
                    vectors[i] = row.tolist()

                done += len(indices)
                if progress_callback:
                    progress_callback(done, len(texts))

                del encoded
                self._release_memory()

        self._log_response("embed_batch", request_id, vector_count=len(vectors), dimension=self._dimension)
        return vectors

    @property
    def dimension(self) -> int:
        return self._dimension
