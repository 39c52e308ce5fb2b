from .base import Embedder
from .local import SentenceTransformerEmbedder
from ..config.settings import Settings


def create_embedder(settings: Settings) -> Embedder:
    """
    Create an Embedder implementation based on settings.

    Provider is selected via settings.embedding_provider; only "local"
    (sentence-transformers) ships with the package. Other Embedder
    implementations can be handed to the Indexer and Searcher directly.
    """
    if settings.embedding_provider == "local":
        return SentenceTransformerEmbedder(
            model_id=settings.embedding_model,
            dimension=settings.embedding_dimension,
            tokens_per_gb=settings.embedding_tokens_per_gb,
        )

    raise ValueError(
        f"Unknown embedding provider: {settings.embedding_provider}. "
        f"Expected one of: 'local'."
    )
