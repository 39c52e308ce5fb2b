from typing import Optional

from ..config.settings import Settings
from .base import Reranker
from .local import LocalCrossEncoderReranker


def create_reranker(settings: Settings) -> Optional[Reranker]:
    """Reranker described by ``settings``, or None when reranking is off.

    Raises:
        ValueError: If ``reranking_provider`` is not a known provider
    """
    if not settings.enable_reranking:
        return None

    provider = settings.reranking_provider
    if provider != "local":
        raise ValueError(f"Unknown reranking provider: {provider}. Expected one of: 'local'.")

    return LocalCrossEncoderReranker(
        model_id=settings.cross_encoder_model,
        tokens_per_gb=settings.reranking_tokens_per_gb,
    )
