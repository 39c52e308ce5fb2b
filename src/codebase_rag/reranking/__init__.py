from .base import Reranker
from .local import LocalCrossEncoderReranker
from .factory import create_reranker

__all__ = ['Reranker', 'LocalCrossEncoderReranker', 'create_reranker']
