import unittest
from unittest.mock import patch, Mock
import numpy as np

from codebase_rag.config.settings import Settings
from codebase_rag.embeddings.factory import create_embedder
from codebase_rag.embeddings.local import SentenceTransformerEmbedder


def make_model(dimension=384):
    mock_model = Mock()
    mock_model.get_sentence_embedding_dimension.return_value = dimension
    return mock_model


class TestSentenceTransformerEmbedder(unittest.TestCase):
    @patch('torch.cuda.is_available', return_value=False)
    @patch('sentence_transformers.SentenceTransformer')
    def test_embed(self, mock_sentence_transformer_class, mock_cuda):
        """Test single-text embedding with normalisation enabled."""
        mock_model = make_model()
        mock_sentence_transformer_class.return_value = mock_model
        mock_model.encode.return_value = np.array([0.1] * 384)

        embedder = SentenceTransformerEmbedder(model_id="BAAI/bge-small-en-v1.5", dimension=384)
        embedding = embedder.embed("function authenticateUser() {}")

        self.assertEqual(len(embedding), 384)
        self.assertIsInstance(embedding, list)
        call_args = mock_model.encode.call_args
        self.assertEqual(call_args[0][0], "function authenticateUser() {}")
        self.assertTrue(call_args[1]["normalize_embeddings"])
        self.assertFalse(call_args[1]["show_progress_bar"])
        mock_sentence_transformer_class.assert_called_once_with("BAAI/bge-small-en-v1.5", device="cpu")

    @patch('torch.cuda.is_available', return_value=False)
    @patch('sentence_transformers.SentenceTransformer')
    def test_embed_batch_keeps_input_order(self, mock_sentence_transformer_class, mock_cuda):
        """Test that batch results line up with their input texts."""
        mock_model = make_model(dimension=3)
        mock_sentence_transformer_class.return_value = mock_model
        mock_model.encode.side_effect = lambda texts, **kwargs: np.array(
            [[float(len(t)), 0.0, 0.0] for t in texts]
        )

        embedder = SentenceTransformerEmbedder(model_id="test-model", dimension=3)
        texts = ["a", "bbb", "cc"]
        embeddings = embedder.embed_batch(texts)

        self.assertEqual(embeddings, [[1.0, 0.0, 0.0], [3.0, 0.0, 0.0], [2.0, 0.0, 0.0]])

    @patch('torch.cuda.is_available', return_value=False)
    @patch('sentence_transformers.SentenceTransformer')
    def test_embed_batch_reports_progress(self, mock_sentence_transformer_class, mock_cuda):
        """Test that the progress callback sees the final count."""
        mock_model = make_model(dimension=2)
        mock_sentence_transformer_class.return_value = mock_model
        mock_model.encode.side_effect = lambda texts, **kwargs: np.zeros((len(texts), 2))
        progress = Mock()

        embedder = SentenceTransformerEmbedder(model_id="test-model")
        embedder.embed_batch(["x", "y", "z"], progress_callback=progress)

        progress.assert_called_with(3, 3)

    @patch('torch.cuda.is_available', return_value=False)
    @patch('sentence_transformers.SentenceTransformer')
    def test_embed_batch_empty(self, mock_sentence_transformer_class, mock_cuda):
        """Test that no texts means no model call."""
        mock_model = make_model()
        mock_sentence_transformer_class.return_value = mock_model

        embedder = SentenceTransformerEmbedder(model_id="test-model")

        self.assertEqual(embedder.embed_batch([]), [])
        mock_model.encode.assert_not_called()

    @patch('torch.cuda.is_available', return_value=False)
    @patch('sentence_transformers.SentenceTransformer')
    def test_dimension_comes_from_model(self, mock_sentence_transformer_class, mock_cuda):
        """Test that the model's dimension overrides the configured one."""
        mock_sentence_transformer_class.return_value = make_model(dimension=768)

        embedder = SentenceTransformerEmbedder(model_id="test-model", dimension=384)

        self.assertEqual(embedder.dimension, 768)
        self.assertEqual(embedder.model_id, "test-model")

    @patch('torch.cuda.is_available', return_value=False)
    @patch('sentence_transformers.SentenceTransformer')
    def test_factory_builds_local_embedder(self, mock_sentence_transformer_class, mock_cuda):
        """Test provider selection from settings."""
        mock_sentence_transformer_class.return_value = make_model()

        embedder = create_embedder(Settings(embedding_provider="local"))

        self.assertIsInstance(embedder, SentenceTransformerEmbedder)

    def test_factory_rejects_unknown_provider(self):
        """Test that unknown providers raise."""
        with self.assertRaises(ValueError):
            create_embedder(Settings(embedding_provider="bedrock"))


if __name__ == '__main__':
    unittest.main()
