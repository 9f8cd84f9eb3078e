"""
Test Suite for OllamaEmbeddingService

HTTP calls are patched, so these tests never need a running Ollama server.
"""

import pytest
import numpy as np
from unittest.mock import Mock, patch
import requests

from article_chat.embeddings.ollama_service import OllamaEmbeddingService
from article_chat.errors import EmbeddingError


# ============================================================================
# Fixtures
# ============================================================================

def embedding_response(values):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = {'embedding': values}
    return response


@pytest.fixture
def service():
    """Service instance expecting 4-dimensional embeddings."""
    return OllamaEmbeddingService(
        model="nomic-embed-text",
        chunk_size=50,
        chunk_overlap=10,
        timeout=5,
        expected_dimensions=4
    )


# ============================================================================
# Embedding Generation Tests
# ============================================================================

class TestEmbeddingGeneration:
    """Test single embedding generation."""

    @patch('article_chat.embeddings.ollama_service.requests.post')
    def test_generate_embedding_posts_model_and_prompt(self, mock_post, service):
        """Test the request body and the returned vector."""
        mock_post.return_value = embedding_response([0.1, 0.2, 0.3, 0.4])

        embedding = service.generate_embedding("hello world")

        assert isinstance(embedding, np.ndarray)
        assert embedding.dtype == np.float32
        assert embedding.shape == (4,)
        args, kwargs = mock_post.call_args
        assert args[0] == "http://localhost:11434/api/embeddings"
        assert kwargs['json'] == {'model': "nomic-embed-text", 'prompt': "hello world"}
        assert kwargs['timeout'] == 5

    @patch('article_chat.embeddings.ollama_service.requests.post')
    def test_cache_hit_skips_request(self, mock_post, service):
        """Test repeated text is served from the memory cache."""
        mock_post.return_value = embedding_response([0.1, 0.2, 0.3, 0.4])

        first = service.generate_embedding("same text")
        second = service.generate_embedding("same text")

        assert mock_post.call_count == 1
        np.testing.assert_array_equal(first, second)
        stats = service.get_cache_stats()
        assert stats['hits'] == 1
        assert stats['misses'] == 1
        assert stats['cache_size'] == 1

    @patch('article_chat.embeddings.ollama_service.requests.post')
    def test_cache_can_be_bypassed(self, mock_post, service):
        """Test use_cache=False always calls the service."""
        mock_post.return_value = embedding_response([0.1, 0.2, 0.3, 0.4])

        service.generate_embedding("text", use_cache=False)
        service.generate_embedding("text", use_cache=False)

        assert mock_post.call_count == 2

    @patch('article_chat.embeddings.ollama_service.requests.post')
    def test_batch_preserves_order(self, mock_post, service):
        """Test batch results line up with their inputs."""
        mock_post.side_effect = [
            embedding_response([1.0, 0.0, 0.0, 0.0]),
            embedding_response([0.0, 1.0, 0.0, 0.0]),
        ]

        embeddings = service.generate_embeddings_batch(["first", "second"])

        assert embeddings[0][0] == 1.0
        assert embeddings[1][1] == 1.0

    @patch('article_chat.embeddings.ollama_service.requests.post')
    def test_clear_cache(self, mock_post, service):
        """Test clearing resets cache and statistics."""
        mock_post.return_value = embedding_response([0.1, 0.2, 0.3, 0.4])
        service.generate_embedding("text")

        service.clear_cache()

        assert service.get_cache_stats()['cache_size'] == 0
        assert service.get_cache_stats()['total_requests'] == 0


# ============================================================================
# Error Handling Tests
# ============================================================================

class TestErrorHandling:
    """Test failures are reported as EmbeddingError."""

    @patch('article_chat.embeddings.ollama_service.requests.post')
    def test_connection_error(self, mock_post, service):
        """Test an unreachable server."""
        mock_post.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(EmbeddingError, match="Unable to connect"):
            service.generate_embedding("text")

    @patch('article_chat.embeddings.ollama_service.requests.post')
    def test_timeout(self, mock_post, service):
        """Test a request timeout."""
        mock_post.side_effect = requests.exceptions.Timeout()

        with pytest.raises(EmbeddingError, match="timed out"):
            service.generate_embedding("text")

    @patch('article_chat.embeddings.ollama_service.requests.post')
    def test_http_error(self, mock_post, service):
        """Test a non-2xx response."""
        response = Mock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("404 model not found")
        mock_post.return_value = response

        with pytest.raises(EmbeddingError, match="HTTP error"):
            service.generate_embedding("text")

    @patch('article_chat.embeddings.ollama_service.requests.post')
    def test_malformed_response(self, mock_post, service):
        """Test a response without an embedding."""
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.return_value = {'error': 'oops'}
        mock_post.return_value = response

        with pytest.raises(EmbeddingError, match="response format"):
            service.generate_embedding("text")

    @patch('article_chat.embeddings.ollama_service.requests.post')
    def test_dimension_mismatch(self, mock_post, service):
        """Test embeddings of the wrong size are rejected and not cached."""
        mock_post.return_value = embedding_response([0.1, 0.2])

        with pytest.raises(EmbeddingError, match="Expected 4 dimensions"):
            service.generate_embedding("text")

        assert service.get_cache_stats()['cache_size'] == 0

    @patch('article_chat.embeddings.ollama_service.requests.get')
    def test_verify_connection(self, mock_get, service):
        """Test the reachability check."""
        mock_get.return_value = Mock(raise_for_status=Mock(return_value=None))
        assert service.verify_connection() is True

        mock_get.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(EmbeddingError):
            service.verify_connection()


# ============================================================================
# Chunking Tests
# ============================================================================

class TestChunking:
    """Test text chunking."""

    def test_empty_text_has_no_chunks(self, service):
        """Test blank input."""
        assert service.chunk_text("") == []
        assert service.chunk_text("   \n") == []

    def test_long_text_is_split_within_chunk_size(self, service):
        """Test chunks respect the configured size."""
        text = " ".join(f"word{i}" for i in range(60))

        chunks = service.chunk_text(text)

        assert len(chunks) > 1
        assert all(len(chunk) <= 50 for chunk in chunks)

    def test_short_text_is_one_chunk(self, service):
        """Test text under the chunk size is kept whole."""
        assert service.chunk_text("A short sentence.") == ["A short sentence."]
