"""
Ollama Embedding Service

Generates text embeddings through Ollama's /api/embeddings endpoint, splits
long article text into overlapping chunks, and keeps an in-memory cache of
embeddings keyed by the SHA-256 of their text.
"""

import hashlib
import logging
import threading
from typing import List, Dict, Optional

import numpy as np
import requests
from langchain_text_splitters import RecursiveCharacterTextSplitter

from ..errors import EmbeddingError
from ..models import CacheStats

logger = logging.getLogger(__name__)


class OllamaEmbeddingService:
    """
    Embedding provider backed by a local Ollama server.

    Args:
        model: Ollama embedding model name
        base_url: Ollama base URL
        chunk_size: Maximum characters per chunk
        chunk_overlap: Characters shared between consecutive chunks
        timeout: Request timeout in seconds
        expected_dimensions: Reject embeddings of any other size (None disables the check)
    """

    EXPECTED_DIMENSIONS = 768  # nomic-embed-text produces 768-dimensional embeddings

    def __init__(
        self,
        model: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        timeout: int = 30,
        expected_dimensions: Optional[int] = EXPECTED_DIMENSIONS
    ):
        self.model = model
        self.base_url = base_url.rstrip('/')
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.timeout = timeout
        self.expected_dimensions = expected_dimensions

        self.text_splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            length_function=len,
            separators=["\n\n", "\n", " ", ""]
        )

        self._memory_cache: Dict[str, np.ndarray] = {}
        self._cache_stats = CacheStats()
        self._lock = threading.Lock()

        logger.info(f"Initialized OllamaEmbeddingService with model: {self.model}")

    @property
    def dimension(self) -> int:
        return self.expected_dimensions or self.EXPECTED_DIMENSIONS

    def _compute_hash(self, text: str) -> str:
        return hashlib.sha256(text.encode('utf-8')).hexdigest()

    def chunk_text(self, text: str) -> List[str]:
        """
        Split text into overlapping chunks.

        Args:
            text: Text to chunk

        Returns:
            List of chunks (empty for empty text)
        """
        if not text or not text.strip():
            return []
        return self.text_splitter.split_text(text)

    def verify_connection(self) -> bool:
        """
        Verify the Ollama service is reachable.

        Returns:
            True if the service answered

        Raises:
            EmbeddingError: If unable to connect
        """
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise EmbeddingError(
                f"Unable to connect to Ollama at {self.base_url}: {e}"
            ) from e
        return True

    def generate_embedding(
        self,
        text: str,
        use_cache: bool = True,
        timeout: Optional[float] = None
    ) -> np.ndarray:
        """
        Generate the embedding for a single text.

        Args:
            text: Input text
            use_cache: Whether to read and populate the in-memory cache
            timeout: Seconds left for this call, caps the configured timeout

        Returns:
            Embedding vector as float32 numpy array

        Raises:
            EmbeddingError: On connection failure, timeout, HTTP error,
                malformed response or unexpected dimensions
        """
        text_hash = self._compute_hash(text)

        with self._lock:
            self._cache_stats.total_requests += 1
            if use_cache and text_hash in self._memory_cache:
                self._cache_stats.hits += 1
                return self._memory_cache[text_hash]
            self._cache_stats.misses += 1

        call_timeout = self.timeout if timeout is None else min(self.timeout, timeout)
        try:
            response = requests.post(
                f"{self.base_url}/api/embeddings",
                json={
                    "model": self.model,
                    "prompt": text
                },
                timeout=call_timeout
            )
            response.raise_for_status()
            embedding = np.array(response.json()['embedding'], dtype=np.float32)

        except requests.exceptions.ConnectionError as e:
            raise EmbeddingError(
                f"Unable to connect to Ollama at {self.base_url}. "
                "Please ensure Ollama is running."
            ) from e
        except requests.exceptions.Timeout as e:
            raise EmbeddingError(f"Embedding request timed out after {call_timeout}s") from e
        except requests.exceptions.HTTPError as e:
            raise EmbeddingError(f"HTTP error from Ollama: {e}") from e
        except requests.exceptions.RequestException as e:
            raise EmbeddingError(f"Error requesting embedding: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise EmbeddingError(f"Unexpected API response format: {e}") from e

        if self.expected_dimensions is not None and len(embedding) != self.expected_dimensions:
            raise EmbeddingError(
                f"Expected {self.expected_dimensions} dimensions, got {len(embedding)}"
            )

        if use_cache:
            with self._lock:
                self._memory_cache[text_hash] = embedding
                self._cache_stats.cache_size = len(self._memory_cache)

        return embedding

    def generate_embeddings_batch(self, texts: List[str], use_cache: bool = True) -> List[np.ndarray]:
        """Generate embeddings for several texts, in order."""
        return [self.generate_embedding(text, use_cache=use_cache) for text in texts]

    def get_cache_stats(self) -> Dict:
        """Get cache performance statistics."""
        with self._lock:
            return self._cache_stats.to_dict()

    def clear_cache(self) -> None:
        with self._lock:
            self._memory_cache.clear()
            self._cache_stats = CacheStats()
        logger.info("Cleared embedding cache")
