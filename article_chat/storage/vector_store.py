"""
Vector Search over Articles

FaissArticleIndex embeds article text chunks with Ollama and stores them in a
FAISS HNSW index for approximate nearest-neighbour search. KeywordArticleIndex
answers the same queries by term overlap over the article store, for setups
without an embedding model.
"""

import logging
import os
import pickle
import re
import threading
from abc import ABC, abstractmethod
from typing import List, Dict, Optional, Set, Tuple

import faiss
import numpy as np

from ..embeddings.ollama_service import OllamaEmbeddingService
from ..models import Article
from .article_store import ArticleStore

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"[a-z0-9]+")


class VectorIndex(ABC):
    """Semantic search port over stored articles."""

    backend: str = "base"

    @abstractmethod
    def index_article(self, article: Article) -> None:
        """Make an article searchable. Indexing the same URL twice is a no-op."""

    @abstractmethod
    def search_similar(self, query: str, limit: int, timeout: Optional[float] = None) -> List[Article]:
        """
        Find the articles most relevant to a query.

        Args:
            query: Free-text query
            limit: Maximum number of articles returned
            timeout: Seconds left for any embedding call the search makes

        Returns:
            Distinct articles, most relevant first
        """

    @abstractmethod
    def count(self) -> int:
        """Number of indexed vectors (or articles for non-vector backends)."""

    def get_stats(self) -> Dict:
        return {'backend': self.backend, 'total_vectors': self.count()}


class FaissArticleIndex(VectorIndex):
    """
    FAISS HNSW index of article chunk embeddings.

    Each vector's metadata records the article URL and chunk text; search
    results are resolved back to full articles through the article store.

    Args:
        embedding_service: Produces chunk and query embeddings
        article_store: Resolves matched URLs to stored articles
        index_path: Where the index is persisted (None keeps it in memory only)
        M: Connections per node in the HNSW graph
        efConstruction: Search depth while building the graph
        efSearch: Search depth at query time
    """

    backend = "faiss"

    def __init__(
        self,
        embedding_service: OllamaEmbeddingService,
        article_store: ArticleStore,
        index_path: Optional[str] = None,
        M: int = 32,
        efConstruction: int = 200,
        efSearch: int = 128
    ):
        self.embedding_service = embedding_service
        self.article_store = article_store
        self.index_path = index_path
        self.dimension = embedding_service.dimension
        self.M = M
        self.efConstruction = efConstruction
        self.efSearch = efSearch

        # Metadata storage, one entry per vector in index order
        self.metadata: List[Dict] = []
        self._indexed_urls: Set[str] = set()
        self._lock = threading.Lock()

        self.index = None
        self._initialize_index()

        if self.index_path and os.path.exists(self.index_path):
            self.load_index()

    def _initialize_index(self) -> None:
        self.index = faiss.IndexHNSWFlat(self.dimension, self.M)
        self.index.hnsw.efConstruction = self.efConstruction
        self.index.hnsw.efSearch = self.efSearch

    @staticmethod
    def _article_text(article: Article) -> str:
        parts = [article.title, article.summary, article.full_text or article.excerpt]
        return "\n\n".join(part for part in parts if part)

    def index_article(self, article: Article) -> None:
        """
        Embed and add an article's chunks.

        Raises:
            EmbeddingError: If embedding fails
            ValueError: If the article has no text to index
        """
        with self._lock:
            if article.url in self._indexed_urls:
                logger.debug(f"Article already indexed: {article.url}")
                return

        chunks = self.embedding_service.chunk_text(self._article_text(article))
        if not chunks:
            raise ValueError(f"Article has no text to index: {article.url}")

        embeddings = self.embedding_service.generate_embeddings_batch(chunks)
        vectors = np.array(embeddings, dtype=np.float32)
        if vectors.ndim != 2 or vectors.shape[1] != self.dimension:
            raise ValueError(
                f"Embedding dimension ({vectors.shape[-1]}) must match "
                f"index dimension ({self.dimension})"
            )

        with self._lock:
            # Another request may have indexed it while we were embedding
            if article.url in self._indexed_urls:
                return
            self.index.add(vectors)
            self.metadata.extend({'url': article.url, 'title': article.title, 'chunk': chunk} for chunk in chunks)
            self._indexed_urls.add(article.url)

            assert self.index.ntotal == len(self.metadata), \
                "CRITICAL: Metadata out of sync with index"

            if self.index_path:
                self._save_index_locked()

        logger.info(f"Indexed {len(chunks)} chunks for {article.url}")

    def search(self, query_embedding: np.ndarray, k: int) -> List[Tuple[float, Dict]]:
        """
        Raw nearest-neighbour search.

        Returns:
            (L2 distance, metadata) tuples, closest first
        """
        if k <= 0:
            return []

        query_vector = np.array([query_embedding], dtype=np.float32)
        if query_vector.shape[1] != self.dimension:
            raise ValueError(
                f"Query dimension ({query_vector.shape[1]}) must match "
                f"index dimension ({self.dimension})"
            )

        with self._lock:
            if self.index.ntotal == 0:
                return []
            actual_k = min(k, self.index.ntotal)
            distances, indices = self.index.search(query_vector, actual_k)
            return [
                (float(dist), self.metadata[idx])
                for dist, idx in zip(distances[0], indices[0])
                if 0 <= idx < len(self.metadata)
            ]

    def search_similar(self, query: str, limit: int, timeout: Optional[float] = None) -> List[Article]:
        if limit <= 0 or not query.strip():
            return []

        query_embedding = self.embedding_service.generate_embedding(query, timeout=timeout)
        # Several chunks can belong to one article, so over-fetch before de-duplicating
        hits = self.search(query_embedding, k=limit * 4)

        articles: List[Article] = []
        seen: Set[str] = set()
        for _, meta in hits:
            url = meta['url']
            if url in seen:
                continue
            seen.add(url)
            article = self.article_store.find_by_url(url)
            if article is None:
                logger.warning(f"Indexed article missing from store: {url}")
                continue
            articles.append(article)
            if len(articles) >= limit:
                break
        return articles

    def _save_index_locked(self) -> None:
        os.makedirs(os.path.dirname(self.index_path) or ".", exist_ok=True)
        faiss.write_index(self.index, self.index_path)

        metadata_path = self.index_path + '.metadata'
        temp_metadata_path = metadata_path + '.tmp'
        try:
            with open(temp_metadata_path, 'wb') as f:
                pickle.dump(self.metadata, f, protocol=pickle.HIGHEST_PROTOCOL)
            os.replace(temp_metadata_path, metadata_path)
        except Exception:
            if os.path.exists(temp_metadata_path):
                os.remove(temp_metadata_path)
            raise

    def save_index(self) -> None:
        """Persist the index and its metadata (metadata is written atomically)."""
        if not self.index_path:
            raise ValueError("No index_path configured")
        with self._lock:
            self._save_index_locked()

    def load_index(self) -> bool:
        """
        Load a previously saved index.

        Returns:
            True if loaded, False if the files were missing or inconsistent
            (the index is then left empty)
        """
        metadata_path = self.index_path + '.metadata'
        try:
            loaded_index = faiss.read_index(self.index_path)
            if os.path.exists(metadata_path):
                with open(metadata_path, 'rb') as f:
                    loaded_metadata = pickle.load(f)
            else:
                loaded_metadata = []

            if loaded_index.ntotal != len(loaded_metadata):
                raise ValueError(
                    f"Index has {loaded_index.ntotal} vectors but "
                    f"metadata has {len(loaded_metadata)} entries"
                )
            if loaded_index.d != self.dimension:
                raise ValueError(f"Index dimension {loaded_index.d} != {self.dimension}")

        except (OSError, RuntimeError, ValueError, pickle.UnpicklingError) as e:
            logger.warning(f"Could not load vector index from {self.index_path}, starting empty: {e}")
            with self._lock:
                self._initialize_index()
                self.metadata = []
                self._indexed_urls = set()
            return False

        with self._lock:
            self.index = loaded_index
            self.index.hnsw.efSearch = self.efSearch
            self.metadata = loaded_metadata
            self._indexed_urls = {meta['url'] for meta in loaded_metadata}
        logger.info(f"Loaded {self.index.ntotal} vectors from {self.index_path}")
        return True

    def count(self) -> int:
        return self.index.ntotal

    def get_stats(self) -> Dict:
        return {
            'backend': self.backend,
            'total_vectors': self.index.ntotal,
            'indexed_articles': len(self._indexed_urls),
            'dimension': self.dimension,
            'M': self.M,
            'efSearch': self.index.hnsw.efSearch,
            'index_type': 'IndexHNSWFlat',
            'embedding_cache': self.embedding_service.get_cache_stats(),
        }


class KeywordArticleIndex(VectorIndex):
    """
    Term-overlap search over the article store.

    Scores each article by how many query terms appear in its title, summary,
    topics and entities. Indexing is implicit: every stored article is searchable.
    """

    backend = "keyword"

    def __init__(self, article_store: ArticleStore):
        self.article_store = article_store

    @staticmethod
    def _tokens(value: str) -> Set[str]:
        return {token for token in TOKEN_PATTERN.findall(value.lower()) if len(token) > 2}

    def index_article(self, article: Article) -> None:
        return None

    def search_similar(self, query: str, limit: int, timeout: Optional[float] = None) -> List[Article]:
        if limit <= 0:
            return []
        terms = self._tokens(query)
        if not terms:
            return []

        scored = []
        for position, article in enumerate(self.article_store.find_all()):
            haystack = " ".join([article.title, article.summary, " ".join(article.topics), " ".join(article.entities)])
            score = len(terms & self._tokens(haystack))
            if score > 0:
                scored.append((-score, position, article))

        scored.sort(key=lambda item: (item[0], item[1]))
        return [article for _, _, article in scored[:limit]]

    def count(self) -> int:
        return self.article_store.count()


def build_vector_index(
    backend: str,
    article_store: ArticleStore,
    embedding_service: Optional[OllamaEmbeddingService] = None,
    index_path: Optional[str] = None
) -> VectorIndex:
    """
    Create the configured vector index.

    Raises:
        ValueError: For an unknown backend or a FAISS backend without an embedding service
    """
    if backend == "keyword":
        return KeywordArticleIndex(article_store)
    if backend == "faiss":
        if embedding_service is None:
            raise ValueError("The faiss backend requires an embedding service")
        return FaissArticleIndex(embedding_service, article_store, index_path=index_path)
    raise ValueError(f"Unsupported vector backend: {backend}")

