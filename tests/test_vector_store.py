"""
Tests for the vector indexes.

The FAISS index runs against a fake embedding service producing small,
keyword-driven vectors, so no model server is needed.
"""

import os
import tempfile
from unittest.mock import Mock

import numpy as np
import pytest

from article_chat.storage.article_store import InMemoryArticleStore
from article_chat.storage.vector_store import (
    FaissArticleIndex, KeywordArticleIndex, build_vector_index
)

DIMENSION = 8
KEYWORDS = ["chips", "cloud", "climate"]


def fake_embedding(text: str, timeout=None) -> np.ndarray:
    vector = np.full(DIMENSION, 0.01, dtype=np.float32)
    lowered = text.lower()
    for i, keyword in enumerate(KEYWORDS):
        if keyword in lowered:
            vector[i] = 1.0
    return vector


@pytest.fixture
def embedding_service():
    service = Mock()
    service.dimension = DIMENSION
    service.chunk_text.side_effect = lambda text: [text] if text.strip() else []
    service.generate_embeddings_batch.side_effect = lambda texts: [fake_embedding(t) for t in texts]
    service.generate_embedding.side_effect = fake_embedding
    service.get_cache_stats.return_value = {'hits': 0}
    return service


@pytest.fixture
def faiss_index(embedding_service, article_store, sample_articles):
    index = FaissArticleIndex(embedding_service, article_store)
    for article in sample_articles:
        index.index_article(article)
    return index


class TestFaissArticleIndex:
    """Test the FAISS-backed index."""

    def test_uses_hnsw_index(self, embedding_service, article_store):
        """Test the HNSW parameters are applied."""
        index = FaissArticleIndex(embedding_service, article_store)

        assert index.index.hnsw.efSearch == 128
        assert index.count() == 0

    def test_search_returns_most_relevant_article_first(self, faiss_index):
        """Test the nearest article is ranked first."""
        results = faiss_index.search_similar("new cloud regions", limit=2)

        assert results[0].url == "https://example.com/cloud-outage"
        assert len(results) == 2

    def test_results_are_distinct_articles(self, faiss_index):
        """Test chunks of one article collapse to one result."""
        results = faiss_index.search_similar("climate", limit=10)

        urls = [a.url for a in results]
        assert len(urls) == len(set(urls)) == 3

    def test_reindexing_same_url_is_noop(self, faiss_index, sample_articles, embedding_service):
        """Test indexing is idempotent per URL."""
        before = faiss_index.count()
        calls = embedding_service.generate_embeddings_batch.call_count

        faiss_index.index_article(sample_articles[0])

        assert faiss_index.count() == before
        assert embedding_service.generate_embeddings_batch.call_count == calls

    def test_empty_article_rejected(self, embedding_service, article_store, article_factory):
        """Test articles without text cannot be indexed."""
        index = FaissArticleIndex(embedding_service, article_store)

        with pytest.raises(ValueError):
            index.index_article(article_factory("https://a.com/empty", title="", summary="", excerpt=""))

    def test_empty_query_and_limit(self, faiss_index):
        """Test degenerate searches."""
        assert faiss_index.search_similar("", limit=3) == []
        assert faiss_index.search_similar("cloud", limit=0) == []

    def test_save_and_load(self, embedding_service, article_store, sample_articles):
        """Test a persisted index is restored with its metadata."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "articles.index")

            index = FaissArticleIndex(embedding_service, article_store, index_path=path)
            index.index_article(sample_articles[1])
            assert os.path.exists(path)
            assert os.path.exists(path + '.metadata')

            restored = FaissArticleIndex(embedding_service, article_store, index_path=path)
            assert restored.count() == 1
            assert restored.search_similar("cloud", limit=1)[0].url == sample_articles[1].url

    def test_corrupt_index_starts_empty(self, embedding_service, article_store):
        """Test an unreadable index file is ignored."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "articles.index")
            with open(path, 'wb') as f:
                f.write(b"not an index")

            index = FaissArticleIndex(embedding_service, article_store, index_path=path)
            assert index.count() == 0

    def test_stats(self, faiss_index):
        """Test statistics include index details."""
        stats = faiss_index.get_stats()

        assert stats['backend'] == "faiss"
        assert stats['total_vectors'] == 3
        assert stats['indexed_articles'] == 3
        assert stats['dimension'] == DIMENSION


class TestKeywordArticleIndex:
    """Test the term-overlap index."""

    def test_ranks_by_term_overlap(self, article_store):
        """Test articles sharing more query terms rank first."""
        index = KeywordArticleIndex(article_store)

        results = index.search_similar("cloud outage services", limit=3)
        assert results[0].url == "https://example.com/cloud-outage"

    def test_matches_topics_and_entities(self, article_store):
        """Test topics and entities are searchable."""
        index = KeywordArticleIndex(article_store)

        assert [a.url for a in index.search_similar("oceans", limit=3)] == ["https://example.com/climate-report"]
        assert [a.url for a in index.search_similar("Amazon", limit=3)] == ["https://example.com/cloud-outage"]

    def test_no_matches(self, article_store):
        """Test unrelated queries return nothing."""
        index = KeywordArticleIndex(article_store)

        assert index.search_similar("football", limit=3) == []
        assert index.search_similar("a", limit=3) == []

    def test_count_follows_store(self, article_store):
        """Test every stored article counts as indexed."""
        assert KeywordArticleIndex(article_store).count() == 3


class TestBuildVectorIndex:
    """Test backend selection."""

    def test_keyword_backend(self):
        """Test the keyword backend needs no embeddings."""
        assert isinstance(build_vector_index("keyword", InMemoryArticleStore()), KeywordArticleIndex)

    def test_faiss_requires_embedding_service(self):
        """Test FAISS without an embedding service is rejected."""
        with pytest.raises(ValueError, match="embedding service"):
            build_vector_index("faiss", InMemoryArticleStore())

    def test_unknown_backend(self):
        """Test unknown backends are rejected."""
        with pytest.raises(ValueError, match="Unsupported"):
            build_vector_index("annoy", InMemoryArticleStore())
