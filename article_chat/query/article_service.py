"""
Article Service

Read-side facade over the article store and the vector index, used by the
planner and by every strategy.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from ..context import RequestContext, check_context, run_with_deadline
from ..models import Article, EntityCount
from ..storage.article_store import ArticleStore
from ..storage.vector_store import VectorIndex

logger = logging.getLogger(__name__)


class ArticleService:
    """
    Lookup, search and aggregation over stored articles.

    Args:
        store: Article store
        vector_index: Semantic search index (optional, searches fail without it)
    """

    def __init__(self, store: ArticleStore, vector_index: Optional[VectorIndex] = None):
        self.store = store
        self.vector_index = vector_index

    def get_article(self, url: str, ctx: Optional[RequestContext] = None) -> Optional[Article]:
        check_context(ctx, "article lookup")
        return self.store.find_by_url(url.strip())

    def get_all_articles(self, ctx: Optional[RequestContext] = None) -> List[Article]:
        check_context(ctx, "article listing")
        return self.store.find_all()

    def search_similar_articles(
        self,
        query: str,
        limit: int,
        ctx: Optional[RequestContext] = None
    ) -> List[Article]:
        """
        Semantic search for articles.

        Raises:
            RuntimeError: If no vector index is configured
            Exception: Whatever the index raises (EmbeddingError, ValueError)
        """
        check_context(ctx, "semantic search")
        if self.vector_index is None:
            raise RuntimeError("No vector index configured")
        return run_with_deadline(
            ctx,
            lambda remaining: self.vector_index.search_similar(query, limit, timeout=remaining),
            "semantic search"
        )

    def resolve_articles(
        self,
        urls: Sequence[str],
        ctx: Optional[RequestContext] = None
    ) -> Tuple[List[Article], List[str]]:
        """
        Look up several articles, ignoring duplicate URLs.

        Returns:
            (found articles in first-seen order, URLs that were not found)
        """
        found: List[Article] = []
        missing: List[str] = []
        seen = set()
        for url in urls:
            key = url.strip()
            if not key or key in seen:
                continue
            seen.add(key)
            article = self.get_article(key, ctx)
            if article is None:
                missing.append(key)
            else:
                found.append(article)
        return found, missing

    def find_common_entities(
        self,
        urls: Sequence[str],
        limit: int = 10,
        ctx: Optional[RequestContext] = None
    ) -> List[EntityCount]:
        """
        Most common entities across the given articles (all articles when empty).
        """
        check_context(ctx, "entity aggregation")
        cleaned = [url.strip() for url in urls if url and url.strip()]
        return self.store.find_top_entities(cleaned, limit)

    def count(self) -> int:
        return self.store.count()
