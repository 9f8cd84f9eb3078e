"""
Ingestion Facade

Single entry point for adding articles:

1. Validate the URL
2. Reject URLs that are already stored
3. Fetch and parse the page
4. Analyze it (falls back to a title/excerpt analysis on failure)
5. Persist the article
6. Index it for semantic search (best effort)
"""

import logging
import time
from typing import List, Dict, Optional, Any

from tqdm import tqdm

from .analyzer import ArticleAnalyzer
from .fetcher import ArticleFetcher, validate_url
from ..context import RequestContext, check_context, run_with_deadline
from ..errors import ArticleChatError, DegradedError, DuplicateError, RequestCancelledError
from ..models import Article, utc_now
from ..storage.article_store import ArticleStore
from ..storage.vector_store import VectorIndex

logger = logging.getLogger(__name__)


def read_url_file(file_path: str) -> List[str]:
    """
    Read URLs from a text file, one per line.

    Blank lines and lines starting with '#' are skipped.
    """
    urls = []
    with open(file_path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#'):
                urls.append(line)
    return urls


class IngestionFacade:
    """
    Coordinates fetching, analysis, persistence and indexing of articles.

    Args:
        fetcher: Article fetcher
        analyzer: Article analyzer
        store: Article store
        vector_index: Search index (optional)
    """

    def __init__(
        self,
        fetcher: ArticleFetcher,
        analyzer: ArticleAnalyzer,
        store: ArticleStore,
        vector_index: Optional[VectorIndex] = None
    ):
        self.fetcher = fetcher
        self.analyzer = analyzer
        self.store = store
        self.vector_index = vector_index

    def _index(self, article: Article) -> None:
        if self.vector_index is None:
            return
        try:
            self.vector_index.index_article(article)
        except Exception as e:
            degraded = DegradedError(f"Failed to index article {article.url}: {e}")
            logger.warning(str(degraded))

    def add_new_article(self, url: str, ctx: Optional[RequestContext] = None) -> Article:
        """
        Ingest an article from a URL.

        Args:
            url: Article URL
            ctx: Request context for cancellation

        Returns:
            The stored Article (including its full text)

        Raises:
            ValidationError: If the URL is malformed
            DuplicateError: If the URL is already stored
            FetchError: If the page cannot be fetched or is not an article
            PersistenceError: If the store rejects the write
            RequestCancelledError: If the request is cancelled
        """
        url = validate_url(url)
        logger.info(f"Ingesting article: {url}")

        check_context(ctx, "existence check")
        if self.store.exists(url):
            raise DuplicateError(f"Article already exists: {url}")

        fetched = run_with_deadline(ctx, lambda remaining: self.fetcher.fetch(url), "fetch")

        analysis = self.analyzer.analyze(fetched, ctx)

        article = Article(
            url=url,
            title=fetched.title,
            excerpt=fetched.excerpt,
            full_text=fetched.text,
            summary=analysis.summary,
            sentiment=analysis.sentiment,
            topics=analysis.topics,
            entities=analysis.entities,
            processed_at=utc_now(),
        )

        check_context(ctx, "persist")
        # The unique key decides races between concurrent ingestions of one URL
        self.store.save(article)

        self._index(article)

        logger.info(f"Successfully ingested article: {article.title}")
        return article

    def ingest_article(self, url: str, ctx: Optional[RequestContext] = None) -> Dict[str, Any]:
        """
        add_new_article() reporting the outcome as a result record instead of raising.

        Returns:
            Dictionary with success, url, title, skipped and error keys
        """
        start_time = time.time()
        try:
            article = self.add_new_article(url, ctx)
        except RequestCancelledError:
            raise
        except DuplicateError as e:
            return {'success': False, 'skipped': True, 'url': url, 'error': str(e),
                    'processing_time': time.time() - start_time}
        except ArticleChatError as e:
            logger.error(f"Error ingesting article {url}: {e}")
            return {'success': False, 'skipped': False, 'url': url, 'error': str(e),
                    'processing_time': time.time() - start_time}

        return {
            'success': True,
            'skipped': False,
            'url': url,
            'title': article.title,
            'processing_time': time.time() - start_time
        }

    def ingest_batch(
        self,
        urls: List[str],
        show_progress: bool = True,
        ctx: Optional[RequestContext] = None
    ) -> Dict[str, Any]:
        """
        Ingest several URLs sequentially.

        Returns:
            Dictionary with total, successful, skipped, failed,
            processing_time and per-URL details
        """
        start_time = time.time()
        results = []

        iterator = tqdm(urls, desc="Ingesting articles") if show_progress else urls
        for url in iterator:
            results.append(self.ingest_article(url, ctx))

        successful = sum(1 for r in results if r['success'])
        skipped = sum(1 for r in results if r['skipped'])

        summary = {
            'total': len(urls),
            'successful': successful,
            'skipped': skipped,
            'failed': len(results) - successful - skipped,
            'processing_time': time.time() - start_time,
            'details': results
        }
        logger.info(
            f"Batch ingestion complete: {summary['successful']} added, "
            f"{summary['skipped']} already present, {summary['failed']} failed"
        )
        return summary

    def ingest_from_file(self, file_path: str, show_progress: bool = True) -> Dict[str, Any]:
        """Ingest every URL listed in a file (see read_url_file)."""
        urls = read_url_file(file_path)
        logger.info(f"Loaded {len(urls)} URLs from {file_path}")
        return self.ingest_batch(urls, show_progress=show_progress)
