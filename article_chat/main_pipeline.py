"""
Main Pipeline System

Wires every component into one system object used by the HTTP API and the
CLI:

- Chat: cache lookup → planning → strategy execution → cache store
- Ingestion: the ingestion facade, plus bulk seeding from a URL file
- Entity aggregation and system statistics
"""

import logging
import os
import threading
from typing import List, Dict, Optional, Any

import psutil

from .config import Config, get_config
from .context import RequestContext, check_context
from .embeddings.ollama_service import OllamaEmbeddingService
from .errors import ValidationError
from .ingestion.analyzer import ArticleAnalyzer
from .ingestion.facade import IngestionFacade
from .ingestion.fetcher import ArticleFetcher
from .llm.base import LLMClient
from .llm.factory import create_llm_client
from .models import Article, EntityCount, Intent
from .query.article_service import ArticleService
from .query.cache import ResponseCache
from .query.planner import QueryPlanner
from .storage.article_store import ArticleStore, SQLArticleStore
from .storage.vector_store import VectorIndex, build_vector_index
from .strategies.executor import StrategyExecutor

logger = logging.getLogger(__name__)

CACHED_ANSWER_PREFIX = "🤖 (from cache)\n\n"


class ArticleChatSystem:
    """
    The assembled article chat system.

    Every component may be injected; anything not supplied is built from the
    configuration.

    Args:
        config: Configuration (defaults to the global configuration)
        llm: Generative provider
        store: Article store
        vector_index: Search index
        embedding_service: Embedding provider for the FAISS backend
        fetcher: Article fetcher
        cache: Response cache
        executor: Strategy executor
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        llm: Optional[LLMClient] = None,
        store: Optional[ArticleStore] = None,
        vector_index: Optional[VectorIndex] = None,
        embedding_service: Optional[OllamaEmbeddingService] = None,
        fetcher: Optional[ArticleFetcher] = None,
        cache: Optional[ResponseCache] = None,
        executor: Optional[StrategyExecutor] = None
    ):
        self.config = config or get_config()

        self.llm = llm or create_llm_client(self.config)
        self.store = store or SQLArticleStore(self.config.database_path)

        if vector_index is None:
            if self.config.vector_backend == "faiss" and embedding_service is None:
                embedding_service = OllamaEmbeddingService(
                    model=self.config.embedding_model,
                    base_url=self.config.ollama_base_url,
                    chunk_size=self.config.chunk_size,
                    chunk_overlap=self.config.chunk_overlap,
                    timeout=self.config.embedding_timeout,
                )
            vector_index = build_vector_index(
                self.config.vector_backend,
                self.store,
                embedding_service=embedding_service,
                index_path=self.config.faiss_index_path,
            )
        self.embedding_service = embedding_service
        self.vector_index = vector_index

        self.cache = cache or ResponseCache()
        self.executor = executor or StrategyExecutor()

        self.article_service = ArticleService(self.store, self.vector_index)
        self.planner = QueryPlanner(self.llm, self.article_service, context_k=self.config.planner_context_k)
        self.ingestion = IngestionFacade(
            fetcher=fetcher or ArticleFetcher(
                timeout=self.config.article_timeout,
                min_text_length=self.config.article_min_text_length,
            ),
            analyzer=ArticleAnalyzer(self.llm),
            store=self.store,
            vector_index=self.vector_index,
        )

        self._seed_thread: Optional[threading.Thread] = None
        logger.info(
            f"ArticleChatSystem initialized (llm={self.llm.name}, "
            f"vectors={self.vector_index.backend})"
        )

    def new_request_context(self) -> RequestContext:
        """A request context with the configured request timeout."""
        return RequestContext(timeout=self.config.request_timeout)

    def chat(self, query: str, ctx: Optional[RequestContext] = None) -> str:
        """
        Answer a natural-language question.

        Answers are cached under both the query text and the plan fingerprint,
        so repeated questions skip planning and differently worded questions
        with the same plan skip execution.

        Args:
            query: The user's question
            ctx: Request context for cancellation

        Returns:
            Answer text (cache hits carry a "from cache" prefix)

        Raises:
            ValidationError: If the query is empty
            PlanningError: If no plan could be produced
            NotFoundError: If a required article is missing
            StrategyExecutionError: If executing the plan failed
            RequestCancelledError: If the request is cancelled
        """
        if not query or not query.strip():
            raise ValidationError("Query cannot be empty")
        query = query.strip()

        query_key = self.cache.key_for_query(query)
        cached, found = self.cache.get(query_key)
        if found:
            logger.info("Answer served from cache (query match)")
            return CACHED_ANSWER_PREFIX + cached

        check_context(ctx, "planning")
        plan = self.planner.create_plan(query, ctx)

        plan_key = self.cache.key(plan)
        cached, found = self.cache.get(plan_key)
        if found:
            logger.info("Answer served from cache (plan match)")
            self.cache.set(query_key, cached)
            return CACHED_ANSWER_PREFIX + cached

        answer = self.executor.execute_plan(plan, self.article_service, self.llm, self.vector_index, ctx)

        if plan.intent is not Intent.UNKNOWN:
            self.cache.set(plan_key, answer)
            self.cache.set(query_key, answer)
        return answer

    def add_article(self, url: str, ctx: Optional[RequestContext] = None) -> Article:
        """Ingest one article (see IngestionFacade.add_new_article)."""
        return self.ingestion.add_new_article(url, ctx)

    def find_common_entities(self, urls: Optional[List[str]] = None, limit: int = 10) -> List[EntityCount]:
        """Top entities across the given articles, or the whole corpus."""
        return self.article_service.find_common_entities(urls or [], limit=limit)

    def ingest_seed_urls(self, show_progress: bool = False) -> Optional[Dict[str, Any]]:
        """
        Ingest the configured seed URL file.

        Returns:
            Batch summary, or None if the file does not exist
        """
        path = self.config.seed_urls_file
        if not path or not os.path.exists(path):
            logger.info(f"No seed URL file at {path}, skipping seed ingestion")
            return None
        return self.ingestion.ingest_from_file(path, show_progress=show_progress)

    def _run_seed_ingestion(self) -> None:
        try:
            self.ingest_seed_urls()
        except Exception as e:
            logger.error(f"Seed ingestion stopped: {e}")

    def start_seed_ingestion(self) -> Optional[threading.Thread]:
        """Ingest the seed URLs on a background daemon thread (at most once)."""
        if self._seed_thread is not None:
            return self._seed_thread
        self._seed_thread = threading.Thread(
            target=self._run_seed_ingestion,
            name="seed-ingestion",
            daemon=True,
        )
        self._seed_thread.start()
        logger.info("Started background seed ingestion")
        return self._seed_thread

    def get_resource_usage(self) -> Dict[str, float]:
        """Current process CPU and memory usage."""
        process = psutil.Process()
        return {
            'cpu_percent': process.cpu_percent(interval=0.1),
            'memory_mb': process.memory_info().rss / 1024 / 1024,
            'memory_percent': process.memory_percent()
        }

    def get_stats(self) -> Dict[str, Any]:
        """
        Get system statistics.

        Returns:
            Dictionary with article, vector, cache and resource statistics
        """
        return {
            'total_articles': self.store.count(),
            'llm_provider': self.llm.name,
            'vector_store_stats': self.vector_index.get_stats(),
            'cache_stats': self.cache.get_stats().to_dict(),
            'resource_usage': self.get_resource_usage(),
        }
