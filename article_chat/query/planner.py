"""
Query Planner

Turns a free-text question into a structured Plan with one generative call:

1. Retrieve context articles (semantic search, falling back to the whole corpus)
2. Render the planner prompt
3. Call the generative provider
4. Parse the response strictly into a Plan
"""

import logging
from typing import List, Optional

from .. import prompts
from ..context import RequestContext, run_with_deadline
from ..errors import PlanningError, PlanParseError, RequestCancelledError
from ..llm.base import LLMClient
from ..models import Article, Plan
from .article_service import ArticleService

logger = logging.getLogger(__name__)


class QueryPlanner:
    """
    Builds Plans from user queries.

    Args:
        llm: Generative provider
        article_service: Source of context articles
        context_k: Number of articles retrieved as planning context
    """

    def __init__(self, llm: LLMClient, article_service: ArticleService, context_k: int = 5):
        self.llm = llm
        self.article_service = article_service
        self.context_k = context_k

    def _context_articles(self, query: str, ctx: Optional[RequestContext]) -> List[Article]:
        try:
            return self.article_service.search_similar_articles(query, self.context_k, ctx)
        except RequestCancelledError:
            raise
        except Exception as e:
            logger.warning(f"Semantic search failed, planning over all articles instead: {e}")

        try:
            return self.article_service.get_all_articles(ctx)
        except RequestCancelledError:
            raise
        except Exception as e:
            raise PlanningError(f"could not load context articles: {e}", stage="context") from e

    def create_plan(self, query: str, ctx: Optional[RequestContext] = None) -> Plan:
        """
        Create a plan for a query.

        Args:
            query: The user's question
            ctx: Request context for cancellation

        Returns:
            Parsed Plan (intent UNKNOWN when the model picks no known intent)

        Raises:
            PlanningError: With stage "context", "prompt", "generation" or "parse"
            RequestCancelledError: If the request is cancelled mid-way
        """
        articles = self._context_articles(query, ctx)
        logger.debug(f"Planning with {len(articles)} context articles")

        try:
            prompt = prompts.planner_prompt(query, articles)
        except Exception as e:
            raise PlanningError(f"could not build planner prompt: {e}", stage="prompt") from e

        try:
            response = run_with_deadline(
                ctx,
                lambda remaining: self.llm.generate_content(prompt, timeout=remaining),
                "planner generation"
            )
        except RequestCancelledError:
            raise
        except Exception as e:
            raise PlanningError(f"planner generation failed: {e}", stage="generation") from e

        try:
            plan = Plan.from_llm_text(response.text, question=query)
        except PlanParseError as e:
            logger.error(f"Could not parse planner response: {response.text!r}")
            raise PlanningError(f"could not parse planner response: {e}", stage="parse") from e

        logger.info(
            f"Plan: intent={plan.intent.value}, targets={len(plan.targets)}, "
            f"parameters={list(plan.parameters)}"
        )
        return plan
