"""
Strategy Building Blocks

A strategy is a plain function from an ExecutionContext to an answer string.
TemplateStrategy wraps one with the steps every intent shares: plan
validation before, answer formatting after.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from ..context import RequestContext, check_context, run_with_deadline
from ..errors import ArticleChatError, UpstreamError
from ..llm.base import LLMClient
from ..models import Article, Plan
from ..query.article_service import ArticleService
from ..storage.vector_store import VectorIndex

logger = logging.getLogger(__name__)

ANSWER_PREFIX = "🤖 Here is your answer:\n\n"
INVALID_PLAN_MESSAGE = "Invalid plan provided."


@dataclass
class ExecutionContext:
    """Everything a strategy may touch while answering one plan."""
    plan: Plan
    articles: ArticleService
    llm: LLMClient
    vectors: Optional[VectorIndex] = None
    request: Optional[RequestContext] = None

    def check(self, stage: str = "") -> None:
        check_context(self.request, stage)

    def generate(self, prompt: str) -> str:
        """
        Run one generative call.

        Raises:
            RequestCancelledError: If the request is cancelled or its deadline
                passes before the call returns
            UpstreamError: If the provider fails
        """
        try:
            response = run_with_deadline(
                self.request,
                lambda remaining: self.llm.generate_content(prompt, timeout=remaining),
                "generation"
            )
            return response.text.strip()
        except ArticleChatError:
            raise
        except Exception as e:
            raise UpstreamError(f"generation failed: {e}") from e

    def search(self, query: str, limit: int) -> List[Article]:
        return self.articles.search_similar_articles(query, limit, self.request)

    def get_article(self, url: str) -> Optional[Article]:
        return self.articles.get_article(url, self.request)

    def resolve(self, urls: List[str]) -> Tuple[List[Article], List[str]]:
        return self.articles.resolve_articles(urls, self.request)


StrategyStep = Callable[[ExecutionContext], str]


class TemplateStrategy:
    """
    Validate → execute → format around an injected core step.

    Args:
        name: Intent name, used for logging
        step: The per-intent function producing the raw answer
    """

    def __init__(self, name: str, step: StrategyStep):
        self.name = name
        self.step = step

    @staticmethod
    def validate(plan: Optional[Plan]) -> Optional[str]:
        """Return a user-facing message if the plan is unusable, else None."""
        if plan is None or not plan.intent:
            return INVALID_PLAN_MESSAGE
        return None

    @staticmethod
    def format_response(answer: str) -> str:
        return f"{ANSWER_PREFIX}{answer}"

    def execute(self, ctx: ExecutionContext) -> str:
        problem = self.validate(ctx.plan)
        if problem is not None:
            return problem

        logger.info(f"Executing {self.name} strategy")
        return self.format_response(self.step(ctx))

    def __repr__(self) -> str:
        return f"TemplateStrategy({self.name})"


def plan_topic(plan: Plan) -> str:
    """The plan parameters joined into one search phrase."""
    return " ".join(p.strip() for p in plan.parameters if p.strip())


def collect_articles(ctx: ExecutionContext, limit: int) -> List[Article]:
    """
    Gather the articles a multi-article strategy works on.

    Explicit targets are resolved, skipping (and logging) any that are not
    stored. Without targets the plan parameters drive a semantic search for
    up to `limit` articles.
    """
    plan = ctx.plan
    if plan.targets:
        articles, missing = ctx.resolve(plan.targets)
        if missing:
            logger.warning(f"{plan.intent.value}: skipping unknown articles {missing}")
        return articles

    topic = plan_topic(plan)
    if not topic:
        return []
    return ctx.search(topic, limit)
