"""
Strategy Executor

Dispatches a Plan to the strategy registered for its intent.
"""

import logging
from typing import Dict, Optional

from .base import ExecutionContext, TemplateStrategy, INVALID_PLAN_MESSAGE
from .compare import compare_all_sentiment, compare_multiple, compare_positivity, compare_tone
from .entities import find_common_entities
from .keywords import extract_keywords
from .sentiment import analyze_sentiment
from .summarize import summarize
from .topic import find_by_topic
from ..context import RequestContext
from ..errors import NotFoundError, RequestCancelledError, StrategyExecutionError
from ..llm.base import LLMClient
from ..models import Intent, Plan
from ..query.article_service import ArticleService
from ..storage.vector_store import VectorIndex

logger = logging.getLogger(__name__)

UNKNOWN_INTENT_MESSAGE = "I'm sorry, I don't know how to handle the intent: {intent}"


def build_default_registry() -> Dict[Intent, TemplateStrategy]:
    """The fixed intent → strategy mapping. UNKNOWN has no entry."""
    steps = {
        Intent.SUMMARIZE: summarize,
        Intent.KEYWORDS: extract_keywords,
        Intent.SENTIMENT: analyze_sentiment,
        Intent.COMPARE_TONE: compare_tone,
        Intent.FIND_BY_TOPIC: find_by_topic,
        Intent.COMPARE_POSITIVITY: compare_positivity,
        Intent.FIND_COMMON_ENTITIES: find_common_entities,
        Intent.COMPARE_ALL_SENTIMENT: compare_all_sentiment,
        Intent.COMPARE_MULTIPLE: compare_multiple,
    }
    return {intent: TemplateStrategy(intent.value, step) for intent, step in steps.items()}


class StrategyExecutor:
    """
    Executes plans against the registered strategies.

    Args:
        registry: Intent → strategy mapping (defaults to build_default_registry())
    """

    def __init__(self, registry: Optional[Dict[Intent, TemplateStrategy]] = None):
        self.registry = registry if registry is not None else build_default_registry()

    def execute_plan(
        self,
        plan: Optional[Plan],
        article_service: ArticleService,
        llm: LLMClient,
        vector_index: Optional[VectorIndex] = None,
        ctx: Optional[RequestContext] = None
    ) -> str:
        """
        Execute a plan and return the answer text.

        Unregistered intents produce an apology message rather than an error.

        Raises:
            NotFoundError: If a required article is missing
            RequestCancelledError: If the request is cancelled
            StrategyExecutionError: For any other failure inside a strategy
        """
        if plan is None:
            return INVALID_PLAN_MESSAGE

        strategy = self.registry.get(plan.intent)
        if strategy is None:
            intent_name = plan.intent.value if isinstance(plan.intent, Intent) else str(plan.intent)
            logger.warning(f"No strategy registered for intent {intent_name}")
            return UNKNOWN_INTENT_MESSAGE.format(intent=intent_name)

        execution_context = ExecutionContext(
            plan=plan,
            articles=article_service,
            llm=llm,
            vectors=vector_index,
            request=ctx,
        )

        try:
            return strategy.execute(execution_context)
        except (NotFoundError, RequestCancelledError):
            raise
        except Exception as e:
            logger.error(f"Strategy {strategy.name} failed: {e}")
            raise StrategyExecutionError(strategy.name, e) from e
