"""
Intent strategies and the executor that dispatches plans to them.
"""

from .base import ANSWER_PREFIX, INVALID_PLAN_MESSAGE, ExecutionContext, TemplateStrategy
from .compare import INSUFFICIENT_DATA_MESSAGE
from .executor import UNKNOWN_INTENT_MESSAGE, StrategyExecutor, build_default_registry
from .sentiment import describe_sentiment

__all__ = [
    'ANSWER_PREFIX',
    'INVALID_PLAN_MESSAGE',
    'INSUFFICIENT_DATA_MESSAGE',
    'UNKNOWN_INTENT_MESSAGE',
    'ExecutionContext',
    'TemplateStrategy',
    'StrategyExecutor',
    'build_default_registry',
    'describe_sentiment',
]
