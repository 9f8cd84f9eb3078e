"""
Multi-article comparisons: positivity, tone, general comparison and
sentiment across a topic.

Each works on explicit targets (at least two) or, without targets, on
articles discovered by searching for the plan parameters.
"""

from typing import Callable, List, Optional

from .base import ExecutionContext, collect_articles, plan_topic
from .sentiment import describe_sentiment
from .. import prompts
from ..models import Article

INSUFFICIENT_DATA_MESSAGE = (
    "I couldn't find enough articles to compare. "
    "Please refer to at least two articles that are available in the collection."
)

PAIR_DISCOVERY_LIMIT = 3
GROUP_DISCOVERY_LIMIT = 5


def _comparison_articles(ctx: ExecutionContext, limit: int) -> Optional[List[Article]]:
    """
    Collect articles to compare, or None when the plan needs clarification.
    """
    plan = ctx.plan
    if plan.targets and len(plan.targets) < 2:
        return None
    if not plan.targets and not plan_topic(plan):
        return None
    return collect_articles(ctx, limit)


def _run_comparison(
    ctx: ExecutionContext,
    limit: int,
    render: Callable[[List[Article]], str]
) -> str:
    articles = _comparison_articles(ctx, limit)
    if articles is None:
        return "Please specify at least two articles, or a topic, to compare."
    if len(articles) < 2:
        return INSUFFICIENT_DATA_MESSAGE
    return ctx.generate(render(articles))


def compare_positivity(ctx: ExecutionContext) -> str:
    topic = plan_topic(ctx.plan) or None
    return _run_comparison(
        ctx, PAIR_DISCOVERY_LIMIT,
        lambda articles: prompts.compare_positivity_prompt(articles, topic)
    )


def compare_tone(ctx: ExecutionContext) -> str:
    return _run_comparison(ctx, PAIR_DISCOVERY_LIMIT, prompts.compare_tone_prompt)


def compare_multiple(ctx: ExecutionContext) -> str:
    question = ctx.plan.question
    return _run_comparison(
        ctx, GROUP_DISCOVERY_LIMIT,
        lambda articles: prompts.compare_multiple_prompt(articles, question)
    )


def compare_all_sentiment(ctx: ExecutionContext) -> str:
    topic = plan_topic(ctx.plan)
    articles = _comparison_articles(ctx, GROUP_DISCOVERY_LIMIT)
    if articles is None:
        return "Please specify the topic, or at least two articles, for sentiment comparison."
    if len(articles) < 2:
        return INSUFFICIENT_DATA_MESSAGE

    lines = []
    for i, article in enumerate(articles, 1):
        title = article.title or article.url
        if article.sentiment:
            lines.append(
                f"Article {i}: '{title}' - Sentiment: {article.sentiment} "
                f"({describe_sentiment(article.sentiment)})"
            )
        else:
            lines.append(f"Article {i}: '{title}' - Sentiment: not available")

    synthesis = ctx.generate(prompts.compare_all_sentiment_prompt(topic, lines))

    heading = f"Sentiment comparison for articles about '{topic}':" if topic else "Sentiment comparison:"
    return f"{heading}\n\n" + "\n".join(lines) + f"\n\n{synthesis}"
