"""
FIND_BY_TOPIC: search for articles on a topic and synthesize what they say.
"""

from .base import ExecutionContext, plan_topic
from .. import prompts

TOPIC_RESULT_LIMIT = 3


def find_by_topic(ctx: ExecutionContext) -> str:
    topic = plan_topic(ctx.plan)
    if not topic:
        return "Please specify a topic to search for."

    articles = ctx.search(topic, TOPIC_RESULT_LIMIT)
    if not articles:
        return f"No articles found discussing '{topic}'."

    listing = "\n".join(f"{i}. {a.title or a.url} ({a.url})" for i, a in enumerate(articles, 1))
    synthesis = ctx.generate(prompts.find_topic_prompt(topic, articles))
    return f"Found {len(articles)} articles discussing '{topic}':\n\n{listing}\n\n{synthesis}"
