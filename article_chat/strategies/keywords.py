"""
KEYWORDS: key terms of one article, from stored entities and topics or,
failing that, extracted from its summary by the model.
"""

from typing import List

from .base import ExecutionContext
from .. import prompts


def _unique(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        key = value.strip()
        if key and key.lower() not in seen:
            seen.add(key.lower())
            result.append(key)
    return result


def extract_keywords(ctx: ExecutionContext) -> str:
    if not ctx.plan.targets:
        return "Please specify which article you want to extract keywords from."

    article = ctx.get_article(ctx.plan.targets[0])
    if article is None:
        return "I couldn't find the requested article."

    title = article.title or article.url
    keywords = _unique(article.entities + article.topics)
    if keywords:
        return f"Keywords for '{title}':\n\n{', '.join(keywords)}"

    if not article.summary.strip():
        return f"I don't have enough information about '{title}' to extract keywords."

    return ctx.generate(prompts.keywords_prompt(title, article.summary))
