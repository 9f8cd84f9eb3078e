"""
SUMMARIZE: return the stored summary of the first target article.
"""

from .base import ExecutionContext
from ..errors import NotFoundError


def summarize(ctx: ExecutionContext) -> str:
    """
    Raises:
        NotFoundError: If the article or its summary is missing
    """
    if not ctx.plan.targets:
        return "Please specify which article you want to summarize."

    url = ctx.plan.targets[0]
    article = ctx.get_article(url)
    if article is None:
        raise NotFoundError(f"Article not found: {url}")
    if not article.summary.strip():
        raise NotFoundError(f"No summary available for article: {url}")

    return article.summary
