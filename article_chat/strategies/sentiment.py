"""
SENTIMENT: stored sentiment of each target article, with a plain-language
description of numeric scores.
"""

import math

from .base import ExecutionContext

LABEL_DESCRIPTIONS = {
    "positive": "Positive",
    "pos": "Positive",
    "negative": "Negative",
    "neg": "Negative",
    "neutral": "Neutral",
    "neu": "Neutral",
}


def describe_score(score: float) -> str:
    """Map a score in [-1, 1] to one of seven buckets (after rounding to one decimal)."""
    score = round(score, 1)
    if score >= 0.7:
        return "Very Positive"
    if score >= 0.5:
        return "Somewhat Positive"
    if score > 0:
        return "Slightly Positive"
    if score == 0:
        return "Neutral"
    if score >= -0.2:
        return "Slightly Negative"
    if score > -0.7:
        return "Somewhat Negative"
    return "Very Negative"


def describe_sentiment(sentiment: str) -> str:
    """
    Describe a stored sentiment label.

    Accepts plain labels ("positive"), bare scores ("0.4") and the combined
    "<score> (<label>)" form. Anything unparseable is returned unchanged.
    """
    if not sentiment or not sentiment.strip():
        return "Unknown"

    value = sentiment.strip()
    label = LABEL_DESCRIPTIONS.get(value.lower())
    if label:
        return label

    score_text = value.split("(", 1)[0].strip()
    try:
        score = float(score_text)
    except ValueError:
        return value
    if not math.isfinite(score):
        return value
    return describe_score(score)


def analyze_sentiment(ctx: ExecutionContext) -> str:
    if not ctx.plan.targets:
        return "Please specify which article you want to analyze sentiment for."

    results = []
    found = 0
    for i, url in enumerate(ctx.plan.targets, 1):
        article = ctx.get_article(url)
        if article is None:
            results.append(f"Article {i}: Could not find article at {url}")
            continue

        found += 1
        title = article.title or article.url
        if article.sentiment:
            results.append(
                f"Article {i}: '{title}' - Sentiment: {article.sentiment} "
                f"({describe_sentiment(article.sentiment)})"
            )
        else:
            results.append(f"Article {i}: '{title}' - Sentiment analysis not available")

    if found == 0:
        return "No articles found for sentiment analysis."

    return "Sentiment Analysis Results:\n\n" + "\n".join(results)
