"""
Article Analyzer

One generative call per article producing a headline, key points, a
sentiment label, entities and topics. Analysis never fails ingestion: when
the call or its parsing fails a deterministic fallback is derived from the
article's title and excerpt.
"""

import json
import logging
from typing import Any, List, Optional

from .. import prompts
from ..context import RequestContext, check_context, run_with_deadline
from ..errors import RequestCancelledError
from ..llm.base import LLMClient
from ..models import AnalysisResult, FetchedArticle, strip_code_fence

logger = logging.getLogger(__name__)


class AnalysisParseError(ValueError):
    """Raised when the analysis response is not the expected JSON object."""


def _as_string_list(value: Any) -> List[str]:
    """Accept a list of strings, or of {"name": ...} objects."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise AnalysisParseError(f"expected a list, got {type(value).__name__}")

    items = []
    for item in value:
        if isinstance(item, dict):
            item = item.get('name') or item.get('term') or ""
        if not isinstance(item, str):
            raise AnalysisParseError(f"expected strings, got {item!r}")
        if item.strip() and item.strip() not in items:
            items.append(item.strip())
    return items


def _as_sentiment(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, bool):
        raise AnalysisParseError(f"invalid sentiment: {value!r}")
    if isinstance(value, (int, float)):
        return f"{float(value):.2f}"
    if isinstance(value, dict) and isinstance(value.get('score'), (int, float)):
        label = value.get('label')
        score = f"{float(value['score']):.2f}"
        return f"{score} ({label})" if label else score
    raise AnalysisParseError(f"invalid sentiment: {value!r}")


def parse_analysis(text: str) -> AnalysisResult:
    """
    Parse the model's analysis JSON.

    Raises:
        AnalysisParseError: If the text is not a usable analysis object
    """
    try:
        payload = json.loads(strip_code_fence(text or ""))
    except json.JSONDecodeError as e:
        raise AnalysisParseError(f"analysis is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise AnalysisParseError("analysis must be a JSON object")

    headline = payload.get('headline')
    if not isinstance(headline, str) or not headline.strip():
        raise AnalysisParseError("analysis is missing a headline")

    entities = _as_string_list(payload.get('entities'))
    # Topics fall back to the entities when the model returns none
    topics = _as_string_list(payload.get('topics')) or list(entities)

    return AnalysisResult(
        headline=headline.strip(),
        key_points=_as_string_list(payload.get('key_points')),
        sentiment=_as_sentiment(payload.get('sentiment', 'neutral')),
        entities=entities,
        topics=topics,
    )


class ArticleAnalyzer:
    """
    Produces the stored analysis of a fetched article.

    Args:
        llm: Generative provider
    """

    def __init__(self, llm: LLMClient):
        self.llm = llm

    @staticmethod
    def fallback(article: FetchedArticle) -> AnalysisResult:
        """Analysis built from the title and excerpt alone."""
        key_points = [article.excerpt] if article.excerpt else []
        return AnalysisResult(
            headline=article.title,
            key_points=key_points,
            sentiment="neutral",
            entities=[],
            topics=[],
            degraded=True,
        )

    def analyze(self, article: FetchedArticle, ctx: Optional[RequestContext] = None) -> AnalysisResult:
        """
        Analyze an article.

        Returns:
            The parsed analysis, or the fallback analysis on any failure

        Raises:
            RequestCancelledError: If the request is cancelled or its deadline
                passes before the analysis call returns
        """
        check_context(ctx, "analysis")
        logger.info(f"Analyzing '{article.title}' ({len(article.text)} chars)")

        try:
            prompt = prompts.analysis_prompt(article.title, article.text)
            response = run_with_deadline(
                ctx,
                lambda remaining: self.llm.generate_content(prompt, timeout=remaining),
                "analysis"
            )
            result = parse_analysis(response.text)
        except RequestCancelledError:
            raise
        except Exception as e:
            logger.warning(f"Analysis failed for {article.url}, using fallback: {e}")
            return self.fallback(article)

        logger.info(f"Analyzed {article.url}: {result.headline}")
        return result
