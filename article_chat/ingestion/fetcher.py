"""
Article Fetcher

Downloads and parses news articles with newspaper3k, cleans the extracted
text with BeautifulSoup and rejects pages that do not look like articles.
A failed fetch is reported once; there are no retries.
"""

import logging
import re
from typing import Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from newspaper import Article as NewspaperArticle
from newspaper import Config as NewspaperConfig

from ..errors import FetchError, ValidationError
from ..models import FetchedArticle

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)
EXCERPT_LENGTH = 300


def validate_url(url: str) -> str:
    """
    Check that a URL is an absolute http(s) URL.

    Args:
        url: Candidate URL

    Returns:
        The stripped URL

    Raises:
        ValidationError: If the URL is empty or malformed
    """
    if not url or not url.strip():
        raise ValidationError("URL cannot be empty")

    url = url.strip()
    result = urlparse(url)
    if result.scheme not in ('http', 'https') or not result.netloc:
        raise ValidationError(f"Invalid URL format: {url}")
    return url


class ArticleFetcher:
    """
    Fetches article content from news URLs.

    Args:
        timeout: Download timeout in seconds
        min_text_length: Minimum characters of body text for a valid article
        user_agent: Browser user agent sent with the download
    """

    def __init__(self, timeout: int = 30, min_text_length: int = 100, user_agent: str = DEFAULT_USER_AGENT):
        self.timeout = timeout
        self.min_text_length = min_text_length
        self.user_agent = user_agent

    def _newspaper_config(self) -> NewspaperConfig:
        config = NewspaperConfig()
        config.request_timeout = self.timeout
        config.browser_user_agent = self.user_agent
        config.fetch_images = False
        config.memoize_articles = False
        return config

    def _clean_text(self, text: str) -> str:
        """
        Strip markup and normalize whitespace, keeping paragraph breaks.
        """
        if not text:
            return ""

        text = BeautifulSoup(text, 'html.parser').get_text()
        paragraphs = [re.sub(r'\s+', ' ', p).strip() for p in re.split(r'\n\s*\n', text)]
        return "\n\n".join(p for p in paragraphs if p)

    def _validate_article_quality(self, title: str, text: str) -> Tuple[bool, str]:
        if not title:
            return False, "Missing title"
        if not text:
            return False, "Missing text content"
        if len(text) < self.min_text_length:
            return False, f"Text too short ({len(text)} < {self.min_text_length} chars)"
        return True, "Valid"

    def _download(self, url: str) -> NewspaperArticle:
        article = NewspaperArticle(url, config=self._newspaper_config())
        article.download()
        article.parse()
        return article

    def fetch(self, url: str) -> FetchedArticle:
        """
        Fetch and parse one article.

        Args:
            url: Article URL

        Returns:
            FetchedArticle with cleaned title, text and excerpt

        Raises:
            ValidationError: If the URL is malformed
            FetchError: If the download or parse fails, or the page is not an article
        """
        url = validate_url(url)
        logger.info(f"Fetching article from: {url}")

        try:
            parsed = self._download(url)
        except Exception as e:
            logger.error(f"Article extraction failed for {url}: {e}")
            raise FetchError(f"Failed to fetch article from {url}: {e}") from e

        title = self._clean_text(parsed.title)
        text = self._clean_text(parsed.text)

        is_valid, reason = self._validate_article_quality(title, text)
        if not is_valid:
            logger.warning(f"Article quality validation failed for {url}: {reason}")
            raise FetchError(f"Could not extract an article from {url}: {reason}")

        excerpt = self._clean_text(parsed.meta_description)
        if not excerpt:
            excerpt = text if len(text) <= EXCERPT_LENGTH else text[:EXCERPT_LENGTH].rsplit(' ', 1)[0]

        logger.info(f"Fetched article from {url} (length: {len(text)} chars)")
        return FetchedArticle(
            url=url,
            title=title,
            text=text,
            excerpt=excerpt,
            authors=list(parsed.authors or []),
            publish_date=parsed.publish_date,
        )
