"""
Shared fixtures for the article chat test suite.
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from article_chat.config import reset_config
from article_chat.llm.base import GenerationResponse, LLMClient
from article_chat.llm.stub_client import StubLLMClient
from article_chat.models import Article
from article_chat.query.article_service import ArticleService
from article_chat.storage.article_store import InMemoryArticleStore
from article_chat.storage.vector_store import KeywordArticleIndex

CONFIG_ENV_VARS = [
    'LLM_PROVIDER', 'LLM_MODEL', 'LLM_TEMPERATURE', 'LLM_TIMEOUT',
    'OLLAMA_BASE_URL', 'OPENAI_API_KEY', 'OPENAI_MODEL',
    'EMBEDDING_MODEL', 'EMBEDDING_TIMEOUT', 'CHUNK_SIZE', 'CHUNK_OVERLAP',
    'VECTOR_BACKEND', 'FAISS_INDEX_PATH', 'DATABASE_PATH',
    'PLANNER_CONTEXT_K', 'REQUEST_TIMEOUT', 'ARTICLE_TIMEOUT',
    'ARTICLE_MIN_TEXT_LENGTH', 'SEED_URLS_FILE', 'INGEST_SEED_ON_STARTUP',
    'API_HOST', 'API_PORT', 'LOG_LEVEL',
]

BASE_TIME = datetime(2025, 7, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Isolate every test from configuration set in the shell or a .env file."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


def make_article(url: str, minutes: int = 0, **fields) -> Article:
    """Build an article whose processed_at is BASE_TIME plus `minutes`."""
    defaults = {
        'title': f"Article at {url}",
        'excerpt': "An excerpt.",
        'summary': "A headline\n- First point\n- Second point",
        'sentiment': "0.40 (positive)",
        'topics': ["technology"],
        'entities': [],
        'processed_at': BASE_TIME + timedelta(minutes=minutes),
    }
    defaults.update(fields)
    return Article(url=url, **defaults)


@pytest.fixture
def sample_articles():
    return [
        make_article(
            "https://example.com/ai-chips",
            minutes=0,
            title="Nvidia unveils new AI chips",
            summary="Nvidia unveils new AI chips\n- Faster training\n- Lower power",
            sentiment="0.70 (positive)",
            topics=["semiconductors", "artificial intelligence"],
            entities=["Nvidia", "AI", "AI"],
        ),
        make_article(
            "https://example.com/cloud-outage",
            minutes=5,
            title="Cloud outage disrupts services",
            summary="Cloud outage disrupts services\n- Hours of downtime",
            sentiment="-0.50 (negative)",
            topics=["cloud computing"],
            entities=["Amazon", "AI"],
        ),
        make_article(
            "https://example.com/climate-report",
            minutes=10,
            title="Climate report warns of rising seas",
            summary="Climate report warns of rising seas\n- Coastal cities at risk",
            sentiment="neutral",
            topics=["climate", "oceans"],
            entities=[],
        ),
    ]


@pytest.fixture
def article_store(sample_articles):
    store = InMemoryArticleStore()
    for article in sample_articles:
        store.save(article)
    return store


@pytest.fixture
def article_service(article_store):
    return ArticleService(article_store, KeywordArticleIndex(article_store))


@pytest.fixture
def stub_llm():
    return StubLLMClient()


@pytest.fixture
def article_factory():
    return make_article


class SlowLLMClient(LLMClient):
    """Provider that takes `delay` seconds to answer and records the timeout it was given."""

    name = "slow"

    def __init__(self, text: str, delay: float):
        self.text = text
        self.delay = delay
        self.timeouts = []
        self.released = threading.Event()

    def generate_content(self, prompt, timeout=None):
        self.timeouts.append(timeout)
        self.released.wait(self.delay)
        return GenerationResponse(text=self.text)


@pytest.fixture
def slow_llm():
    """A provider answering a summarize plan after two seconds."""
    llm = SlowLLMClient(
        text='{"intent": "SUMMARIZE", "targets": ["https://example.com/ai-chips"], "parameters": []}',
        delay=2.0,
    )
    yield llm
    llm.released.set()
