"""
Core Data Models

Article records, query plans, intents and derived entity counts shared by the
ingestion and query pipelines.
"""

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import List, Dict, Any, Optional, Tuple

from .errors import PlanParseError


def utc_now() -> datetime:
    """Current timezone-aware UTC timestamp."""
    return datetime.now(tz=timezone.utc)


@dataclass
class Article:
    """A stored, analyzed article keyed by its URL."""
    url: str
    title: str = ""
    excerpt: str = ""
    full_text: str = ""
    summary: str = ""
    sentiment: str = ""
    topics: List[str] = field(default_factory=list)
    entities: List[str] = field(default_factory=list)
    processed_at: datetime = field(default_factory=utc_now)

    def to_dict(self, include_text: bool = False) -> Dict[str, Any]:
        """
        Convert the article to a JSON-compatible dictionary.

        Args:
            include_text: Include the full article text (omitted by default,
                it is neither persisted nor returned by the API)

        Returns:
            Dictionary representation with an ISO-8601 processed_at
        """
        data = asdict(self)
        data['processed_at'] = self.processed_at.isoformat()
        if not include_text:
            data.pop('full_text')
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Article':
        """Build an article from the dictionary produced by to_dict()."""
        processed_at = data.get('processed_at')
        if isinstance(processed_at, str):
            processed_at = datetime.fromisoformat(processed_at)
        if processed_at is None:
            processed_at = utc_now()
        return cls(
            url=data['url'],
            title=data.get('title') or "",
            excerpt=data.get('excerpt') or "",
            full_text=data.get('full_text') or "",
            summary=data.get('summary') or "",
            sentiment=data.get('sentiment') or "",
            topics=list(data.get('topics') or []),
            entities=list(data.get('entities') or []),
            processed_at=processed_at,
        )


@dataclass(frozen=True)
class EntityCount:
    """How often an entity or topic is mentioned across a set of articles."""
    entity: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {'entity': self.entity, 'count': self.count}


class Intent(str, Enum):
    """The classified purpose of a user query."""
    SUMMARIZE = "SUMMARIZE"
    KEYWORDS = "KEYWORDS"
    SENTIMENT = "SENTIMENT"
    COMPARE_TONE = "COMPARE_TONE"
    FIND_BY_TOPIC = "FIND_BY_TOPIC"
    COMPARE_POSITIVITY = "COMPARE_POSITIVITY"
    FIND_COMMON_ENTITIES = "FIND_COMMON_ENTITIES"
    COMPARE_ALL_SENTIMENT = "COMPARE_ALL_SENTIMENT"
    COMPARE_MULTIPLE = "COMPARE_MULTIPLE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Optional[str]) -> 'Intent':
        """Map a raw intent string to an Intent, UNKNOWN if unrecognized."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.UNKNOWN


def strip_code_fence(text: str) -> str:
    """
    Remove a Markdown code fence wrapped around model output.

    Only a fence enclosing the whole text is removed; the content itself is
    left untouched so parsing stays strict.

    Args:
        text: Raw model output

    Returns:
        The text inside the fence, or the stripped input if there is none
    """
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    lines = stripped.splitlines()
    if len(lines) < 2 or not lines[-1].strip().startswith("```"):
        return stripped
    return "\n".join(lines[1:-1]).strip()


def _string_tuple(payload: Dict[str, Any], key: str) -> Tuple[str, ...]:
    value = payload.get(key)
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise PlanParseError(f"'{key}' must be a list of strings, got {value!r}")
    return tuple(value)


@dataclass(frozen=True)
class Plan:
    """
    Structured representation of a user's request.

    Created once per chat request by the planner and consumed once by the
    executor. Targets are article URLs whose order carries no meaning and
    which may contain duplicates. Targets and parameters are tuples.
    """
    intent: Intent
    targets: Tuple[str, ...] = ()
    parameters: Tuple[str, ...] = ()
    question: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'targets', tuple(self.targets))
        object.__setattr__(self, 'parameters', tuple(self.parameters))

    @classmethod
    def from_llm_text(cls, text: str, question: str = "") -> 'Plan':
        """
        Parse model output into a Plan.

        Args:
            text: JSON text returned by the model
            question: The user's original question

        Returns:
            Parsed plan (unrecognized intents become Intent.UNKNOWN)

        Raises:
            PlanParseError: If the text is not a structurally valid plan
        """
        if not text or not text.strip():
            raise PlanParseError("empty planner response")

        try:
            payload = json.loads(strip_code_fence(text))
        except json.JSONDecodeError as e:
            raise PlanParseError(f"planner response is not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise PlanParseError(f"planner response must be a JSON object, got {type(payload).__name__}")

        raw_intent = payload.get('intent')
        if not isinstance(raw_intent, str) or not raw_intent.strip():
            raise PlanParseError("planner response is missing a non-empty 'intent'")

        return cls(
            intent=Intent.parse(raw_intent),
            targets=_string_tuple(payload, 'targets'),
            parameters=_string_tuple(payload, 'parameters'),
            question=question,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'intent': self.intent.value,
            'targets': list(self.targets),
            'parameters': list(self.parameters),
            'question': self.question,
        }


@dataclass
class CacheStats:
    """Hit/miss accounting shared by the response and embedding caches."""
    hits: int = 0
    misses: int = 0
    total_requests: int = 0
    cache_size: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        return self.hits / self.total_requests if self.total_requests > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            **asdict(self),
            'hit_rate': self.hit_rate
        }


@dataclass
class FetchedArticle:
    """Raw content extracted from an article URL."""
    url: str
    title: str
    text: str
    excerpt: str = ""
    authors: List[str] = field(default_factory=list)
    publish_date: Optional[datetime] = None


@dataclass
class AnalysisResult:
    """
    Output of the ingestion analysis step.

    `degraded` is set when the model call or its parsing failed and the
    values were derived from the fetched text instead.
    """
    headline: str = ""
    key_points: List[str] = field(default_factory=list)
    sentiment: str = "neutral"
    entities: List[str] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)
    degraded: bool = False

    @property
    def summary(self) -> str:
        """Headline followed by the key points as a bulleted list."""
        if not self.key_points:
            return self.headline
        return self.headline + "\n- " + "\n- ".join(self.key_points)
