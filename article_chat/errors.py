"""
Error Taxonomy

Every failure the pipeline surfaces derives from ArticleChatError. Each class
carries the HTTP status the API layer maps it to, so the transport code never
has to inspect message text.
"""

from typing import Optional


class ArticleChatError(Exception):
    """Base class for all article chat errors."""

    http_status: int = 500


class ValidationError(ArticleChatError):
    """Raised when a request field is missing or malformed."""

    http_status = 400


class NotFoundError(ArticleChatError):
    """Raised when a referenced article (or a required part of it) is missing."""

    http_status = 404


class DuplicateError(ArticleChatError):
    """Raised when an article URL is ingested a second time."""

    http_status = 409


class UpstreamError(ArticleChatError):
    """Raised when the generative provider or an external fetch fails."""

    http_status = 500


class FetchError(UpstreamError):
    """Raised when article content cannot be retrieved or parsed."""


class GenerationError(UpstreamError):
    """Raised when the generative text provider fails."""


class EmbeddingError(UpstreamError):
    """Raised when the embedding provider fails."""


class PersistenceError(ArticleChatError):
    """Raised when the article store rejects a write."""

    http_status = 500


class DegradedError(ArticleChatError):
    """
    Failure of a best-effort step (vector indexing, optional enrichment).

    Logged by the component that catches it and never propagated to callers.
    """


class PlanningError(ArticleChatError):
    """
    Raised when the planner cannot produce a Plan.

    Attributes:
        stage: Which planner step failed: "context", "prompt", "generation"
            or "parse"
    """

    http_status = 500

    def __init__(self, message: str, stage: str):
        super().__init__(f"[{stage}] {message}")
        self.stage = stage


class PlanParseError(ValueError):
    """Raised when model output does not parse as a structurally valid Plan."""


class StrategyExecutionError(ArticleChatError):
    """Wraps a failure raised inside a strategy for a known intent."""

    http_status = 500

    def __init__(self, intent: str, cause: Optional[BaseException] = None):
        message = f"error during {intent} execution"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.intent = intent


class RequestCancelledError(ArticleChatError):
    """Raised when a request is cancelled or its deadline has passed."""

    http_status = 504
