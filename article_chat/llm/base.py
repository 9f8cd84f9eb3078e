"""
Generative Text Port

The interface every generative provider implements, plus the response type
the rest of the pipeline consumes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GenerationResponse:
    """Text returned by a single generative call."""
    text: str


def effective_timeout(configured: float, remaining: Optional[float]) -> float:
    """The provider's own timeout, shortened to what is left of the request."""
    if remaining is None:
        return configured
    return min(configured, remaining)


class LLMClient(ABC):
    """
    Single-prompt text generation.

    Implementations must raise GenerationError on any provider failure,
    including timeouts, so callers only need to handle one error type.
    """

    name: str = "base"

    @abstractmethod
    def generate_content(self, prompt: str, timeout: Optional[float] = None) -> GenerationResponse:
        """
        Generate text for a prompt.

        Args:
            prompt: Complete prompt text
            timeout: Seconds left for this call; providers use the smaller of
                this and their configured timeout

        Returns:
            GenerationResponse with the model's text

        Raises:
            GenerationError: If the provider call fails
        """
