"""
OpenAI Chat Provider
"""

import logging
from typing import Optional

from openai import OpenAI

from .base import LLMClient, GenerationResponse, effective_timeout
from ..errors import GenerationError

logger = logging.getLogger(__name__)


class OpenAIChatClient(LLMClient):
    """
    Generative provider backed by the OpenAI chat completions API.

    Args:
        api_key: OpenAI API key
        model: Chat model name
        temperature: Sampling temperature
        timeout: Request timeout in seconds
    """

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        timeout: int = 60
    ):
        if not api_key:
            raise ValueError("OpenAI API key is required")
        self.model = model
        self.temperature = temperature
        self.timeout = timeout
        # Retries are disabled, a failed call surfaces immediately
        self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def generate_content(self, prompt: str, timeout: Optional[float] = None) -> GenerationResponse:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                timeout=effective_timeout(self.timeout, timeout),
            )
        except Exception as e:
            logger.error(f"OpenAI generation failed with model {self.model}: {e}")
            raise GenerationError(f"Error generating content with OpenAI: {e}") from e

        if not response.choices:
            raise GenerationError("OpenAI returned no choices")

        return GenerationResponse(text=response.choices[0].message.content or "")
