"""
Ollama Chat Provider

Runs prompts against a local Ollama server through langchain's ChatOllama.
"""

import logging
from typing import Optional

from langchain_ollama import ChatOllama

from .base import LLMClient, GenerationResponse, effective_timeout
from ..errors import GenerationError

logger = logging.getLogger(__name__)


class OllamaChatClient(LLMClient):
    """
    Generative provider backed by Ollama.

    Args:
        model: Ollama model name
        base_url: Base URL of the Ollama service
        temperature: Sampling temperature
        timeout: Request timeout in seconds
        max_tokens: Maximum number of tokens to generate
    """

    name = "ollama"

    def __init__(
        self,
        model: str = "llama3.2",
        base_url: str = "http://localhost:11434",
        temperature: float = 0.2,
        timeout: int = 60,
        max_tokens: int = 1024
    ):
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.llm = self._build_llm(timeout)

    def _build_llm(self, timeout: float) -> ChatOllama:
        return ChatOllama(
            model=self.model,
            temperature=self.temperature,
            base_url=self.base_url,
            num_predict=self.max_tokens,
            client_kwargs={"timeout": timeout}
        )

    def generate_content(self, prompt: str, timeout: Optional[float] = None) -> GenerationResponse:
        call_timeout = effective_timeout(self.timeout, timeout)
        # The HTTP timeout is fixed when the client is built
        llm = self.llm if call_timeout == self.timeout else self._build_llm(call_timeout)

        try:
            response = llm.invoke(prompt)
        except Exception as e:
            logger.error(f"Ollama generation failed with model {self.model}: {e}")
            raise GenerationError(f"Error generating content with Ollama: {e}") from e

        if hasattr(response, 'content'):
            text = response.content
        else:
            text = str(response)

        if not isinstance(text, str):
            text = str(text)

        return GenerationResponse(text=text)
