"""LLM adapters for batch insight generation.

Provides a base interface and concrete adapters for OpenAI-compatible
APIs and a deterministic mock for testing.
"""

import os
from abc import ABC, abstractmethod
from typing import Callable, Optional

from app.config import LLMSettings, get_llm_settings

SYSTEM_PROMPT = "You are a web performance expert."


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Send a prompt to the LLM and return the response text.

        Args:
            prompt: The fully formatted prompt string.

        Returns:
            Plain-text narrative from the model, possibly empty.
        """


class OpenAILLMAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible chat completion APIs.

    Sends a fixed system message followed by the user prompt and returns
    the first choice as plain text.
    """

    def __init__(
        self,
        model: str = "gpt-4o",
        max_tokens: int = 2048,
        temperature: float = 0.7,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        """Initialise the OpenAI adapter.

        Args:
            model: Model identifier.
            max_tokens: Maximum tokens in the completion.
            temperature: Sampling temperature for the narrative.
            api_key: API key supplied with the audit request. Falls back to
                the OPENAI_API_KEY env var.
            base_url: Optional base URL for OpenAI-compatible endpoints.
        """
        try:
            from openai import OpenAI  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ImportError(
                "openai package is required for OpenAILLMAdapter. "
                "Install it with: pip install openai"
            ) from exc

        resolved_key = api_key or os.environ.get("OPENAI_API_KEY", "")
        client_kwargs: dict = {"api_key": resolved_key}
        if base_url:
            client_kwargs["base_url"] = base_url

        self._client = OpenAI(**client_kwargs)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    def generate(self, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            stream=False,
        )
        return (response.choices[0].message.content or "").strip()


# ---------------------------------------------------------------------------
# Fixed mock narrative used for local testing.
# ---------------------------------------------------------------------------
_MOCK_RESPONSE = (
    "Mock insight for testing purposes.\n\n"
    "Overall assessment: the audited pages were summarized by a test fixture."
)


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter that returns a fixed narrative.

    Used for local testing and CI pipelines where no LLM API
    is available. Prompts are recorded for assertions.
    """

    def __init__(self, response: str = _MOCK_RESPONSE) -> None:
        self._response = response
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self._response


AdapterFactory = Callable[[str], BaseLLMAdapter]


def build_adapter(api_key: str, settings: Optional[LLMSettings] = None) -> BaseLLMAdapter:
    """Instantiate the adapter selected by the LLM_ADAPTER env var.

    LLM_ADAPTER=mock   -> MockLLMAdapter  (testing, no API key required)
    LLM_ADAPTER=openai -> OpenAILLMAdapter (default)
    """
    settings = settings or get_llm_settings()
    if settings.adapter == "mock":
        return MockLLMAdapter()

    return OpenAILLMAdapter(
        model=settings.model,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        api_key=api_key,
        base_url=settings.base_url,
    )
