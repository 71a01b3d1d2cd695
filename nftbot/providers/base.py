"""Base LLM provider interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from loguru import logger


@dataclass
class LLMResponse:
    """Response from an LLM provider."""

    content: str | None
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    def __init__(self, api_key: str | None = None, api_base: str | None = None):
        self.api_key = api_key
        self.api_base = api_base

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 2000,
        temperature: float | None = None,
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model identifier (provider-specific).
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature; None leaves the model default.

        Returns:
            LLMResponse with the generated content.
        """
        pass

    @abstractmethod
    def get_default_model(self) -> str:
        """Get the default model for this provider."""
        pass

    async def complete(
        self,
        system: str,
        user: str,
        model: str | None = None,
        max_tokens: int = 2000,
        temperature: float | None = None,
    ) -> str | None:
        """
        Generate text for a single system + user prompt pair.

        Returns:
            The stripped text, or None when the request failed or came back
            empty. Failures are logged, not raised.
        """
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        try:
            response = await self.chat(messages, model=model, max_tokens=max_tokens, temperature=temperature)
        except Exception as e:
            logger.error(f"LLM completion failed: {e}")
            return None

        content = (response.content or "").strip()
        return content or None
