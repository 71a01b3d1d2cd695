"""LLM providers."""

from nftbot.providers.base import LLMProvider, LLMResponse
from nftbot.providers.litellm_provider import LiteLLMProvider

__all__ = ["LLMProvider", "LLMResponse", "LiteLLMProvider"]
