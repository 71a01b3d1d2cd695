"""LiteLLM-backed text generation for tweets."""

from typing import Any

from loguru import logger

from nftbot.providers.base import LLMProvider, LLMResponse


def _parse_usage(usage: Any) -> dict[str, int]:
    if not usage:
        return {}
    return {
        "prompt_tokens": usage.prompt_tokens or 0,
        "completion_tokens": usage.completion_tokens or 0,
        "total_tokens": usage.total_tokens or 0,
    }


class LiteLLMProvider(LLMProvider):
    """
    Routes completions through LiteLLM.

    Defaults to OpenAI's o3-mini; any model LiteLLM can route works. A
    scheduled job has no one to retry for it, so transient provider errors
    get ``num_retries`` attempts inside LiteLLM.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "o3-mini",
        timeout: float = 60.0,
        num_retries: int = 2,
    ):
        super().__init__(api_key, api_base)
        self._default_model = default_model
        self.timeout = timeout
        self.num_retries = num_retries

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 2000,
        temperature: float | None = None,
    ) -> LLMResponse:
        import litellm

        use_model = model or self._default_model
        kwargs: dict[str, Any] = {
            "model": use_model,
            "messages": messages,
            "max_tokens": max_tokens,
            "timeout": self.timeout,
            "num_retries": self.num_retries,
        }
        # Reasoning models reject a temperature.
        if temperature is not None:
            kwargs["temperature"] = temperature
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base

        logger.debug(f"LLM request: model={use_model}, messages={len(messages)}, max_tokens={max_tokens}")
        response = await litellm.acompletion(**kwargs)

        choice = response.choices[0]
        result = LLMResponse(
            content=choice.message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=_parse_usage(response.usage),
        )
        if result.finish_reason == "length":
            logger.warning(f"LLM response from {use_model} hit max_tokens={max_tokens}")
        return result

    def get_default_model(self) -> str:
        return self._default_model
