"""Anthropic Claude provider."""

import logging
from typing import Any

from src.llm.base import LLMProvider, missing_sdk

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    """Claude through the async Messages API."""

    @property
    def provider_id(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-3-5-haiku-20241022"

    @property
    def env_var(self) -> str:
        return "ANTHROPIC_API_KEY"

    async def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.3,
    ) -> str:
        key = self.api_key()
        try:
            import anthropic
        except ImportError:
            raise missing_sdk("anthropic", "anthropic") from None

        request: dict[str, Any] = {
            "model": model or self.default_model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        # The Messages API rejects system=None.
        if system is not None:
            request["system"] = system

        logger.info("Calling Anthropic Messages API (%s)", request["model"])
        message = await anthropic.AsyncAnthropic(api_key=key).messages.create(**request)
        return message.content[0].text  # type: ignore[union-attr]
