"""OpenAI provider and the shared base for OpenAI-compatible endpoints."""

import logging
from typing import Any

from src.llm.base import LLMProvider, missing_sdk

logger = logging.getLogger(__name__)


def chat_messages(prompt: str, system: str | None) -> list[dict[str, str]]:
    """Build a chat-completions message list."""
    messages = []
    if system is not None:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    return messages


class OpenAICompatibleProvider(LLMProvider):
    """Chat-completions client; subclasses choose the endpoint and credentials."""

    base_url: str | None = None
    display_name = "OpenAI"

    def client_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"api_key": self.api_key()}
        if self.base_url is not None:
            options["base_url"] = self.base_url
        return options

    async def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.3,
    ) -> str:
        options = self.client_options()
        try:
            import openai
        except ImportError:
            if self.base_url is None:
                raise missing_sdk("openai", "openai") from None
            raise missing_sdk("openai", "openai", f"{self.display_name} (OpenAI-compatible API)") from None

        use_model = model or self.default_model
        logger.info("Calling %s chat completions (%s)", self.display_name, use_model)
        response = await openai.AsyncOpenAI(**options).chat.completions.create(
            model=use_model,
            messages=chat_messages(prompt, system),
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return response.choices[0].message.content or ""


class OpenAIProvider(OpenAICompatibleProvider):
    @property
    def provider_id(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o-mini"

    @property
    def env_var(self) -> str:
        return "OPENAI_API_KEY"
