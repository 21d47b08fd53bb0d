"""Local Ollama server through its OpenAI-compatible endpoint."""

import os
from typing import Any

from src.llm.openai import OpenAICompatibleProvider

_OLLAMA_BASE_URL = "http://localhost:11434/v1"


class OllamaProvider(OpenAICompatibleProvider):
    """No API key; ``OLLAMA_BASE_URL`` overrides the local address."""

    base_url = _OLLAMA_BASE_URL
    display_name = "Ollama"

    @property
    def provider_id(self) -> str:
        return "ollama"

    @property
    def default_model(self) -> str:
        return "llama3"

    @property
    def env_var(self) -> None:
        return None

    def client_options(self) -> dict[str, Any]:
        # The client insists on a key; Ollama ignores it.
        return {
            "base_url": os.environ.get("OLLAMA_BASE_URL", self.base_url),
            "api_key": "ollama",
        }
