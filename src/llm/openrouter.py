"""OpenRouter: many hosted models behind one OpenAI-compatible endpoint."""

from src.llm.openai import OpenAICompatibleProvider


class OpenRouterProvider(OpenAICompatibleProvider):
    base_url = "https://openrouter.ai/api/v1"
    display_name = "OpenRouter"

    @property
    def provider_id(self) -> str:
        return "openrouter"

    @property
    def default_model(self) -> str:
        return "meta-llama/llama-3-8b-instruct"

    @property
    def env_var(self) -> str:
        return "OPENROUTER_API_KEY"
