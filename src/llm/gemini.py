"""Google Gemini provider (google-genai SDK)."""

import logging

from src.llm.base import LLMProvider, missing_sdk

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    """Gemini through the SDK's ``aio`` client."""

    @property
    def provider_id(self) -> str:
        return "gemini"

    @property
    def default_model(self) -> str:
        return "gemini-2.5-flash"

    @property
    def env_var(self) -> str:
        return "GOOGLE_API_KEY"

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
            from google import genai
            from google.genai import types as genai_types
        except ImportError:
            raise missing_sdk("google-genai", "gemini") from None

        use_model = model or self.default_model
        config = genai_types.GenerateContentConfig(
            system_instruction=system,
            max_output_tokens=max_tokens,
            temperature=temperature,
        )
        logger.info("Calling Gemini generate_content (%s)", use_model)
        response = await genai.Client(api_key=key).aio.models.generate_content(
            model=use_model, contents=prompt, config=config,
        )
        return response.text or ""
