"""Abstract base class for LLM providers and shared response helpers."""

import json
import os
import re
from abc import ABC, abstractmethod
from typing import Any

from src.core.errors import MalformedResponseError


def strip_code_fences(raw_text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```), if any."""
    cleaned = re.sub(r"^```(?:json)?\s*\n?", "", raw_text.strip())
    return re.sub(r"\n?```\s*$", "", cleaned)


def load_json_object(raw_text: str) -> dict[str, Any]:
    """Parse an LLM response into a JSON object.

    Handles markdown-wrapped JSON and plain JSON.

    Raises:
        MalformedResponseError: If the text is not JSON or not an object.
    """
    try:
        data = json.loads(strip_code_fences(raw_text))
    except json.JSONDecodeError as e:
        msg = f"Failed to parse LLM response as JSON: {e}"
        raise MalformedResponseError(msg) from e
    if not isinstance(data, dict):
        msg = f"Expected a JSON object, got {type(data).__name__}"
        raise MalformedResponseError(msg)
    return data


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters, rounded up."""
    return -(-len(text) // 4)


class LLMProvider(ABC):
    """Base class that every LLM provider must implement."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'anthropic')."""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.3,
    ) -> str:
        """Send a prompt to the LLM and return the raw response text.

        Args:
            prompt: User message.
            model: Override the provider's default model. None uses default.
            system: Optional system prompt.
            max_tokens: Completion length cap.
            temperature: Sampling temperature.

        Returns:
            Raw text response from the LLM.
        """

    @property
    @abstractmethod
    def default_model(self) -> str:
        """The default model ID used when no override is specified."""

    @property
    @abstractmethod
    def env_var(self) -> str | None:
        """Environment variable name for the API key, or None if not needed."""

    def api_key(self) -> str:
        """Read the API key named by ``env_var``.

        Raises:
            ValueError: If the variable is unset or empty.
        """
        key = os.environ.get(self.env_var) if self.env_var else None
        if not key:
            msg = f"{self.env_var} environment variable is required"
            raise ValueError(msg)
        return key


def missing_sdk(package: str, extra: str, purpose: str = "AI analysis") -> ImportError:
    """ImportError telling the user which extra provides a provider SDK."""
    return ImportError(
        f"{package} is required for {purpose}. "
        f"Install with: pip install 'resume-ats-scoring[{extra}]'"
    )
