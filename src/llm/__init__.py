"""LLM provider registry with lazy loading.

Usage:
    from src.llm import get_provider

    provider = get_provider("anthropic")
    raw = await provider.complete(prompt, model="claude-3-5-haiku-20241022")
"""

import importlib

from src.llm.base import LLMProvider, estimate_tokens, load_json_object, strip_code_fences

__all__ = [
    "LLMProvider",
    "available_providers",
    "estimate_tokens",
    "get_provider",
    "load_json_object",
    "strip_code_fences",
]

# Lazy registry: maps provider name → (module_path, class_name)
_REGISTRY: dict[str, tuple[str, str]] = {
    "anthropic": ("src.llm.anthropic", "AnthropicProvider"),
    "openai": ("src.llm.openai", "OpenAIProvider"),
    "gemini": ("src.llm.gemini", "GeminiProvider"),
    "ollama": ("src.llm.ollama", "OllamaProvider"),
    "openrouter": ("src.llm.openrouter", "OpenRouterProvider"),
}


def get_provider(name: str) -> LLMProvider:
    """Instantiate and return an LLM provider by name.

    Args:
        name: Provider identifier (anthropic, openai, gemini, ollama, openrouter).

    Raises:
        ValueError: If the provider name is unknown.
    """
    if name not in _REGISTRY:
        valid = ", ".join(sorted(_REGISTRY))
        msg = f"Unknown LLM provider '{name}'. Available: {valid}"
        raise ValueError(msg)

    module_path, class_name = _REGISTRY[name]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    return cls()  # type: ignore[no-any-return]


def available_providers() -> list[str]:
    """Return sorted list of registered provider names."""
    return sorted(_REGISTRY)
