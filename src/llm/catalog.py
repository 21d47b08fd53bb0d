"""Model catalog: pricing, tiers and task-based model recommendation.

The catalog is static data plus pure lookups. Prices are USD per million
tokens.
"""

import logging

from src.core.errors import UnknownModelError
from src.core.schemas import Complexity, CostSensitivity, ModelDescriptor, ModelTier, TaskKind

logger = logging.getLogger(__name__)

TIER_ORDER: tuple[ModelTier, ...] = ("budget", "balanced", "premium")

# Minimum tier per task kind and complexity.
TASK_TIER_TABLE: dict[TaskKind, dict[Complexity, ModelTier]] = {
    "analysis": {"low": "balanced", "medium": "premium", "high": "premium"},
    "generation": {"low": "budget", "medium": "balanced", "high": "premium"},
    "optimization": {"low": "balanced", "medium": "premium", "high": "premium"},
}

DEFAULT_MODELS: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(
        id="claude-opus-4-1-20250805", provider="anthropic", name="Claude Opus 4.1",
        input_cost_per_mtok=15.0, output_cost_per_mtok=75.0, tier="premium",
        context_length=200_000,
    ),
    ModelDescriptor(
        id="claude-sonnet-4-20250514", provider="anthropic", name="Claude Sonnet 4",
        input_cost_per_mtok=3.0, output_cost_per_mtok=15.0, tier="premium",
        context_length=200_000,
    ),
    ModelDescriptor(
        id="claude-3-5-haiku-20241022", provider="anthropic", name="Claude 3.5 Haiku",
        input_cost_per_mtok=0.8, output_cost_per_mtok=4.0, tier="balanced",
        context_length=200_000,
    ),
    ModelDescriptor(
        id="claude-3-haiku-20240307", provider="anthropic", name="Claude 3 Haiku",
        input_cost_per_mtok=0.25, output_cost_per_mtok=1.25, tier="budget",
        context_length=200_000,
    ),
    ModelDescriptor(
        id="gpt-4o", provider="openai", name="GPT-4o",
        input_cost_per_mtok=2.5, output_cost_per_mtok=10.0, tier="premium",
    ),
    ModelDescriptor(
        id="gpt-4.1-mini", provider="openai", name="GPT-4.1 mini",
        input_cost_per_mtok=0.4, output_cost_per_mtok=1.6, tier="balanced",
        context_length=1_000_000,
    ),
    ModelDescriptor(
        id="gpt-4o-mini", provider="openai", name="GPT-4o mini",
        input_cost_per_mtok=0.15, output_cost_per_mtok=0.6, tier="budget",
    ),
    ModelDescriptor(
        id="gemini-2.5-pro", provider="gemini", name="Gemini 2.5 Pro",
        input_cost_per_mtok=1.25, output_cost_per_mtok=10.0, tier="premium",
        context_length=1_000_000,
    ),
    ModelDescriptor(
        id="gemini-2.5-flash", provider="gemini", name="Gemini 2.5 Flash",
        input_cost_per_mtok=0.3, output_cost_per_mtok=2.5, tier="balanced",
        context_length=1_000_000,
    ),
    ModelDescriptor(
        id="gemini-2.0-flash-lite", provider="gemini", name="Gemini 2.0 Flash-Lite",
        input_cost_per_mtok=0.075, output_cost_per_mtok=0.3, tier="budget",
        context_length=1_000_000,
    ),
    ModelDescriptor(
        id="mistralai/mixtral-8x7b-instruct", provider="openrouter", name="Mixtral 8x7B Instruct",
        input_cost_per_mtok=0.54, output_cost_per_mtok=0.54, tier="balanced",
        context_length=32_768,
    ),
    ModelDescriptor(
        id="meta-llama/llama-3-8b-instruct", provider="openrouter", name="Llama 3 8B Instruct",
        input_cost_per_mtok=0.03, output_cost_per_mtok=0.06, tier="budget",
        capabilities=("generation",), context_length=8_192,
    ),
)


def _tier_rank(tier: ModelTier) -> int:
    return TIER_ORDER.index(tier)


class ModelCatalog:
    """Lookup and recommendation over a fixed set of model descriptors.

    Args:
        models: Descriptors to serve; defaults to DEFAULT_MODELS.
        default_model_id: Preferred answer when no model satisfies a
            recommendation request.
        enabled_providers: When given, only models of these providers are kept.
    """

    def __init__(
        self,
        models: list[ModelDescriptor] | tuple[ModelDescriptor, ...] | None = None,
        default_model_id: str | None = None,
        enabled_providers: list[str] | None = None,
    ) -> None:
        source = DEFAULT_MODELS if not models else models
        if enabled_providers is not None:
            allowed = set(enabled_providers)
            source = [m for m in source if m.provider in allowed]
        self._models: dict[str, ModelDescriptor] = {m.id: m for m in source}
        self._default_model_id = default_model_id

    def get_available_models(self) -> list[ModelDescriptor]:
        """All models, cheapest first (blended price, then id)."""
        return sorted(self._models.values(), key=lambda m: (m.blended_cost_per_mtok, m.id))

    def get_model(self, model_id: str) -> ModelDescriptor:
        """Return a descriptor by id.

        Raises:
            UnknownModelError: If the catalog has no such model.
        """
        try:
            return self._models[model_id]
        except KeyError:
            msg = f"Unknown model '{model_id}'"
            raise UnknownModelError(msg) from None

    def has_model(self, model_id: str) -> bool:
        return model_id in self._models

    def tier_of(self, model_id: str) -> ModelTier:
        return self.get_model(model_id).tier

    def recommend_model_for_task(
        self,
        task_kind: TaskKind,
        complexity: Complexity = "medium",
        cost_sensitivity: CostSensitivity = "medium",
    ) -> ModelDescriptor:
        """Pick the cheapest model able to do the task at the needed tier.

        Raises:
            LookupError: If the catalog is empty.
        """
        if not self._models:
            msg = "Model catalog is empty"
            raise LookupError(msg)

        capable = [m for m in self.get_available_models() if task_kind in m.capabilities]

        if cost_sensitivity == "high":
            if capable:
                return capable[0]
        else:
            required = _tier_rank(TASK_TIER_TABLE[task_kind][complexity])
            if cost_sensitivity == "medium" and complexity != "high":
                required = max(0, required - 1)
            eligible = [m for m in capable if _tier_rank(m.tier) >= required]
            if eligible:
                return eligible[0]

        if self._default_model_id and self._default_model_id in self._models:
            logger.debug(
                "No %s model for %s/%s - using default %s",
                task_kind, complexity, cost_sensitivity, self._default_model_id,
            )
            return self._models[self._default_model_id]
        if capable:
            return capable[-1]
        return self.get_available_models()[-1]
