"""Tests for the model catalog: ordering, lookup and task recommendation."""

import pytest

from src.core.errors import UnknownModelError
from src.core.schemas import ModelDescriptor
from src.llm.catalog import DEFAULT_MODELS, TASK_TIER_TABLE, ModelCatalog


def _model(model_id: str, tier: str, price: float, **kw: object) -> ModelDescriptor:
    return ModelDescriptor(
        id=model_id,
        provider=kw.pop("provider", "test"),  # type: ignore[arg-type]
        input_cost_per_mtok=price,
        output_cost_per_mtok=price,
        tier=tier,  # type: ignore[arg-type]
        **kw,  # type: ignore[arg-type]
    )


@pytest.fixture
def catalog() -> ModelCatalog:
    return ModelCatalog([
        _model("premium-a", "premium", 10.0),
        _model("premium-b", "premium", 5.0),
        _model("balanced-a", "balanced", 1.0),
        _model("budget-a", "budget", 0.1),
        _model("budget-gen", "budget", 0.01, capabilities=("generation",)),
    ])


class TestLookup:
    def test_ordered_by_cost(self, catalog: ModelCatalog) -> None:
        ids = [m.id for m in catalog.get_available_models()]
        assert ids == ["budget-gen", "budget-a", "balanced-a", "premium-b", "premium-a"]

    def test_ties_broken_by_id(self) -> None:
        catalog = ModelCatalog([_model("b", "budget", 1.0), _model("a", "budget", 1.0)])
        assert [m.id for m in catalog.get_available_models()] == ["a", "b"]

    def test_get_model(self, catalog: ModelCatalog) -> None:
        assert catalog.get_model("balanced-a").tier == "balanced"

    def test_unknown_model(self, catalog: ModelCatalog) -> None:
        with pytest.raises(UnknownModelError, match="nope"):
            catalog.get_model("nope")

    def test_unknown_model_is_value_error(self, catalog: ModelCatalog) -> None:
        with pytest.raises(ValueError):
            catalog.tier_of("nope")

    def test_tier_of(self, catalog: ModelCatalog) -> None:
        assert catalog.tier_of("premium-a") == "premium"


class TestDefaults:
    def test_default_table_used(self) -> None:
        catalog = ModelCatalog()
        assert len(catalog.get_available_models()) == len(DEFAULT_MODELS)
        assert catalog.get_model("claude-sonnet-4-20250514").provider == "anthropic"

    def test_filtered_by_provider(self) -> None:
        catalog = ModelCatalog(enabled_providers=["openai"])
        assert {m.provider for m in catalog.get_available_models()} == {"openai"}

    def test_every_default_tier_present_per_provider(self) -> None:
        for provider in ("anthropic", "openai", "gemini"):
            tiers = {m.tier for m in DEFAULT_MODELS if m.provider == provider}
            assert tiers == {"budget", "balanced", "premium"}

    def test_tier_table_complete(self) -> None:
        for task in ("analysis", "generation", "optimization"):
            assert set(TASK_TIER_TABLE[task]) == {"low", "medium", "high"}


class TestRecommend:
    def test_low_sensitivity_uses_table_tier(self, catalog: ModelCatalog) -> None:
        # analysis/medium requires premium; cheapest premium wins
        assert catalog.recommend_model_for_task("analysis", "medium", "low").id == "premium-b"

    def test_medium_sensitivity_lowers_tier(self, catalog: ModelCatalog) -> None:
        assert catalog.recommend_model_for_task("analysis", "medium", "medium").id == "balanced-a"

    def test_medium_sensitivity_keeps_tier_for_high_complexity(self, catalog: ModelCatalog) -> None:
        assert catalog.recommend_model_for_task("analysis", "high", "medium").id == "premium-b"

    def test_high_sensitivity_picks_cheapest_capable(self, catalog: ModelCatalog) -> None:
        assert catalog.recommend_model_for_task("analysis", "high", "high").id == "budget-a"
        assert catalog.recommend_model_for_task("generation", "high", "high").id == "budget-gen"

    def test_capability_respected(self, catalog: ModelCatalog) -> None:
        assert catalog.recommend_model_for_task("generation", "low", "low").id == "budget-gen"
        assert catalog.recommend_model_for_task("analysis", "low", "medium").id == "budget-a"

    def test_falls_back_to_default_model(self) -> None:
        catalog = ModelCatalog(
            [_model("budget-a", "budget", 0.1), _model("budget-b", "budget", 0.2)],
            default_model_id="budget-b",
        )
        assert catalog.recommend_model_for_task("optimization", "high", "low").id == "budget-b"

    def test_falls_back_to_most_expensive(self) -> None:
        catalog = ModelCatalog([_model("budget-a", "budget", 0.1), _model("budget-b", "budget", 0.2)])
        assert catalog.recommend_model_for_task("optimization", "high", "low").id == "budget-b"

    def test_empty_catalog_raises(self) -> None:
        catalog = ModelCatalog(enabled_providers=["nobody"])
        with pytest.raises(LookupError):
            catalog.recommend_model_for_task("analysis")

    def test_default_catalog_analysis(self) -> None:
        catalog = ModelCatalog(enabled_providers=["anthropic"])
        model = catalog.recommend_model_for_task("analysis", "medium", "low")
        assert model.id == "claude-sonnet-4-20250514"
