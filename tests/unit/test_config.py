"""Tests for configuration models and YAML loading."""

from pathlib import Path
from textwrap import dedent

import pytest
from pydantic import ValidationError

from src.core.config import (
    AnalyzerConfig,
    DatabaseConfig,
    LLMConfig,
    QuotaConfig,
    SectionWeights,
    Settings,
)


class TestSectionWeights:
    def test_defaults_are_equal(self) -> None:
        w = SectionWeights()
        assert (w.formatting, w.content, w.keywords, w.structure) == (0.25, 0.25, 0.25, 0.25)
        assert w.version == "2025.1"

    def test_custom_weights_summing_to_one(self) -> None:
        w = SectionWeights(formatting=0.1, content=0.4, keywords=0.3, structure=0.2)
        assert w.content == 0.4

    def test_weights_must_sum_to_one(self) -> None:
        with pytest.raises(ValidationError, match="sum to 1.0"):
            SectionWeights(formatting=0.5, content=0.5, keywords=0.5, structure=0.5)

    def test_negative_weight_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SectionWeights(formatting=-0.25, content=0.75, keywords=0.25, structure=0.25)


class TestAnalyzerConfig:
    def test_defaults(self) -> None:
        a = AnalyzerConfig()
        assert a.min_chars == 50
        assert a.max_chars == 15_000
        assert a.min_words == 40
        assert a.keyword_saturation == 0.6
        assert a.stuffing_threshold == 8

    def test_min_must_be_below_max(self) -> None:
        with pytest.raises(ValidationError, match="min_chars"):
            AnalyzerConfig(min_chars=500, max_chars=400)

    def test_saturation_bounds(self) -> None:
        with pytest.raises(ValidationError):
            AnalyzerConfig(keyword_saturation=0.0)
        with pytest.raises(ValidationError):
            AnalyzerConfig(keyword_saturation=1.5)


class TestQuotaConfig:
    def test_defaults(self) -> None:
        q = QuotaConfig()
        assert q.daily_token_limit == 100_000
        assert q.monthly_budget_usd == 5.0
        assert q.anonymous_session_id == "anonymous"

    def test_budget_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            QuotaConfig(monthly_budget_usd=0)


class TestLLMConfig:
    def test_defaults(self) -> None:
        c = LLMConfig()
        assert c.provider == "anthropic"
        assert c.enabled_providers == ["anthropic"]
        assert c.timeout_seconds == 30
        assert c.max_tokens == 2048
        assert c.llm_weight == 0.6
        assert c.track_abandoned_calls is True
        assert c.cache_ttl_seconds == 3600
        assert c.cache_max_entries == 1000
        assert (c.max_concurrent_calls, c.max_queued_calls) == (3, 100)

    def test_rule_weight_complements_llm_weight(self) -> None:
        c = LLMConfig(llm_weight=0.7)
        assert c.rule_weight == pytest.approx(0.3)

    def test_enabled_providers_normalized(self) -> None:
        c = LLMConfig(enabled_providers=[" Anthropic ", "OPENAI", ""])
        assert c.enabled_providers == ["anthropic", "openai"]

    def test_enabled_providers_not_empty(self) -> None:
        with pytest.raises(ValidationError, match="at least one"):
            LLMConfig(enabled_providers=["  "])

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            LLMConfig(timeout_seconds=0)

    def test_at_least_one_concurrent_call(self) -> None:
        with pytest.raises(ValidationError):
            LLMConfig(max_concurrent_calls=0)


class TestSettings:
    def test_all_defaults(self) -> None:
        s = Settings()
        assert s.database == DatabaseConfig()
        assert s.models == []

    def test_from_yaml(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "settings.yaml"
        yaml_file.write_text(dedent("""\
            database:
              path: data/test.db
            quota:
              daily_token_limit: 500
              monthly_budget_usd: 1.5
            llm:
              enabled_providers: [anthropic, openrouter]
              llm_weight: 0.5
            models:
              - id: my-model
                provider: openrouter
                input_cost_per_mtok: 1.0
                output_cost_per_mtok: 2.0
                tier: budget
        """))
        s = Settings.from_yaml(yaml_file)
        assert s.database.path == "data/test.db"
        assert s.quota.daily_token_limit == 500
        assert s.quota.monthly_budget_usd == 1.5
        assert s.llm.enabled_providers == ["anthropic", "openrouter"]
        assert s.llm.llm_weight == 0.5
        assert s.models[0].id == "my-model"
        assert s.models[0].tier == "budget"
        assert s.analyzer == AnalyzerConfig()

    def test_from_yaml_empty_file(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "settings.yaml"
        yaml_file.write_text("")
        assert Settings.from_yaml(yaml_file) == Settings()

    def test_from_yaml_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            Settings.from_yaml(tmp_path / "nope.yaml")

    def test_from_yaml_invalid_weights(self, tmp_path: Path) -> None:
        yaml_file = tmp_path / "settings.yaml"
        yaml_file.write_text(dedent("""\
            analyzer:
              weights:
                formatting: 0.9
        """))
        with pytest.raises(ValidationError):
            Settings.from_yaml(yaml_file)

    def test_shipped_settings_file_loads(self) -> None:
        path = Path(__file__).parent.parent.parent / "config" / "settings.yaml"
        s = Settings.from_yaml(path)
        assert s.llm.default_model == "claude-sonnet-4-20250514"
