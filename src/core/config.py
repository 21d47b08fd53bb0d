"""Configuration models and YAML loader for the ATS scoring engine."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.schemas import ModelDescriptor


class SectionWeights(BaseModel):
    """Weights combining the four section scores into the overall score.

    Versioned so a report can say which weighting produced it.
    """

    formatting: float = Field(default=0.25, ge=0.0, le=1.0)
    content: float = Field(default=0.25, ge=0.0, le=1.0)
    keywords: float = Field(default=0.25, ge=0.0, le=1.0)
    structure: float = Field(default=0.25, ge=0.0, le=1.0)
    version: str = "2025.1"

    @model_validator(mode="after")
    def weights_sum_to_one(self) -> "SectionWeights":
        total = self.formatting + self.content + self.keywords + self.structure
        if abs(total - 1.0) > 1e-6:
            msg = f"section weights must sum to 1.0, got {total:.4f}"
            raise ValueError(msg)
        return self


class AnalyzerConfig(BaseModel):
    """Bounds and tuning for the rule-based analyzer."""

    min_chars: int = Field(default=50, ge=1)
    max_chars: int = Field(default=15_000, ge=100)
    min_words: int = Field(default=40, ge=1)
    keyword_saturation: float = Field(default=0.6, gt=0.0, le=1.0)
    stuffing_threshold: int = Field(default=8, ge=2)
    weights: SectionWeights = Field(default_factory=SectionWeights)

    @model_validator(mode="after")
    def min_below_max(self) -> "AnalyzerConfig":
        if self.min_chars >= self.max_chars:
            msg = "min_chars must be lower than max_chars"
            raise ValueError(msg)
        return self


class QuotaConfig(BaseModel):
    """Per-session usage caps for AI calls."""

    daily_token_limit: int = Field(default=100_000, ge=1)
    monthly_budget_usd: float = Field(default=5.0, gt=0.0)
    anonymous_session_id: str = "anonymous"


class LLMConfig(BaseModel):
    """Language-model settings shared by the AI analyzer and section generator."""

    provider: str = "anthropic"
    enabled_providers: list[str] = Field(default_factory=lambda: ["anthropic"])
    default_model: str = "claude-sonnet-4-20250514"
    fallback_model: str = "claude-3-5-haiku-20241022"
    timeout_seconds: float = Field(default=30.0, gt=0.0)
    max_tokens: int = Field(default=2048, ge=100, le=32_000)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    llm_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    track_abandoned_calls: bool = True
    cache_ttl_seconds: float = Field(default=3600.0, ge=0.0)
    cache_max_entries: int = Field(default=1000, ge=1)
    max_concurrent_calls: int = Field(default=3, ge=1)
    max_queued_calls: int = Field(default=100, ge=0)

    @property
    def rule_weight(self) -> float:
        return 1.0 - self.llm_weight

    @field_validator("enabled_providers")
    @classmethod
    def providers_not_empty(cls, v: list[str]) -> list[str]:
        cleaned = [p.strip().lower() for p in v if p.strip()]
        if not cleaned:
            msg = "at least one LLM provider must be enabled"
            raise ValueError(msg)
        return cleaned


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/usage.db"


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    quota: QuotaConfig = Field(default_factory=QuotaConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    models: list[ModelDescriptor] = Field(default_factory=list)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
