"""Core data models for the ATS scoring engine."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

TaskKind = Literal["analysis", "generation", "optimization"]
Complexity = Literal["low", "medium", "high"]
CostSensitivity = Literal["low", "medium", "high"]
ModelTier = Literal["budget", "balanced", "premium"]
SectionType = Literal["summary", "experience", "skills"]

SECTION_NAMES = ("formatting", "content", "keywords", "structure")


def utc_now() -> datetime:
    """Reference clock for quota windows and record timestamps."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Compatibility report
# ---------------------------------------------------------------------------


class SectionScore(BaseModel):
    """Score for one report section, with issues ordered most severe first."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    issues: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)


class ScoreSections(BaseModel):
    model_config = ConfigDict(frozen=True)

    formatting: SectionScore
    content: SectionScore
    keywords: SectionScore
    structure: SectionScore


class AnalysisSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    strengths: list[str] = Field(default_factory=list)
    critical_issues: list[str] = Field(default_factory=list)
    quick_wins: list[str] = Field(default_factory=list)


class ScoreModel(BaseModel):
    """The ATS compatibility report.

    Frozen. ``overall_score`` is always derived from the section scores by
    the weighting named in ``weights_version``.
    """

    model_config = ConfigDict(frozen=True)

    overall_score: int = Field(ge=0, le=100)
    sections: ScoreSections
    suggested_keywords: list[str] = Field(default_factory=list)
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)
    ai_enhanced: bool = False
    model_used: str | None = None
    weights_version: str = ""


# ---------------------------------------------------------------------------
# Models and usage accounting
# ---------------------------------------------------------------------------


class ModelDescriptor(BaseModel):
    """A language model with pricing and capability metadata."""

    model_config = ConfigDict(frozen=True)

    id: str
    provider: str
    name: str = ""
    input_cost_per_mtok: float = Field(default=0.0, ge=0.0)
    output_cost_per_mtok: float = Field(default=0.0, ge=0.0)
    tier: ModelTier = "balanced"
    capabilities: tuple[TaskKind, ...] = ("analysis", "generation", "optimization")
    context_length: int = Field(default=128_000, ge=1)

    @property
    def blended_cost_per_mtok(self) -> float:
        """Average of input and output price, used for cost ordering."""
        return (self.input_cost_per_mtok + self.output_cost_per_mtok) / 2

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        """Estimated USD cost of a call with the given token counts."""
        return (
            (input_tokens / 1_000_000) * self.input_cost_per_mtok
            + (output_tokens / 1_000_000) * self.output_cost_per_mtok
        )


class UsageRecord(BaseModel):
    """One tracked AI invocation. Append-only."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    operation: str
    model: str
    tokens_used: int = Field(ge=0)
    response_time_ms: int = Field(ge=0)
    estimated_cost: float = Field(ge=0.0)
    input_length: int = Field(default=0, ge=0)
    output_length: int = Field(default=0, ge=0)
    timestamp: datetime = Field(default_factory=utc_now)


class QuotaState(BaseModel):
    """Usage counters for a session within the current day and month."""

    session_id: str
    daily_tokens_used: int = 0
    monthly_spent: float = 0.0
    remaining_tokens: int = 0
    remaining_budget: float = 0.0
    daily_token_limit: int
    monthly_budget: float
    can_proceed: bool
    recommended_model: ModelDescriptor | None = None
    day: str
    month: str

    def summary(self) -> "QuotaSummary":
        return QuotaSummary(
            daily_tokens_used=self.daily_tokens_used,
            monthly_spent=round(self.monthly_spent, 6),
            remaining_tokens=self.remaining_tokens,
            remaining_budget=round(self.remaining_budget, 6),
            can_proceed=self.can_proceed,
            recommended_model=self.recommended_model.id if self.recommended_model else None,
        )


class QuotaSummary(BaseModel):
    """Subset of QuotaState returned to callers."""

    daily_tokens_used: int
    monthly_spent: float
    remaining_tokens: int
    remaining_budget: float
    can_proceed: bool
    recommended_model: str | None = None


class ModelUsage(BaseModel):
    model: str
    tokens: int = 0
    cost: float = 0.0
    calls: int = 0


class CostReport(BaseModel):
    """Aggregated spend for the current month (optionally for one session)."""

    daily_tokens: int
    monthly_spent: float
    budget_utilization: float  # percent of the monthly budget
    projected_monthly_spend: float
    model_breakdown: list[ModelUsage] = Field(default_factory=list)
    top_models: list[ModelUsage] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Request boundary
# ---------------------------------------------------------------------------


class AnalysisRequest(BaseModel):
    """Inbound analysis request.

    Length bounds match the analyzer defaults; the service re-checks them
    against the configured AnalyzerConfig.
    """

    resume_text: str = Field(min_length=50, max_length=15_000)
    target_industry: str | None = None
    session_id: str = "anonymous"
    model: str | None = None
    use_ai: bool = True

    @field_validator("target_industry")
    @classmethod
    def normalize_industry(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip().lower()
        return v or None

    @field_validator("session_id")
    @classmethod
    def session_not_blank(cls, v: str) -> str:
        return v.strip() or "anonymous"


class ResponseMetadata(BaseModel):
    response_time_ms: int
    analysis_type: Literal["hybrid", "rule-based"]
    timestamp: datetime = Field(default_factory=utc_now)


class AnalysisResponse(BaseModel):
    analysis: ScoreModel
    ai_enhanced: bool
    quota: QuotaSummary | None = None
    metadata: ResponseMetadata


class ServiceResult(BaseModel):
    """Outcome of a boundary call: either data or a validation error message."""

    success: bool
    data: AnalysisResponse | None = None
    error: str | None = None


class GenerationResult(BaseModel):
    """Generated résumé section text."""

    section_type: SectionType
    content: str
    model_used: str | None = None
    degraded: bool = False
    tokens_used: int = 0
    estimated_cost: float = 0.0
