"""Tests for core data models."""

import pytest
from pydantic import ValidationError

from src.core.schemas import (
    AnalysisRequest,
    ModelDescriptor,
    QuotaState,
    ScoreModel,
    ScoreSections,
    SectionScore,
)


def _sections(score: int = 80) -> ScoreSections:
    s = SectionScore(score=score)
    return ScoreSections(formatting=s, content=s, keywords=s, structure=s)


class TestSectionScore:
    def test_bounds(self) -> None:
        with pytest.raises(ValidationError):
            SectionScore(score=101)
        with pytest.raises(ValidationError):
            SectionScore(score=-1)

    def test_frozen(self) -> None:
        s = SectionScore(score=50)
        with pytest.raises(ValidationError):
            s.score = 60  # type: ignore[misc]


class TestScoreModel:
    def test_defaults(self) -> None:
        report = ScoreModel(overall_score=80, sections=_sections())
        assert report.ai_enhanced is False
        assert report.model_used is None
        assert report.suggested_keywords == []
        assert report.summary.strengths == []

    def test_overall_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ScoreModel(overall_score=150, sections=_sections())

    def test_json_round_trip_keeps_fields(self) -> None:
        report = ScoreModel(overall_score=70, sections=_sections(70), suggested_keywords=["git"])
        restored = ScoreModel.model_validate_json(report.model_dump_json())
        assert restored == report


class TestModelDescriptor:
    def test_estimate_cost(self) -> None:
        m = ModelDescriptor(id="m", provider="p", input_cost_per_mtok=3.0, output_cost_per_mtok=15.0)
        assert m.estimate_cost(1_000_000, 0) == pytest.approx(3.0)
        assert m.estimate_cost(1000, 2000) == pytest.approx(0.003 + 0.03)

    def test_blended_cost(self) -> None:
        m = ModelDescriptor(id="m", provider="p", input_cost_per_mtok=1.0, output_cost_per_mtok=3.0)
        assert m.blended_cost_per_mtok == 2.0

    def test_negative_price_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ModelDescriptor(id="m", provider="p", input_cost_per_mtok=-1.0)

    def test_default_capabilities(self) -> None:
        m = ModelDescriptor(id="m", provider="p")
        assert m.capabilities == ("analysis", "generation", "optimization")


class TestQuotaState:
    def test_summary(self) -> None:
        model = ModelDescriptor(id="cheap", provider="p")
        state = QuotaState(
            session_id="s",
            daily_tokens_used=10,
            monthly_spent=0.1234567,
            remaining_tokens=90,
            remaining_budget=4.8765433,
            daily_token_limit=100,
            monthly_budget=5.0,
            can_proceed=True,
            recommended_model=model,
            day="2025-01-01",
            month="2025-01",
        )
        summary = state.summary()
        assert summary.recommended_model == "cheap"
        assert summary.remaining_tokens == 90
        assert summary.monthly_spent == 0.123457


class TestAnalysisRequest:
    def test_valid(self) -> None:
        req = AnalysisRequest(resume_text="x" * 50)
        assert req.session_id == "anonymous"
        assert req.use_ai is True
        assert req.target_industry is None

    def test_too_short(self) -> None:
        with pytest.raises(ValidationError):
            AnalysisRequest(resume_text="x" * 49)

    def test_too_long(self) -> None:
        with pytest.raises(ValidationError):
            AnalysisRequest(resume_text="x" * 15_001)

    def test_bounds_inclusive(self) -> None:
        AnalysisRequest(resume_text="x" * 15_000)

    def test_industry_normalized(self) -> None:
        req = AnalysisRequest(resume_text="x" * 60, target_industry="  Technology ")
        assert req.target_industry == "technology"

    def test_blank_industry_is_none(self) -> None:
        req = AnalysisRequest(resume_text="x" * 60, target_industry="   ")
        assert req.target_industry is None

    def test_blank_session_is_anonymous(self) -> None:
        req = AnalysisRequest(resume_text="x" * 60, session_id="  ")
        assert req.session_id == "anonymous"
