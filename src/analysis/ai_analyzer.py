"""AI-augmented résumé analysis, blended with the rule-based baseline."""

import asyncio
import logging
import time
from collections.abc import Callable

from pydantic import BaseModel, ValidationError, field_validator

from src.analysis.rule_analyzer import RuleBasedAnalyzer, build_summary, weighted_overall
from src.core.config import LLMConfig, SectionWeights
from src.core.errors import MalformedResponseError
from src.core.schemas import (
    ModelDescriptor,
    QuotaState,
    ScoreModel,
    ScoreSections,
    SectionScore,
)
from src.llm import get_provider
from src.llm.base import LLMProvider, estimate_tokens, load_json_object
from src.llm.cache import ResponseCache, cache_key
from src.llm.catalog import ModelCatalog
from src.llm.limiter import CallLimiter
from src.pipeline.quota_manager import QuotaManager

logger = logging.getLogger(__name__)

ANALYZE_OPERATION = "analyze_resume"
ABANDONED_OPERATION = "analyze_resume_abandoned"

ANALYSIS_SYSTEM_PROMPT = (
    "You are an expert in Applicant Tracking Systems (ATS) and resume screening.\n\n"
    "Evaluate how well the resume will be parsed and ranked by an ATS. Score each "
    "section on a 0-100 scale:\n"
    "  formatting: machine readability (layout, symbols, contact details)\n"
    "  content:    impact of the writing (action verbs, quantified results)\n"
    "  keywords:   coverage of skills and terms expected for the industry\n"
    "  structure:  presence and order of standard sections, dates\n\n"
    "Return ONLY a JSON object (no markdown, no explanation):\n"
    '{"sections": {"formatting": {"score": <int>, "issues": [<str>], '
    '"improvements": [<str>]}, "content": {...}, "keywords": {...}, '
    '"structure": {...}}, "suggested_keywords": [<str>]}'
)


class AISectionAssessment(BaseModel):
    score: int
    issues: list[str] = []
    improvements: list[str] = []

    @field_validator("score")
    @classmethod
    def clamp_score(cls, v: int) -> int:
        return max(0, min(100, v))


class AISections(BaseModel):
    formatting: AISectionAssessment
    content: AISectionAssessment
    keywords: AISectionAssessment
    structure: AISectionAssessment


class AIAnalysis(BaseModel):
    """The language model's report, before blending."""

    sections: AISections
    suggested_keywords: list[str] = []


def build_analysis_prompt(
    resume_text: str,
    target_industry: str | None,
    baseline: ScoreModel,
) -> str:
    """Assemble the user prompt. Same inputs always give the same prompt."""
    s = baseline.sections
    return (
        f"TARGET INDUSTRY: {target_industry or 'general'}\n\n"
        "RULE-BASED BASELINE SCORES\n"
        f"Formatting: {s.formatting.score}\n"
        f"Content: {s.content.score}\n"
        f"Keywords: {s.keywords.score}\n"
        f"Structure: {s.structure.score}\n"
        f"Overall: {baseline.overall_score}\n\n"
        "RESUME\n"
        f"{resume_text}\n"
    )


def parse_ai_analysis(raw_text: str) -> AIAnalysis:
    """Parse an LLM response into AIAnalysis.

    Raises:
        MalformedResponseError: On invalid JSON or a missing or mistyped field.
    """
    data = load_json_object(raw_text)
    try:
        return AIAnalysis.model_validate(data)
    except ValidationError as e:
        msg = f"LLM analysis does not match the expected shape: {e.error_count()} errors"
        raise MalformedResponseError(msg) from e


def _merge_unique(first: list[str], second: list[str]) -> list[str]:
    merged: list[str] = []
    for item in (*first, *second):
        text = item.strip()
        if text and text not in merged:
            merged.append(text)
    return merged


def blend_analysis(
    baseline: ScoreModel,
    ai: AIAnalysis,
    llm_config: LLMConfig,
    model_id: str,
    weights: SectionWeights,
) -> ScoreModel:
    """Blend AI section scores into the rule-based report.

    Section scores are ``round(rule_weight * rule + llm_weight * ai)``; the
    overall score is recomputed from the blended sections.
    """
    blended: dict[str, SectionScore] = {}
    for name in ("formatting", "content", "keywords", "structure"):
        rule: SectionScore = getattr(baseline.sections, name)
        assessment: AISectionAssessment = getattr(ai.sections, name)
        score = round(llm_config.rule_weight * rule.score + llm_config.llm_weight * assessment.score)
        blended[name] = SectionScore(
            score=max(0, min(100, score)),
            issues=_merge_unique(assessment.issues, rule.issues),
            improvements=_merge_unique(assessment.improvements, rule.improvements),
        )

    sections = ScoreSections(**blended)
    suggested = _merge_unique(ai.suggested_keywords, baseline.suggested_keywords)[:10]
    return ScoreModel(
        overall_score=weighted_overall(sections, weights),
        sections=sections,
        suggested_keywords=suggested,
        summary=build_summary(sections, suggested),
        ai_enhanced=True,
        model_used=model_id,
        weights_version=baseline.weights_version,
    )


class AIAugmentedAnalyzer:
    """Runs the rule-based analyzer, then asks a language model to refine it.

    ``analyze`` raises on any AI failure; callers wrap it in a
    FallbackExecutor with the rule-based report as fallback. Parsed reports
    are cached by (model, prompt); a cache hit makes no provider call and
    records no usage.
    """

    def __init__(
        self,
        rule_analyzer: RuleBasedAnalyzer,
        catalog: ModelCatalog,
        quota_manager: QuotaManager,
        llm_config: LLMConfig,
        provider_factory: Callable[[str], LLMProvider] = get_provider,
        *,
        cache: ResponseCache | None = None,
        limiter: CallLimiter | None = None,
    ) -> None:
        self._rule_analyzer = rule_analyzer
        self._catalog = catalog
        self._quota = quota_manager
        self._config = llm_config
        self._provider_factory = provider_factory
        if cache is None:
            cache = ResponseCache(llm_config.cache_ttl_seconds, llm_config.cache_max_entries)
        if limiter is None:
            limiter = CallLimiter(llm_config.max_concurrent_calls, llm_config.max_queued_calls)
        self._cache = cache
        self._limiter = limiter

    def select_model(self, model: str | None, quota_state: QuotaState | None) -> ModelDescriptor:
        """Explicit model, then the quota recommendation, then the cheapest analysis model.

        Raises:
            UnknownModelError: If an explicit model is not in the catalog.
        """
        if model:
            return self._catalog.get_model(model)
        if quota_state is not None and quota_state.recommended_model is not None:
            return quota_state.recommended_model
        return self._catalog.recommend_model_for_task("analysis", "medium", "high")

    async def analyze(
        self,
        resume_text: str,
        target_industry: str | None,
        session_id: str,
        model: str | None = None,
        *,
        baseline: ScoreModel | None = None,
        quota_state: QuotaState | None = None,
    ) -> ScoreModel:
        """Return a blended, AI-enhanced report.

        Raises:
            UnknownModelError: Explicit model not in the catalog.
            MalformedResponseError: The response could not be parsed.
            TimeoutError: The provider call exceeded ``timeout_seconds``.
            ProviderBusyError: Too many calls already waiting for a slot.
        """
        if baseline is None:
            baseline = self._rule_analyzer.analyze(resume_text, target_industry)
        descriptor = self.select_model(model, quota_state)
        provider = self._provider_factory(descriptor.provider)

        prompt = build_analysis_prompt(resume_text, target_industry, baseline)
        key = cache_key(ANALYZE_OPERATION, descriptor.id, ANALYSIS_SYSTEM_PROMPT, prompt)
        cached: AIAnalysis | None = self._cache.get(key)
        if cached is not None:
            logger.info("AI analysis for '%s' served from cache (%s)", session_id, descriptor.id)
            return blend_analysis(
                baseline, cached, self._config, descriptor.id, self._rule_analyzer.config.weights,
            )

        input_tokens = estimate_tokens(ANALYSIS_SYSTEM_PROMPT) + estimate_tokens(prompt)
        async with self._limiter:
            started = time.monotonic()
            try:
                raw = await asyncio.wait_for(
                    provider.complete(
                        prompt,
                        model=descriptor.id,
                        system=ANALYSIS_SYSTEM_PROMPT,
                        max_tokens=self._config.max_tokens,
                        temperature=self._config.temperature,
                    ),
                    timeout=self._config.timeout_seconds,
                )
            except (asyncio.TimeoutError, asyncio.CancelledError):
                if self._config.track_abandoned_calls:
                    self._quota.track_usage(
                        session_id,
                        ABANDONED_OPERATION,
                        prompt,
                        "",
                        descriptor.id,
                        input_tokens,
                        _elapsed_ms(started),
                        descriptor.estimate_cost(input_tokens, 0),
                    )
                raise

        analysis = parse_ai_analysis(raw)
        self._cache.set(key, analysis)
        output_tokens = estimate_tokens(raw)
        self._quota.track_usage(
            session_id,
            ANALYZE_OPERATION,
            prompt,
            raw,
            descriptor.id,
            input_tokens + output_tokens,
            _elapsed_ms(started),
            descriptor.estimate_cost(input_tokens, output_tokens),
        )
        logger.info(
            "AI analysis via %s: %d tokens", descriptor.id, input_tokens + output_tokens,
        )
        return blend_analysis(
            baseline, analysis, self._config, descriptor.id, self._rule_analyzer.config.weights,
        )


def _elapsed_ms(started: float) -> int:
    return max(0, round((time.monotonic() - started) * 1000))
