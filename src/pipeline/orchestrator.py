"""Orchestrator: wires validation, quota, analyzers, fallback and usage tracking.

Data flow:
  1. Validate the request (length bounds)
  2. Rule-based baseline (always; failures here are fatal)
  3. Quota gate: exhausted or use_ai=False → baseline is the answer
  4. FallbackExecutor: AI-augmented analysis, falling back to the baseline
  5. Usage is recorded by the AI analyzer only when the AI path succeeded
"""

import logging
import sqlite3
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from src.analysis.ai_analyzer import AIAugmentedAnalyzer
from src.analysis.keywords import INDUSTRY_KEYWORDS
from src.analysis.rule_analyzer import RuleBasedAnalyzer
from src.analysis.section_generator import SectionGenerator
from src.core.config import Settings
from src.core.db import init_db
from src.core.errors import RequestValidationError
from src.core.schemas import (
    AnalysisRequest,
    AnalysisResponse,
    Complexity,
    GenerationResult,
    ResponseMetadata,
    SectionType,
    ServiceResult,
    utc_now,
)
from src.llm import get_provider
from src.llm.base import LLMProvider
from src.llm.cache import ResponseCache
from src.llm.catalog import ModelCatalog
from src.llm.limiter import CallLimiter
from src.pipeline.fallback import FallbackExecutor
from src.pipeline.quota_manager import QuotaManager

logger = logging.getLogger(__name__)

SUPPORTED_INDUSTRIES: tuple[str, ...] = tuple(sorted(INDUSTRY_KEYWORDS))


def _validation_message(error: ValidationError) -> str:
    """Turn the first pydantic error into a user-facing message."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "request"
    kind = first["type"]
    if field == "resume_text":
        if kind == "missing":
            return "Resume text is required"
        if kind == "string_too_short":
            return f"Resume text is too short (minimum {first['ctx']['min_length']} characters)"
        if kind == "string_too_long":
            return f"Resume text is too long (maximum {first['ctx']['max_length']:,} characters)"
    return f"Invalid request: {field}: {first['msg']}"


class ResumeAnalysisService:
    """Entry point for résumé analysis and section generation.

    Usage::

        service = ResumeAnalysisService(Settings.from_yaml("config/settings.yaml"))
        result = await service.handle({"resume_text": text, "session_id": "abc"})
    """

    def __init__(
        self,
        settings: Settings,
        conn: sqlite3.Connection | None = None,
        provider_factory: Callable[[str], LLMProvider] = get_provider,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._settings = settings
        self._conn = conn if conn is not None else init_db(settings.database.path)
        self._clock = clock

        self.catalog = ModelCatalog(
            settings.models or None,
            default_model_id=settings.llm.default_model,
            enabled_providers=settings.llm.enabled_providers,
        )
        self.quota = QuotaManager(self._conn, settings.quota, self.catalog, clock=clock)
        self.rule_analyzer = RuleBasedAnalyzer(settings.analyzer)
        # One cache and one call limit for every AI operation of this service.
        self.cache = ResponseCache(settings.llm.cache_ttl_seconds, settings.llm.cache_max_entries)
        self.limiter = CallLimiter(settings.llm.max_concurrent_calls, settings.llm.max_queued_calls)
        self.ai_analyzer = AIAugmentedAnalyzer(
            self.rule_analyzer,
            self.catalog,
            self.quota,
            settings.llm,
            provider_factory,
            cache=self.cache,
            limiter=self.limiter,
        )
        # The AI analyzer bounds its own provider call.
        self._analysis_executor = FallbackExecutor()
        self.generator = SectionGenerator(
            self.catalog,
            self.quota,
            settings.llm,
            FallbackExecutor(attempt_timeout=settings.llm.timeout_seconds),
            provider_factory,
            cache=self.cache,
            limiter=self.limiter,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    def _check_length(self, text: str) -> None:
        config = self._settings.analyzer
        if len(text) < config.min_chars:
            msg = f"Resume text is too short (minimum {config.min_chars} characters)"
            raise RequestValidationError(msg)
        if len(text) > config.max_chars:
            msg = f"Resume text is too long (maximum {config.max_chars:,} characters)"
            raise RequestValidationError(msg)

    async def analyze(self, request: AnalysisRequest) -> AnalysisResponse:
        """Analyze a validated request.

        Raises:
            RequestValidationError: If the text is outside the configured length bounds.
        """
        started = time.monotonic()
        text = request.resume_text
        self._check_length(text)

        baseline = self.rule_analyzer.analyze(text, request.target_industry)
        state = self.quota.check_usage_quota(request.session_id)

        analysis = baseline
        if not request.use_ai:
            logger.debug("AI disabled for '%s' - rule-based only", request.session_id)
        elif not state.can_proceed:
            logger.info("Quota exhausted for '%s' - rule-based only", request.session_id)
        else:
            outcome = await self._analysis_executor.run(
                lambda: self.ai_analyzer.analyze(
                    text,
                    request.target_industry,
                    request.session_id,
                    request.model,
                    baseline=baseline,
                    quota_state=state,
                ),
                lambda: baseline,
                label="Resume analysis",
            )
            analysis = outcome.value
            if analysis.ai_enhanced:
                state = self.quota.check_usage_quota(request.session_id)

        elapsed_ms = round((time.monotonic() - started) * 1000)
        logger.info(
            "Analyzed resume for '%s': overall %d (%s, %d ms)",
            request.session_id,
            analysis.overall_score,
            "hybrid" if analysis.ai_enhanced else "rule-based",
            elapsed_ms,
        )
        return AnalysisResponse(
            analysis=analysis,
            ai_enhanced=analysis.ai_enhanced,
            quota=state.summary(),
            metadata=ResponseMetadata(
                response_time_ms=elapsed_ms,
                analysis_type="hybrid" if analysis.ai_enhanced else "rule-based",
                timestamp=self._clock(),
            ),
        )

    async def handle(self, payload: dict[str, Any]) -> ServiceResult:
        """Validate a raw payload and analyze it.

        Validation problems come back as ``ServiceResult(success=False)``;
        a failure of the rule-based analyzer propagates.
        """
        try:
            request = AnalysisRequest.model_validate(payload)
        except ValidationError as e:
            message = _validation_message(e)
            logger.info("Rejected analysis request: %s", message)
            return ServiceResult(success=False, error=message)

        try:
            response = await self.analyze(request)
        except RequestValidationError as e:
            return ServiceResult(success=False, error=str(e))
        return ServiceResult(success=True, data=response)

    async def generate_section(
        self,
        section_type: SectionType,
        user_input: str,
        target_role: str,
        session_id: str | None = None,
        model: str | None = None,
        complexity: Complexity = "medium",
    ) -> GenerationResult:
        """Generate a résumé section (see SectionGenerator.generate)."""
        return await self.generator.generate(
            section_type,
            user_input,
            target_role,
            session_id or self._settings.quota.anonymous_session_id,
            model=model,
            complexity=complexity,
        )

    def service_info(self, session_id: str | None = None) -> dict[str, Any]:
        """Quota state, supported industries and accepted text lengths."""
        session = session_id or self._settings.quota.anonymous_session_id
        state = self.quota.check_usage_quota(session)
        return {
            "session_id": session,
            "quota": state.summary().model_dump(),
            "supported_industries": list(SUPPORTED_INDUSTRIES),
            "min_chars": self._settings.analyzer.min_chars,
            "max_chars": self._settings.analyzer.max_chars,
            "ai_available": state.can_proceed,
        }

    def close(self) -> None:
        self._conn.close()
