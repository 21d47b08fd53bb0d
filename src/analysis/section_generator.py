"""AI generation of résumé sections with model fallback and canned degraded text."""

import asyncio
import logging
import time
from collections.abc import Callable

from src.core.config import LLMConfig
from src.core.errors import QuotaExceededError
from src.core.schemas import Complexity, GenerationResult, ModelDescriptor, SectionType
from src.llm import get_provider
from src.llm.base import LLMProvider, estimate_tokens
from src.llm.cache import ResponseCache, cache_key
from src.llm.catalog import ModelCatalog
from src.llm.limiter import CallLimiter
from src.pipeline.fallback import AttemptStage, FallbackExecutor
from src.pipeline.quota_manager import QuotaManager

logger = logging.getLogger(__name__)

GENERATE_OPERATION = "generate_resume_section"
GENERATE_ABANDONED_OPERATION = "generate_resume_section_abandoned"

_GENERATION_TEMPERATURE = 0.7

_SECTION_PROMPTS: dict[str, str] = {
    "summary": (
        "Write a professional resume summary paragraph optimized for a {role} "
        "position, based on this background:\n{text}"
    ),
    "experience": (
        "Rewrite the following work experience so it is more impactful and suited "
        "to a {role} position. Use action verbs and quantified results:\n{text}"
    ),
    "skills": (
        "Optimize the following skills list for a {role} position, making sure it "
        "includes the relevant keywords:\n{text}"
    ),
}

DEGRADED_SECTIONS: dict[str, str] = {
    "summary": (
        "Professional summary generation is temporarily unavailable. Please write a "
        "brief summary highlighting your key qualifications and experience."
    ),
    "experience": (
        "Experience enhancement is temporarily unavailable. Please review and expand "
        "your work experience descriptions manually."
    ),
    "skills": (
        "Skills optimization is temporarily unavailable. Please list your relevant "
        "technical and soft skills."
    ),
}


def build_generation_prompt(section_type: SectionType, user_input: str, target_role: str) -> str:
    return _SECTION_PROMPTS[section_type].format(role=target_role.strip(), text=user_input.strip())


class SectionGenerator:
    """Generates a résumé section: selected model, then fallback model, then canned text."""

    def __init__(
        self,
        catalog: ModelCatalog,
        quota_manager: QuotaManager,
        llm_config: LLMConfig,
        executor: FallbackExecutor,
        provider_factory: Callable[[str], LLMProvider] = get_provider,
        *,
        cache: ResponseCache | None = None,
        limiter: CallLimiter | None = None,
    ) -> None:
        self._catalog = catalog
        self._quota = quota_manager
        self._config = llm_config
        self._executor = executor
        self._provider_factory = provider_factory
        if cache is None:
            cache = ResponseCache(llm_config.cache_ttl_seconds, llm_config.cache_max_entries)
        if limiter is None:
            limiter = CallLimiter(llm_config.max_concurrent_calls, llm_config.max_queued_calls)
        self._cache = cache
        self._limiter = limiter

    async def generate(
        self,
        section_type: SectionType,
        user_input: str,
        target_role: str,
        session_id: str,
        model: str | None = None,
        complexity: Complexity = "medium",
    ) -> GenerationResult:
        """Generate text for one résumé section.

        Raises:
            ValueError: Unknown section type or input too short.
            QuotaExceededError: The session has no AI budget left.
        """
        if section_type not in _SECTION_PROMPTS:
            msg = f"Unknown section type '{section_type}'. Expected one of: summary, experience, skills"
            raise ValueError(msg)
        if len(user_input.strip()) < 10:
            msg = "Input must be at least 10 characters"
            raise ValueError(msg)
        if len(target_role.strip()) < 2:
            msg = "Target role must be at least 2 characters"
            raise ValueError(msg)

        state = self._quota.check_usage_quota(session_id)
        if not state.can_proceed:
            raise QuotaExceededError(state)

        if model:
            primary = self._catalog.get_model(model)
        elif state.recommended_model is not None and "generation" in state.recommended_model.capabilities:
            primary = state.recommended_model
        else:
            primary = self._catalog.recommend_model_for_task("generation", complexity, "medium")

        fallback = None
        if self._config.fallback_model != primary.id and self._catalog.has_model(self._config.fallback_model):
            fallback = self._catalog.get_model(self._config.fallback_model)

        prompt = build_generation_prompt(section_type, user_input, target_role)

        async def call(descriptor: ModelDescriptor) -> GenerationResult:
            return await self._complete(descriptor, prompt, section_type, session_id)

        outcome = await self._executor.run(
            lambda: call(primary),
            (lambda: call(fallback)) if fallback is not None else None,
            lambda: GenerationResult(
                section_type=section_type,
                content=DEGRADED_SECTIONS[section_type],
                degraded=True,
            ),
            label=f"Resume {section_type} generation",
        )
        if outcome.stage is AttemptStage.DEGRADED:
            logger.warning("Returning degraded %s text for '%s'", section_type, session_id)
        return outcome.value

    async def _complete(
        self,
        descriptor: ModelDescriptor,
        prompt: str,
        section_type: SectionType,
        session_id: str,
    ) -> GenerationResult:
        key = cache_key(GENERATE_OPERATION, descriptor.id, prompt)
        cached: str | None = self._cache.get(key)
        if cached is not None:
            logger.info("%s section for '%s' served from cache (%s)", section_type, session_id, descriptor.id)
            return GenerationResult(section_type=section_type, content=cached, model_used=descriptor.id)

        provider = self._provider_factory(descriptor.provider)
        input_tokens = estimate_tokens(prompt)
        async with self._limiter:
            started = time.monotonic()
            try:
                content = await provider.complete(
                    prompt,
                    model=descriptor.id,
                    max_tokens=min(self._config.max_tokens // 4, 1000),
                    temperature=_GENERATION_TEMPERATURE,
                )
            except (asyncio.TimeoutError, asyncio.CancelledError):
                # Cancelled by the executor's attempt timeout.
                if self._config.track_abandoned_calls:
                    self._quota.track_usage(
                        session_id,
                        GENERATE_ABANDONED_OPERATION,
                        prompt,
                        "",
                        descriptor.id,
                        input_tokens,
                        round((time.monotonic() - started) * 1000),
                        descriptor.estimate_cost(input_tokens, 0),
                    )
                raise
        content = content.strip()
        if not content:
            msg = f"{descriptor.id} returned an empty {section_type} section"
            raise ValueError(msg)
        self._cache.set(key, content)

        output_tokens = estimate_tokens(content)
        cost = descriptor.estimate_cost(input_tokens, output_tokens)
        self._quota.track_usage(
            session_id,
            GENERATE_OPERATION,
            prompt,
            content,
            descriptor.id,
            input_tokens + output_tokens,
            round((time.monotonic() - started) * 1000),
            cost,
        )
        return GenerationResult(
            section_type=section_type,
            content=content,
            model_used=descriptor.id,
            tokens_used=input_tokens + output_tokens,
            estimated_cost=cost,
        )
