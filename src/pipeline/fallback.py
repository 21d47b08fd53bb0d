"""Fallback executor: primary → fallback → degraded, strictly in sequence.

Each operation is a zero-argument callable returning a value or an
awaitable. Operations are invoked at most once; there are no retries.
Cancellation is never treated as a failure and always propagates.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from src.core.errors import (
    FallbackExhaustedError,
    MalformedResponseError,
    ProviderBusyError,
    QuotaExceededError,
    UnknownModelError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], "Awaitable[T] | T"]


class AttemptStage(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
    DEGRADED = "degraded"


class FallbackState(Enum):
    TRYING_PRIMARY = "trying_primary"
    TRYING_FALLBACK = "trying_fallback"
    TRYING_DEGRADED = "trying_degraded"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# State reached when the attempt of the current state fails or is absent.
_ON_FAILURE: dict[FallbackState, FallbackState] = {
    FallbackState.TRYING_PRIMARY: FallbackState.TRYING_FALLBACK,
    FallbackState.TRYING_FALLBACK: FallbackState.TRYING_DEGRADED,
    FallbackState.TRYING_DEGRADED: FallbackState.FAILED,
}

_STAGE_OF: dict[FallbackState, AttemptStage] = {
    FallbackState.TRYING_PRIMARY: AttemptStage.PRIMARY,
    FallbackState.TRYING_FALLBACK: AttemptStage.FALLBACK,
    FallbackState.TRYING_DEGRADED: AttemptStage.DEGRADED,
}


@dataclass(frozen=True)
class FailedResult:
    """Value an operation may return to signal failure without raising."""

    reason: str = ""


class ErrorResultError(Exception):
    """Records an attempt that returned an error result instead of raising."""


@dataclass(frozen=True)
class FallbackOutcome(Generic[T]):
    value: T
    stage: AttemptStage
    failures: list[tuple[str, BaseException]] = field(default_factory=list)


@dataclass(frozen=True)
class AIErrorInfo:
    code: str
    message: str
    retryable: bool


def classify_error(exc: BaseException) -> AIErrorInfo:
    """Map an exception from an AI call to a stable error code for logging."""
    message = str(exc) or type(exc).__name__

    if isinstance(exc, QuotaExceededError):
        return AIErrorInfo("QUOTA_EXCEEDED", message, False)
    if isinstance(exc, UnknownModelError):
        return AIErrorInfo("MODEL_NOT_FOUND", message, False)
    if isinstance(exc, MalformedResponseError):
        return AIErrorInfo("MALFORMED_RESPONSE", message, True)
    if isinstance(exc, ProviderBusyError):
        return AIErrorInfo("RATE_LIMIT", message, True)
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)) or "Timeout" in type(exc).__name__:
        return AIErrorInfo("TIMEOUT", message, True)

    status = getattr(exc, "status_code", None)
    if not isinstance(status, int):
        status = getattr(exc, "code", None)
    if isinstance(status, int):
        if status == 429:
            return AIErrorInfo("RATE_LIMIT", message, True)
        if status in (401, 403):
            return AIErrorInfo("UNAUTHORIZED", message, False)
        if status == 404:
            return AIErrorInfo("MODEL_NOT_FOUND", message, False)
        if 400 <= status < 500:
            return AIErrorInfo("INVALID_REQUEST", message, False)
        if status >= 500:
            return AIErrorInfo("SERVER_ERROR", message, True)

    if isinstance(exc, (ConnectionError, OSError)) or "Connection" in type(exc).__name__:
        return AIErrorInfo("NETWORK_ERROR", message, True)

    lowered = message.lower()
    if "quota" in lowered:
        return AIErrorInfo("QUOTA_EXCEEDED", message, False)
    if "model" in lowered and "not found" in lowered:
        return AIErrorInfo("MODEL_NOT_FOUND", message, False)
    return AIErrorInfo("UNKNOWN_ERROR", message, True)


class FallbackExecutor:
    """Runs an operation with ordered fallbacks.

    Args:
        attempt_timeout: Seconds allowed per awaitable attempt; None for no limit.
        is_error: Optional predicate marking a returned value as a failure.
    """

    def __init__(
        self,
        attempt_timeout: float | None = None,
        is_error: Callable[[Any], bool] | None = None,
    ) -> None:
        self._attempt_timeout = attempt_timeout
        self._is_error = is_error

    async def execute_with_fallback(
        self,
        primary: Operation,
        fallback: Operation | None = None,
        degraded: Operation | None = None,
        *,
        label: str = "operation",
    ) -> Any:
        """Return the first successful attempt's value.

        Raises:
            FallbackExhaustedError: If every supplied attempt failed.
        """
        outcome = await self.run(primary, fallback, degraded, label=label)
        return outcome.value

    async def run(
        self,
        primary: Operation,
        fallback: Operation | None = None,
        degraded: Operation | None = None,
        *,
        label: str = "operation",
    ) -> FallbackOutcome:
        """Like execute_with_fallback, but also report the stage that succeeded."""
        operations = {
            FallbackState.TRYING_PRIMARY: primary,
            FallbackState.TRYING_FALLBACK: fallback,
            FallbackState.TRYING_DEGRADED: degraded,
        }
        failures: list[tuple[str, BaseException]] = []
        state = FallbackState.TRYING_PRIMARY

        while state in _ON_FAILURE:
            operation = operations[state]
            stage = _STAGE_OF[state]
            if operation is None:
                state = _ON_FAILURE[state]
                continue

            try:
                value = await self._attempt(operation)
                if isinstance(value, FailedResult):
                    raise ErrorResultError(value.reason or "operation returned a failed result")
                if self._is_error is not None and self._is_error(value):
                    raise ErrorResultError("operation returned an error result")
            except Exception as e:
                info = classify_error(e)
                logger.warning(
                    "[%s] %s attempt failed (%s): %s", label, stage.value, info.code, info.message,
                )
                failures.append((stage.value, e))
                state = _ON_FAILURE[state]
                continue

            if failures:
                logger.info("[%s] recovered at %s stage", label, stage.value)
            return FallbackOutcome(value=value, stage=stage, failures=failures)

        logger.error("[%s] all %d attempts failed", label, len(failures))
        raise FallbackExhaustedError(label, failures)

    async def _attempt(self, operation: Operation) -> Any:
        result = operation()
        if inspect.isawaitable(result):
            if self._attempt_timeout is not None:
                return await asyncio.wait_for(result, self._attempt_timeout)
            return await result
        return result
