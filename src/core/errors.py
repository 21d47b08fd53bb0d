"""Exception types raised across the scoring pipeline."""

from src.core.schemas import QuotaState


class ATSScoringError(Exception):
    """Base class for errors raised by this package."""


class RequestValidationError(ATSScoringError, ValueError):
    """The request is outside the configured input bounds."""


class MalformedResponseError(ATSScoringError, ValueError):
    """The language model returned something that is not a usable report."""


class UnknownModelError(ATSScoringError, ValueError):
    """A model id was requested that the catalog does not know."""


class ProviderBusyError(ATSScoringError):
    """Too many language-model calls are already waiting for a slot."""


class QuotaExceededError(ATSScoringError):
    """The session has no AI budget left for an operation that requires AI."""

    def __init__(self, state: QuotaState) -> None:
        super().__init__(
            f"Usage quota exceeded for session '{state.session_id}' "
            f"({state.daily_tokens_used}/{state.daily_token_limit} tokens today, "
            f"${state.monthly_spent:.4f}/${state.monthly_budget:.2f} this month)"
        )
        self.state = state


class FallbackExhaustedError(ATSScoringError):
    """Every attempt of a fallback chain failed."""

    def __init__(self, label: str, failures: list[tuple[str, BaseException]]) -> None:
        stages = ", ".join(f"{stage}: {type(exc).__name__}" for stage, exc in failures)
        super().__init__(f"{label} failed in every stage ({stages})")
        self.label = label
        self.failures = failures
