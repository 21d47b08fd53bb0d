"""Quota manager: per-session token and spend caps for AI calls.

Counters live in SQLite, keyed by UTC day (YYYY-MM-DD) and month (YYYY-MM).
They reset implicitly when the key changes; no explicit reset needed.
"""

import calendar
import logging
import sqlite3
import threading
from collections.abc import Callable
from datetime import datetime

from src.core.config import QuotaConfig
from src.core.db import (
    get_model_breakdown,
    get_total_usage,
    get_usage,
    get_usage_records,
    record_usage,
)
from src.core.schemas import CostReport, ModelDescriptor, QuotaState, UsageRecord, utc_now
from src.llm.catalog import ModelCatalog

logger = logging.getLogger(__name__)


def window_keys(now: datetime) -> tuple[str, str]:
    """Return the (day, month) window keys for a timestamp."""
    return now.strftime("%Y-%m-%d"), now.strftime("%Y-%m")


class QuotaManager:
    """Enforces daily token and monthly spend limits per session.

    Usage::

        qm = QuotaManager(conn, settings.quota, catalog)
        state = qm.check_usage_quota("session-1")
        if state.can_proceed:
            ...  # call the model
            qm.track_usage("session-1", "analyze_resume", prompt, reply,
                           model.id, tokens, elapsed_ms, cost)
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        config: QuotaConfig,
        catalog: ModelCatalog,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._conn = conn
        self._config = config
        self._catalog = catalog
        self._clock = clock
        # Single writer: the connection is shared across threads.
        self._lock = threading.Lock()

    @property
    def config(self) -> QuotaConfig:
        return self._config

    def check_usage_quota(self, session_id: str) -> QuotaState:
        """Return the session's current usage and whether an AI call may proceed."""
        day, month = window_keys(self._clock())
        with self._lock:
            tokens, spent = get_usage(self._conn, session_id, day, month)

        limit = self._config.daily_token_limit
        budget = self._config.monthly_budget_usd
        remaining_tokens = max(0, limit - tokens)
        remaining_budget = max(0.0, budget - spent)
        can_proceed = remaining_tokens > 0 and remaining_budget > 0

        recommended = None
        if can_proceed:
            recommended = self._recommend(remaining_budget / budget)
        else:
            logger.info(
                "Quota exhausted for '%s': %d/%d tokens, $%.4f/$%.2f",
                session_id, tokens, limit, spent, budget,
            )

        return QuotaState(
            session_id=session_id,
            daily_tokens_used=tokens,
            monthly_spent=spent,
            remaining_tokens=remaining_tokens,
            remaining_budget=remaining_budget,
            daily_token_limit=limit,
            monthly_budget=budget,
            can_proceed=can_proceed,
            recommended_model=recommended,
            day=day,
            month=month,
        )

    def _recommend(self, budget_ratio: float) -> ModelDescriptor | None:
        if budget_ratio > 0.2:
            sensitivity = "low"
        elif budget_ratio > 0.04:
            sensitivity = "medium"
        elif budget_ratio > 0.01:
            sensitivity = "high"
        else:
            return None
        try:
            return self._catalog.recommend_model_for_task("analysis", "medium", sensitivity)
        except LookupError:
            return None

    def track_usage(
        self,
        session_id: str,
        operation: str,
        input_text: str,
        output_text: str,
        model: str,
        tokens_used: int,
        response_time_ms: int,
        estimated_cost: float,
    ) -> UsageRecord:
        """Append a usage record and add its amounts to the session counters.

        Only the lengths of the texts are stored.

        Raises:
            ValueError: If tokens, time or cost is negative.
        """
        if tokens_used < 0 or estimated_cost < 0 or response_time_ms < 0:
            msg = (
                f"Usage amounts must be non-negative "
                f"(tokens={tokens_used}, cost={estimated_cost}, time={response_time_ms})"
            )
            raise ValueError(msg)

        now = self._clock()
        day, month = window_keys(now)
        record = UsageRecord(
            session_id=session_id,
            operation=operation,
            model=model,
            tokens_used=tokens_used,
            response_time_ms=response_time_ms,
            estimated_cost=estimated_cost,
            input_length=len(input_text),
            output_length=len(output_text),
            timestamp=now,
        )
        with self._lock:
            record_usage(self._conn, record, day, month)
            tokens, spent = get_usage(self._conn, session_id, day, month)

        logger.debug(
            "Recorded %s for '%s': %d tokens, $%.6f (%s)",
            operation, session_id, tokens_used, estimated_cost, model,
        )
        if tokens > self._config.daily_token_limit or spent > self._config.monthly_budget_usd:
            logger.warning(
                "Session '%s' over quota after %s: %d/%d tokens, $%.4f/$%.2f",
                session_id, operation, tokens, self._config.daily_token_limit,
                spent, self._config.monthly_budget_usd,
            )
        return record

    def generate_cost_report(self, session_id: str | None = None) -> CostReport:
        """Summarise this month's spend, for one session or across all sessions."""
        now = self._clock()
        day, month = window_keys(now)
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        with self._lock:
            if session_id is None:
                tokens, spent = get_total_usage(self._conn, day, month)
            else:
                tokens, spent = get_usage(self._conn, session_id, day, month)
            breakdown = get_model_breakdown(self._conn, month_start, session_id)

        days_in_month = calendar.monthrange(now.year, now.month)[1]
        return CostReport(
            daily_tokens=tokens,
            monthly_spent=spent,
            budget_utilization=spent / self._config.monthly_budget_usd * 100,
            projected_monthly_spend=spent / now.day * days_in_month,
            model_breakdown=breakdown,
            top_models=breakdown[:5],
        )

    def should_downgrade_model(self, session_id: str) -> tuple[bool, ModelDescriptor | None]:
        """Whether the session should move to a cheaper tier, and which model.

        Below 2% of the budget left the answer is the cheapest budget-tier
        model; below 10% it is the cheapest balanced-tier model.
        """
        state = self.check_usage_quota(session_id)
        ratio = state.remaining_budget / state.monthly_budget
        if ratio < 0.02:
            target = "budget"
        elif ratio < 0.10:
            target = "balanced"
        else:
            return (False, None)

        models = [m for m in self._catalog.get_available_models() if "analysis" in m.capabilities]
        for model in models:
            if model.tier == target:
                return (True, model)
        return (True, models[0] if models else None)

    def get_usage_records(self, session_id: str | None = None, limit: int = 50) -> list[UsageRecord]:
        """Most recent usage records, newest first."""
        with self._lock:
            return get_usage_records(self._conn, session_id, limit)
