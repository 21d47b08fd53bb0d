"""Tests for QuotaManager: caps, atomic tracking, window reset, cost report."""

import sqlite3
import threading
from datetime import datetime, timedelta, timezone

import pytest

from src.core.config import QuotaConfig
from src.core.db import init_db
from src.core.schemas import ModelDescriptor
from src.llm.catalog import ModelCatalog
from src.pipeline.quota_manager import QuotaManager, window_keys


class FakeClock:
    """Settable UTC clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def db(tmp_path: pytest.TempPathFactory) -> sqlite3.Connection:  # type: ignore[type-arg]
    return init_db(tmp_path / "test.db")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc))


def _catalog() -> ModelCatalog:
    return ModelCatalog([
        ModelDescriptor(id="premium", provider="p", input_cost_per_mtok=10, output_cost_per_mtok=10,
                        tier="premium"),
        ModelDescriptor(id="balanced", provider="p", input_cost_per_mtok=1, output_cost_per_mtok=1,
                        tier="balanced"),
        ModelDescriptor(id="budget", provider="p", input_cost_per_mtok=0.1, output_cost_per_mtok=0.1,
                        tier="budget"),
    ])


def _qm(db: sqlite3.Connection, clock: FakeClock, **kwargs: float) -> QuotaManager:
    config = QuotaConfig(
        daily_token_limit=int(kwargs.get("tokens", 1000)),
        monthly_budget_usd=kwargs.get("budget", 10.0),
    )
    return QuotaManager(db, config, _catalog(), clock=clock)


def _track(qm: QuotaManager, session: str = "s1", tokens: int = 100, cost: float = 0.01) -> None:
    qm.track_usage(session, "analyze_resume", "prompt", "reply", "budget", tokens, 120, cost)


# ---------------------------------------------------------------------------
# check_usage_quota
# ---------------------------------------------------------------------------


class TestCheckUsageQuota:
    def test_fresh_session(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        state = _qm(db, clock).check_usage_quota("s1")
        assert state.can_proceed is True
        assert state.daily_tokens_used == 0
        assert state.remaining_tokens == 1000
        assert state.remaining_budget == 10.0
        assert state.day == "2025-03-15"
        assert state.month == "2025-03"

    def test_tokens_exhausted(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock, tokens=100)
        _track(qm, tokens=100)
        state = qm.check_usage_quota("s1")
        assert state.remaining_tokens == 0
        assert state.can_proceed is False
        assert state.recommended_model is None

    def test_budget_exhausted(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock, budget=1.0)
        _track(qm, tokens=1, cost=1.0)
        assert qm.check_usage_quota("s1").can_proceed is False

    def test_read_only(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock)
        qm.check_usage_quota("s1")
        qm.check_usage_quota("s1")
        assert qm.get_usage_records("s1") == []

    def test_sessions_isolated(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock, tokens=100)
        _track(qm, session="a", tokens=100)
        assert qm.check_usage_quota("a").can_proceed is False
        assert qm.check_usage_quota("b").can_proceed is True


class TestRecommendedModel:
    def test_plenty_of_budget(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        state = _qm(db, clock, budget=10.0).check_usage_quota("s1")
        assert state.recommended_model is not None
        assert state.recommended_model.id == "premium"

    def test_medium_budget(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock, budget=10.0)
        _track(qm, tokens=1, cost=9.0)  # 10% left
        assert qm.check_usage_quota("s1").recommended_model.id == "balanced"  # type: ignore[union-attr]

    def test_low_budget(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock, budget=10.0)
        _track(qm, tokens=1, cost=9.8)  # 2% left
        assert qm.check_usage_quota("s1").recommended_model.id == "budget"  # type: ignore[union-attr]

    def test_nearly_empty_budget(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock, budget=10.0)
        _track(qm, tokens=1, cost=9.95)  # 0.5% left
        state = qm.check_usage_quota("s1")
        assert state.can_proceed is True
        assert state.recommended_model is None


# ---------------------------------------------------------------------------
# track_usage
# ---------------------------------------------------------------------------


class TestTrackUsage:
    def test_monotonic(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock)
        previous = 0
        for _ in range(5):
            _track(qm, tokens=10)
            used = qm.check_usage_quota("s1").daily_tokens_used
            assert used == previous + 10
            previous = used

    def test_stores_lengths_only(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock)
        record = qm.track_usage("s1", "analyze_resume", "abcd", "xy", "budget", 5, 10, 0.0)
        assert record.input_length == 4
        assert record.output_length == 2
        assert record.timestamp == clock.now

    @pytest.mark.parametrize(
        ("tokens", "cost", "elapsed"),
        [(-1, 0.0, 0), (0, -0.01, 0), (0, 0.0, -5)],
    )
    def test_negative_amounts_rejected(
        self, db: sqlite3.Connection, clock: FakeClock, tokens: int, cost: float, elapsed: int,
    ) -> None:
        qm = _qm(db, clock)
        with pytest.raises(ValueError, match="non-negative"):
            qm.track_usage("s1", "analyze_resume", "", "", "budget", tokens, elapsed, cost)
        assert qm.get_usage_records() == []

    def test_over_allocation_logged(
        self, db: sqlite3.Connection, clock: FakeClock, caplog: pytest.LogCaptureFixture,
    ) -> None:
        qm = _qm(db, clock, tokens=100)
        with caplog.at_level("WARNING"):
            _track(qm, tokens=150)
        assert "over quota" in caplog.text
        assert qm.check_usage_quota("s1").daily_tokens_used == 150

    def test_concurrent_tracking_is_atomic(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock, tokens=1_000_000)
        barrier = threading.Barrier(2)

        def worker() -> None:
            barrier.wait()
            _track(qm, tokens=100)

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert qm.check_usage_quota("s1").daily_tokens_used == 200

    def test_many_concurrent_writers(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock, tokens=1_000_000, budget=1000.0)
        threads = [
            threading.Thread(target=lambda: [_track(qm, tokens=1, cost=0.5) for _ in range(20)])
            for _ in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        state = qm.check_usage_quota("s1")
        assert state.daily_tokens_used == 160
        assert state.monthly_spent == pytest.approx(80.0)
        assert len(qm.get_usage_records("s1", limit=500)) == 160


# ---------------------------------------------------------------------------
# Window reset (UTC day / month keys)
# ---------------------------------------------------------------------------


class TestWindowReset:
    def test_window_keys(self) -> None:
        assert window_keys(datetime(2025, 1, 2, 3, 4, tzinfo=timezone.utc)) == ("2025-01-02", "2025-01")

    def test_daily_tokens_reset_next_day(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock, tokens=100)
        _track(qm, tokens=100, cost=0.5)
        assert qm.check_usage_quota("s1").can_proceed is False

        clock.now += timedelta(days=1)
        state = qm.check_usage_quota("s1")
        assert state.daily_tokens_used == 0
        assert state.can_proceed is True
        # spend carries over within the month
        assert state.monthly_spent == pytest.approx(0.5)

    def test_monthly_spend_resets_next_month(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock, budget=1.0)
        _track(qm, tokens=1, cost=1.0)
        assert qm.check_usage_quota("s1").can_proceed is False

        clock.now = datetime(2025, 4, 1, 0, 0, tzinfo=timezone.utc)
        state = qm.check_usage_quota("s1")
        assert state.monthly_spent == 0.0
        assert state.can_proceed is True


# ---------------------------------------------------------------------------
# Cost report / downgrade
# ---------------------------------------------------------------------------


class TestCostReport:
    def test_arithmetic(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        # 2025-03-15: day 15 of a 31-day month
        qm = _qm(db, clock, budget=10.0)
        qm.track_usage("s1", "analyze_resume", "", "", "premium", 100, 10, 1.5)
        qm.track_usage("s2", "analyze_resume", "", "", "budget", 50, 10, 0.5)
        qm.track_usage("s2", "analyze_resume", "", "", "budget", 50, 10, 0.5)

        report = qm.generate_cost_report()
        assert report.daily_tokens == 200
        assert report.monthly_spent == pytest.approx(2.5)
        assert report.budget_utilization == pytest.approx(25.0)
        assert report.projected_monthly_spend == pytest.approx(2.5 / 15 * 31)
        assert [m.model for m in report.model_breakdown] == ["premium", "budget"]
        assert report.model_breakdown[1].calls == 2

    def test_per_session(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock)
        qm.track_usage("s1", "analyze_resume", "", "", "premium", 100, 10, 1.0)
        qm.track_usage("s2", "analyze_resume", "", "", "budget", 50, 10, 0.5)
        report = qm.generate_cost_report("s2")
        assert report.daily_tokens == 50
        assert [m.model for m in report.model_breakdown] == ["budget"]

    def test_top_models_keeps_five_most_expensive(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock, budget=100.0)
        for i in range(1, 7):
            qm.track_usage("s", "analyze_resume", "", "", f"model-{i}", 10, 10, i / 100)

        report = qm.generate_cost_report("s")

        assert len(report.model_breakdown) == 6
        assert [m.model for m in report.top_models] == [f"model-{i}" for i in range(6, 1, -1)]
        # $0.21 of $100
        assert report.budget_utilization == pytest.approx(0.21)

    def test_excludes_previous_month(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock)
        _track(qm, cost=1.0)
        clock.now = datetime(2025, 4, 2, tzinfo=timezone.utc)
        report = qm.generate_cost_report()
        assert report.monthly_spent == 0.0
        assert report.model_breakdown == []


class TestShouldDowngrade:
    def test_no_downgrade_with_budget(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        assert _qm(db, clock).should_downgrade_model("s1") == (False, None)

    def test_downgrade_to_balanced(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock, budget=10.0)
        _track(qm, tokens=1, cost=9.5)  # 5% left
        downgrade, model = qm.should_downgrade_model("s1")
        assert downgrade is True
        assert model is not None and model.id == "balanced"

    def test_downgrade_to_budget(self, db: sqlite3.Connection, clock: FakeClock) -> None:
        qm = _qm(db, clock, budget=10.0)
        _track(qm, tokens=1, cost=9.9)  # 1% left
        downgrade, model = qm.should_downgrade_model("s1")
        assert downgrade is True
        assert model is not None and model.id == "budget"
