"""Tests for RateLimiter."""
from __future__ import annotations

import threading
from datetime import date, datetime, timedelta

import pytest

from automator_gatekeeper.limits.rate_limiter import DEFAULT_LIMIT, DEFAULT_LIMITS, RateLimiter


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 14, 9, 30))


@pytest.fixture()
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(clock=clock)


# ---------------------------------------------------------------------------
# Ceilings
# ---------------------------------------------------------------------------


class TestCeilings:
    def test_builtin_limits(self, limiter: RateLimiter) -> None:
        assert limiter.limit_for("send_email") == 10
        assert limiter.limit_for("file_operation") == 100
        assert limiter.limit_for("run_application") == 50
        assert limiter.limit_for("execute_script") == 30

    def test_unknown_kind_gets_default(self, limiter: RateLimiter) -> None:
        assert limiter.limit_for("take_screenshot") == DEFAULT_LIMIT == 50

    def test_custom_limits_replace_table(self) -> None:
        limiter = RateLimiter(limits={"send_email": 2}, default_limit=5)
        assert limiter.limit_for("send_email") == 2
        assert limiter.limit_for("file_operation") == 5

    def test_limits_property_is_copy(self, limiter: RateLimiter) -> None:
        limits = limiter.limits
        limits["send_email"] = 999
        assert limiter.limit_for("send_email") == DEFAULT_LIMITS["send_email"]


# ---------------------------------------------------------------------------
# try_consume
# ---------------------------------------------------------------------------


class TestTryConsume:
    def test_consumes_up_to_ceiling(self, limiter: RateLimiter) -> None:
        results = [limiter.try_consume("send_email") for _ in range(10)]
        assert all(results)
        assert limiter.usage("send_email") == 10

    def test_rejects_after_ceiling_without_counting(self, limiter: RateLimiter) -> None:
        for _ in range(10):
            limiter.try_consume("send_email")
        assert limiter.try_consume("send_email") is False
        assert limiter.try_consume("send_email") is False
        assert limiter.usage("send_email") == 10

    def test_kinds_are_independent(self, limiter: RateLimiter) -> None:
        for _ in range(10):
            limiter.try_consume("send_email")
        assert limiter.try_consume("file_operation") is True
        assert limiter.usage("file_operation") == 1

    def test_tighter_ceiling_argument(self, limiter: RateLimiter) -> None:
        assert limiter.try_consume("send_email", ceiling=1) is True
        assert limiter.try_consume("send_email", ceiling=1) is False

    def test_looser_ceiling_argument_is_ignored(self) -> None:
        limiter = RateLimiter(limits={"send_email": 1})
        assert limiter.try_consume("send_email", ceiling=100) is True
        assert limiter.try_consume("send_email", ceiling=100) is False

    def test_zero_ceiling_blocks_everything(self) -> None:
        limiter = RateLimiter(limits={"execute_script": 0})
        assert limiter.try_consume("execute_script") is False


# ---------------------------------------------------------------------------
# Day boundary
# ---------------------------------------------------------------------------


class TestDayBoundary:
    def test_new_day_resets_quota(self, limiter: RateLimiter, clock: FakeClock) -> None:
        for _ in range(10):
            limiter.try_consume("send_email")
        assert limiter.try_consume("send_email") is False

        clock.advance(days=1)
        assert limiter.try_consume("send_email") is True
        assert limiter.usage("send_email") == 1

    def test_previous_day_counter_kept(self, limiter: RateLimiter, clock: FakeClock) -> None:
        limiter.try_consume("send_email")
        clock.advance(days=1)
        assert limiter.usage("send_email", day=date(2026, 3, 14)) == 1

    def test_midnight_uses_day_at_call_time(self, clock: FakeClock) -> None:
        clock.now = datetime(2026, 3, 14, 23, 59, 59)
        limiter = RateLimiter(limits={"send_email": 1}, clock=clock)
        assert limiter.try_consume("send_email") is True
        clock.now = datetime(2026, 3, 15, 0, 0, 0)
        assert limiter.try_consume("send_email") is True

    def test_remaining(self, limiter: RateLimiter) -> None:
        for _ in range(3):
            limiter.try_consume("execute_script")
        assert limiter.remaining("execute_script") == 27

    def test_remaining_with_tighter_ceiling(self, limiter: RateLimiter) -> None:
        limiter.try_consume("send_email", ceiling=3)
        assert limiter.remaining("send_email") == 9
        assert limiter.remaining("send_email", ceiling=3) == 2
        assert limiter.remaining("send_email", ceiling=50) == 9


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    def test_parallel_consumers_never_exceed_ceiling(self) -> None:
        limiter = RateLimiter(limits={"file_operation": 100})
        accepted: list[bool] = []
        lock = threading.Lock()

        def worker() -> None:
            for _ in range(50):
                ok = limiter.try_consume("file_operation")
                with lock:
                    accepted.append(ok)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(accepted) == 100
        assert limiter.usage("file_operation") == 100
