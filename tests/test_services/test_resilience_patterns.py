"""
Retry and circuit breaker tests.
"""

import asyncio

import pytest

from safetynews.services.resilience import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    RetryPolicy,
    retry_with_backoff,
)


class FakeClock:
    def __init__(self):
        self.t = 1000.0

    def __call__(self) -> float:
        return self.t


@pytest.mark.asyncio
class TestRetryWithBackoff:
    async def test_succeeds_after_transient_failures(self):
        attempts = {"n": 0}

        async def flaky():
            attempts["n"] += 1
            if attempts["n"] < 3:
                raise ConnectionError("nope")
            return "ok"

        result = await retry_with_backoff(flaky, RetryPolicy(max_retries=3, base_delay=0, jitter=0))
        assert result == "ok"
        assert attempts["n"] == 3

    async def test_exhausted_reraises_last_error(self):
        async def always_fails():
            raise ConnectionError("still down")

        with pytest.raises(ConnectionError, match="still down"):
            await retry_with_backoff(always_fails, RetryPolicy(max_retries=2, base_delay=0, jitter=0))

    async def test_non_retryable_propagates_immediately(self):
        attempts = {"n": 0}

        async def bad():
            attempts["n"] += 1
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            policy = RetryPolicy(max_retries=5, base_delay=0, jitter=0, retryable=(ConnectionError,))
            await retry_with_backoff(bad, policy)
        assert attempts["n"] == 1


@pytest.mark.asyncio
class TestCircuitBreaker:
    def setup_method(self):
        self.clock = FakeClock()
        self.breaker = CircuitBreaker("test", failure_threshold=2, recovery_timeout=30, clock=self.clock)

    async def _fail(self):
        raise ConnectionError("down")

    async def _ok(self):
        return "ok"

    async def test_opens_after_threshold(self):
        for _ in range(2):
            with pytest.raises(ConnectionError):
                await self.breaker.call(self._fail)
        assert self.breaker.state == CircuitState.OPEN
        with pytest.raises(CircuitOpenError):
            await self.breaker.call(self._ok)

    async def test_half_open_probe_closes_on_success(self):
        for _ in range(2):
            with pytest.raises(ConnectionError):
                await self.breaker.call(self._fail)
        self.clock.t += 31
        assert self.breaker.state == CircuitState.HALF_OPEN
        assert await self.breaker.call(self._ok) == "ok"
        assert self.breaker.state == CircuitState.CLOSED

    async def test_half_open_probe_failure_reopens(self):
        for _ in range(2):
            with pytest.raises(ConnectionError):
                await self.breaker.call(self._fail)
        self.clock.t += 31
        with pytest.raises(ConnectionError):
            await self.breaker.call(self._fail)
        assert self.breaker.state == CircuitState.OPEN

    async def test_failures_outside_window_are_forgotten(self):
        with pytest.raises(ConnectionError):
            await self.breaker.call(self._fail)
        self.clock.t += 120
        with pytest.raises(ConnectionError):
            await self.breaker.call(self._fail)
        assert self.breaker.state == CircuitState.CLOSED

    async def test_cancelled_probe_lets_next_call_probe(self):
        for _ in range(2):
            with pytest.raises(ConnectionError):
                await self.breaker.call(self._fail)
        self.clock.t += 31

        started = asyncio.Event()

        async def hang():
            started.set()
            await asyncio.sleep(3600)

        probe = asyncio.create_task(self.breaker.call(hang))
        await started.wait()
        probe.cancel()
        with pytest.raises(asyncio.CancelledError):
            await probe

        assert self.breaker.state == CircuitState.HALF_OPEN
        assert await self.breaker.call(self._ok) == "ok"
        assert self.breaker.state == CircuitState.CLOSED


class TestRetryPolicy:
    def test_backoff_doubles_and_caps(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=5.0, jitter=0)
        assert [policy.wait_before(n) for n in range(4)] == [1.0, 2.0, 4.0, 5.0]

    def test_allows_only_retryable_within_budget(self):
        policy = RetryPolicy(max_retries=1, retryable=(ConnectionError,))
        assert policy.allows(ConnectionError(), 0)
        assert not policy.allows(ConnectionError(), 1)
        assert not policy.allows(ValueError(), 0)


def test_describe_reports_state():
    breaker = CircuitBreaker("decision_service")
    assert breaker.describe() == {"name": "decision_service", "state": "closed", "recentFailures": 0}
