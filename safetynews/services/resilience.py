"""
Decision-service resilience: a retry policy and a circuit breaker.

Only the outbound decision-service HTTP call goes through here. Tool
executions are never retried; a failing tool is just an error entry.

    breaker.call(retry_with_backoff, send, policy)

The breaker sees one failure per exhausted retry sequence, not one per
attempt.
"""

import asyncio
import random
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, TypeVar

import structlog

from safetynews.exceptions import DecisionServiceUnavailable

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff with additive jitter.

    Wait before retry n (0-based): min(base_delay × 2^n, max_delay) + U(0, jitter)
    """

    max_retries: int = 2
    base_delay: float = 0.5
    max_delay: float = 8.0
    jitter: float = 0.25
    retryable: tuple[type[BaseException], ...] = (Exception,)

    def wait_before(self, attempt: int) -> float:
        backoff = min(self.base_delay * (2 ** attempt), self.max_delay)
        return backoff + (random.uniform(0, self.jitter) if self.jitter > 0 else 0.0)

    def allows(self, exc: BaseException, attempt: int) -> bool:
        return isinstance(exc, self.retryable) and attempt < self.max_retries


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy = RetryPolicy(),
    operation_name: str = "decision_service",
) -> T:
    """Await ``fn()`` until it succeeds or ``policy`` gives up; the last error propagates."""
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as exc:
            if not policy.allows(exc, attempt):
                if isinstance(exc, policy.retryable):
                    logger.error(
                        "retry_exhausted",
                        operation=operation_name,
                        attempts=attempt + 1,
                        error=str(exc),
                    )
                raise
            wait = policy.wait_before(attempt)
            logger.warning(
                "retry_scheduled",
                operation=operation_name,
                attempt=attempt + 1,
                max_retries=policy.max_retries,
                wait_seconds=round(wait, 2),
                error=str(exc),
            )
            await asyncio.sleep(wait)
            attempt += 1


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(DecisionServiceUnavailable):
    """The breaker rejected the call without contacting the decision service."""


class CircuitBreaker:
    """
    Stops calling a decision service that keeps failing.

    - closed: calls pass; ``failure_threshold`` failures inside
      ``window_seconds`` trip it open
    - open: calls are rejected for ``recovery_timeout`` seconds
    - half_open: a single probe; success closes, failure re-opens
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        window_seconds: float = 60.0,
        recovery_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.window_seconds = window_seconds
        self.recovery_timeout = recovery_timeout
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._recent_failures: deque[float] = deque()
        self._opened_at = 0.0
        self._probing = False

    @property
    def state(self) -> CircuitState:
        if (
            self._state is CircuitState.OPEN
            and self._clock() - self._opened_at >= self.recovery_timeout
        ):
            self._state = CircuitState.HALF_OPEN
            logger.info("circuit_half_open", breaker=self.name)
        return self._state

    def describe(self) -> dict:
        """Current state for health reporting."""
        return {
            "name": self.name,
            "state": self.state.value,
            "recentFailures": len(self._recent_failures),
        }

    def _admit(self) -> None:
        state = self.state
        if state is CircuitState.OPEN:
            logger.warning("circuit_open_rejected", breaker=self.name)
            raise CircuitOpenError(f"Decision service circuit '{self.name}' is open")
        if state is CircuitState.HALF_OPEN:
            if self._probing:
                raise CircuitOpenError(f"Decision service circuit '{self.name}' is probing")
            self._probing = True

    async def call(self, fn: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        self._admit()
        try:
            result = await fn(*args, **kwargs)
        except Exception:
            self._record_failure()
            raise
        except BaseException:
            # a cancelled probe proves nothing; let the next call probe again
            self._probing = False
            raise
        self._record_success()
        return result

    def _trip(self, now: float) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = now

    def _record_success(self) -> None:
        if self._state is not CircuitState.CLOSED:
            logger.info("circuit_closed", breaker=self.name)
        self.reset()

    def _record_failure(self) -> None:
        now = self._clock()
        was_probing = self._probing
        self._probing = False

        if was_probing or self._state is CircuitState.HALF_OPEN:
            self._trip(now)
            logger.warning("circuit_reopened", breaker=self.name)
            return

        while self._recent_failures and self._recent_failures[0] <= now - self.window_seconds:
            self._recent_failures.popleft()
        self._recent_failures.append(now)

        if len(self._recent_failures) >= self.failure_threshold:
            self._trip(now)
            logger.warning(
                "circuit_opened",
                breaker=self.name,
                failures=len(self._recent_failures),
                threshold=self.failure_threshold,
            )

    def reset(self) -> None:
        self._state = CircuitState.CLOSED
        self._recent_failures.clear()
        self._probing = False


decision_breaker = CircuitBreaker(name="decision_service", failure_threshold=3, recovery_timeout=60.0)
