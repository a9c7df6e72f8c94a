"""Circuit breaker that stops calling a failing service for a while."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, TypeVar

from gitsage.apperrors import AppError, ErrorCode

T = TypeVar("T")

_SUGGESTION = "Please wait a moment and try again"


class CircuitState(Enum):
    """State of a circuit breaker."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """Circuit breaker settings; the reset timeout is in seconds."""

    failure_threshold: int = 5
    reset_timeout: float = 60.0
    half_open_max_requests: int = 1


class CircuitOpenError(Exception):
    """Cause attached to errors raised while the circuit rejects requests."""

    def __init__(self, message: str = "circuit breaker is open") -> None:
        super().__init__(message)


class CircuitBreaker:
    """Counts consecutive failures and rejects calls once a threshold is hit."""

    def __init__(self, config: CircuitBreakerConfig | None = None) -> None:
        self._config = config or CircuitBreakerConfig()
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._last_failure = 0.0
        self._half_open_requests = 0

    def execute(self, fn: Callable[[], T]) -> T:
        """Call fn through the breaker, re-raising whatever it raises.

        Raises AppError (caused by CircuitOpenError) when the circuit rejects the call.
        """
        self._before_request()
        try:
            result = fn()
        except BaseException:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _before_request(self) -> None:
        with self._lock:
            if self._state is CircuitState.OPEN:
                if time.monotonic() - self._last_failure >= self._config.reset_timeout:
                    self._state = CircuitState.HALF_OPEN
                    self._half_open_requests = 0
                    return
                raise AppError(
                    ErrorCode.AI_PROVIDER_FAILED,
                    "service temporarily unavailable (circuit breaker open)",
                    cause=CircuitOpenError(),
                    suggestion=_SUGGESTION,
                )
            if self._state is CircuitState.HALF_OPEN:
                if self._half_open_requests >= self._config.half_open_max_requests:
                    raise AppError(
                        ErrorCode.AI_PROVIDER_FAILED,
                        "service temporarily unavailable (circuit breaker half-open)",
                        cause=CircuitOpenError(),
                        suggestion=_SUGGESTION,
                    )
                self._half_open_requests += 1

    def _on_success(self) -> None:
        with self._lock:
            if self._state is CircuitState.CLOSED:
                self._consecutive_failures = 0
            elif self._state is CircuitState.HALF_OPEN:
                self._state = CircuitState.CLOSED
                self._consecutive_failures = 0
                self._half_open_requests = 0

    def _on_failure(self) -> None:
        with self._lock:
            self._last_failure = time.monotonic()
            if self._state is CircuitState.CLOSED:
                self._consecutive_failures += 1
                if self._consecutive_failures >= self._config.failure_threshold:
                    self._state = CircuitState.OPEN
            elif self._state is CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                self._half_open_requests = 0

    @property
    def state(self) -> CircuitState:
        """Current state of the breaker."""
        with self._lock:
            return self._state

    @property
    def consecutive_failures(self) -> int:
        """Number of failures since the last success."""
        with self._lock:
            return self._consecutive_failures

    def reset(self) -> None:
        """Return the breaker to the closed state."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
            self._half_open_requests = 0