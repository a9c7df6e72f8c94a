"""Retry with exponential backoff for retryable application errors."""

from __future__ import annotations

import random
import threading
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from gitsage.apperrors import get_retry_after, is_retryable

T = TypeVar("T")

RetryCallback = Callable[[int, BaseException, float], None]


@dataclass
class RetryConfig:
    """Retry settings; delays are in seconds."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    multiplier: float = 2.0
    jitter: bool = True


class RetryCancelled(Exception):
    """Raised when a retry wait is interrupted by cancellation."""

    def __init__(self, message: str = "retry cancelled") -> None:
        super().__init__(message)


def calculate_retry_delay(config: RetryConfig, attempt: int, err: Optional[BaseException]) -> float:
    """Seconds to wait after the given zero-based attempt failed with err."""
    retry_after = get_retry_after(err) if err is not None else 0.0
    if retry_after > 0:
        return retry_after

    delay = config.initial_delay * config.multiplier ** max(int(attempt), 0)
    delay = min(delay, config.max_delay)

    if config.jitter:
        delay += delay * 0.25 * random.uniform(-1.0, 1.0)
    return delay


def retry(
    fn: Callable[[], T],
    config: Optional[RetryConfig] = None,
    notify: Optional[RetryCallback] = None,
    cancel: Optional[threading.Event] = None,
) -> Optional[T]:
    """Call fn until it succeeds, retrying retryable errors.

    Non-retryable errors and the error of the last attempt are re-raised.
    ``notify(attempt, error, delay)`` is called before each wait, and setting
    ``cancel`` during a wait raises RetryCancelled.
    """
    config = config or RetryConfig()
    for attempt in range(config.max_attempts):
        try:
            return fn()
        except Exception as exc:
            if not is_retryable(exc) or attempt == config.max_attempts - 1:
                raise
            delay = calculate_retry_delay(config, attempt, exc)
            if notify is not None:
                notify(attempt + 1, exc, delay)
            if cancel is not None:
                if cancel.wait(delay):
                    raise RetryCancelled() from exc
            else:
                threading.Event().wait(delay)
    return None