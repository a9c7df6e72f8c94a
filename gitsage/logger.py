"""Levelled logging with a verbose mode and API-key masking."""

from __future__ import annotations

import sys
import threading
from datetime import datetime
from enum import IntEnum
from typing import Any, TextIO


class LogLevel(IntEnum):
    """Logging level; higher values are more detailed."""

    ERROR = 0
    WARN = 1
    INFO = 2
    DEBUG = 3

    def __str__(self) -> str:
        return self.name


def _format_duration(seconds: float) -> str:
    return f"{seconds:g}s"


class Logger:
    """Writes timestamped messages at or below its level to a stream.

    With no stream given, messages go to the current ``sys.stderr``.
    """

    def __init__(self, output: TextIO | None = None, verbose: bool = False) -> None:
        self._lock = threading.Lock()
        self.output = output
        self.verbose = verbose
        self.level = LogLevel.DEBUG if verbose else LogLevel.ERROR

    def _log(self, level: LogLevel, fmt: str, args: tuple[Any, ...]) -> None:
        with self._lock:
            if level > self.level:
                return
            message = fmt % args if args else fmt
            timestamp = datetime.now().strftime("%H:%M:%S")
            stream = self.output if self.output is not None else sys.stderr
            stream.write(f"[{timestamp}] {level}: {message}\n")

    def error(self, fmt: str, *args: Any) -> None:
        self._log(LogLevel.ERROR, fmt, args)

    def warn(self, fmt: str, *args: Any) -> None:
        self._log(LogLevel.WARN, fmt, args)

    def info(self, fmt: str, *args: Any) -> None:
        self._log(LogLevel.INFO, fmt, args)

    def debug(self, fmt: str, *args: Any) -> None:
        self._log(LogLevel.DEBUG, fmt, args)

    def log_api_request(self, provider: str, endpoint: str, model: str, prompt_length: int) -> None:
        if not self.verbose:
            return
        self.debug(
            "API Request: provider=%s, endpoint=%s, model=%s, prompt_length=%d",
            provider,
            endpoint,
            model,
            prompt_length,
        )

    def log_api_response(
        self, provider: str, status_code: int, response_length: int, duration: float
    ) -> None:
        if not self.verbose:
            return
        self.debug(
            "API Response: provider=%s, status=%d, response_length=%d, duration=%s",
            provider,
            status_code,
            response_length,
            _format_duration(duration),
        )

    def log_retry(self, attempt: int, max_attempts: int, err: BaseException, delay: float) -> None:
        if not self.verbose:
            return
        self.debug(
            "Retry attempt %d/%d after error: %s (waiting %s)",
            attempt,
            max_attempts,
            err,
            _format_duration(delay),
        )

    def log_circuit_breaker(self, state: Any, failures: int) -> None:
        if not self.verbose:
            return
        self.debug("Circuit breaker state: %s (consecutive failures: %d)", state, failures)


_default_logger = Logger()


def set_verbose(verbose: bool) -> None:
    """Switch the default logger between debug and error-only output."""
    with _default_logger._lock:
        _default_logger.verbose = verbose
        _default_logger.level = LogLevel.DEBUG if verbose else LogLevel.ERROR


def is_verbose() -> bool:
    with _default_logger._lock:
        return _default_logger.verbose


def set_output(stream: TextIO | None) -> None:
    """Direct the default logger to a stream (None means sys.stderr)."""
    with _default_logger._lock:
        _default_logger.output = stream


def error(fmt: str, *args: Any) -> None:
    _default_logger.error(fmt, *args)


def warn(fmt: str, *args: Any) -> None:
    _default_logger.warn(fmt, *args)


def info(fmt: str, *args: Any) -> None:
    _default_logger.info(fmt, *args)


def debug(fmt: str, *args: Any) -> None:
    _default_logger.debug(fmt, *args)


def log_api_request(provider: str, endpoint: str, model: str, prompt_length: int) -> None:
    _default_logger.log_api_request(provider, endpoint, model, prompt_length)


def log_api_response(provider: str, status_code: int, response_length: int, duration: float) -> None:
    _default_logger.log_api_response(provider, status_code, response_length, duration)


def log_retry(attempt: int, max_attempts: int, err: BaseException, delay: float) -> None:
    _default_logger.log_retry(attempt, max_attempts, err, delay)


def log_circuit_breaker(state: Any, failures: int) -> None:
    _default_logger.log_circuit_breaker(state, failures)


def mask_api_key(api_key: str) -> str:
    """Mask an API key, keeping only its last 4 characters."""
    if len(api_key) <= 4:
        return "****"
    return "*" * (len(api_key) - 4) + api_key[-4:]