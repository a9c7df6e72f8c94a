"""Application error types, exit codes and user-facing error formatting."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import IntEnum
from typing import Any, Iterator


class ErrorCode(IntEnum):
    """Category of an application error; the hundreds digit picks the exit code."""

    # User errors (exit code 1)
    NO_STAGED_CHANGES = 100
    INVALID_CONFIG = 101
    MISSING_API_KEY = 102
    INVALID_ARGUMENTS = 103

    # System errors (exit code 2)
    GIT_COMMAND_FAILED = 204
    FILE_SYSTEM_ERROR = 205
    CONFIG_CORRUPTION = 206

    # External errors (exit code 3)
    AI_PROVIDER_FAILED = 307
    NETWORK_ERROR = 308
    RATE_LIMITED = 309
    TIMEOUT = 310
    AUTHENTICATION_FAILED = 311

    def exit_code(self) -> int:
        """Return the process exit code for this category."""
        if 100 <= self < 200:
            return 1
        if 200 <= self < 300:
            return 2
        if self >= 300:
            return 3
        return 1

    def __str__(self) -> str:
        return _CODE_NAMES.get(self, "Unknown")


_CODE_NAMES = {
    ErrorCode.NO_STAGED_CHANGES: "NoStagedChanges",
    ErrorCode.INVALID_CONFIG: "InvalidConfig",
    ErrorCode.MISSING_API_KEY: "MissingAPIKey",
    ErrorCode.INVALID_ARGUMENTS: "InvalidArguments",
    ErrorCode.GIT_COMMAND_FAILED: "GitCommandFailed",
    ErrorCode.FILE_SYSTEM_ERROR: "FileSystemError",
    ErrorCode.CONFIG_CORRUPTION: "ConfigCorruption",
    ErrorCode.AI_PROVIDER_FAILED: "AIProviderFailed",
    ErrorCode.NETWORK_ERROR: "NetworkError",
    ErrorCode.RATE_LIMITED: "RateLimited",
    ErrorCode.TIMEOUT: "Timeout",
    ErrorCode.AUTHENTICATION_FAILED: "AuthenticationFailed",
}


def _format_seconds(seconds: float) -> str:
    return f"{seconds:g}s"


def _chain(err: BaseException | None) -> Iterator[BaseException]:
    """Yield an exception and every exception it was caused by."""
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = err.__cause__


def _find_retryable(err: BaseException | None) -> Any:
    for item in _chain(err):
        if callable(getattr(item, "is_retryable", None)) and callable(
            getattr(item, "get_retry_after", None)
        ):
            return item
    return None


class AppError(Exception):
    """An application error carrying a category, cause, context and advice."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        cause: BaseException | None = None,
        context: dict[str, Any] | None = None,
        suggestion: str = "",
        retry_after: float = 0.0,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.cause = cause
        self.context: dict[str, Any] = dict(context) if context else {}
        self.suggestion = suggestion
        self.retry_after = retry_after
        self.__cause__ = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message

    def is_retryable(self) -> bool:
        """Whether the operation that raised this error may be tried again."""
        if self.code in (ErrorCode.RATE_LIMITED, ErrorCode.NETWORK_ERROR, ErrorCode.TIMEOUT):
            return True
        if self.code == ErrorCode.AI_PROVIDER_FAILED and self.cause is not None:
            retryable = _find_retryable(self.cause)
            if retryable is not None:
                return bool(retryable.is_retryable())
        return False

    def get_retry_after(self) -> float:
        """Seconds to wait before retrying, or 0 if unspecified."""
        return self.retry_after if self.retry_after > 0 else 0.0

    def with_context(self, key: str, value: Any) -> AppError:
        """Attach a context value and return self."""
        self.context[key] = value
        return self

    def with_suggestion(self, suggestion: str) -> AppError:
        """Set the suggestion and return self."""
        self.suggestion = suggestion
        return self


def wrap(err: BaseException | None, code: ErrorCode, message: str) -> AppError:
    """Wrap an exception in an AppError of the given category."""
    return AppError(code, message, cause=err)


def wrap_with_context(err: BaseException | None, context: str) -> Exception | None:
    """Prefix an exception's message with context, keeping it as the cause."""
    if err is None:
        return None
    wrapped = Exception(f"{context}: {err}")
    wrapped.__cause__ = err
    return wrapped


def get_app_error(err: BaseException | None) -> AppError | None:
    """Return the first AppError in the cause chain, if any."""
    for item in _chain(err):
        if isinstance(item, AppError):
            return item
    return None


def is_app_error(err: BaseException | None) -> bool:
    """Whether an AppError appears in the cause chain."""
    return get_app_error(err) is not None


def get_exit_code(err: BaseException | None) -> int:
    """Exit code for an error; 1 when it is not an AppError."""
    app_err = get_app_error(err)
    if app_err is not None:
        return app_err.code.exit_code()
    return 1


def is_retryable(err: BaseException | None) -> bool:
    """Whether the error (or one of its causes) is retryable."""
    retryable = _find_retryable(err)
    return bool(retryable.is_retryable()) if retryable is not None else False


def get_retry_after(err: BaseException | None) -> float:
    """Seconds to wait before retrying, taken from the cause chain."""
    retryable = _find_retryable(err)
    return float(retryable.get_retry_after()) if retryable is not None else 0.0


def no_staged_changes_error() -> AppError:
    return AppError(
        ErrorCode.NO_STAGED_CHANGES,
        "no staged changes found",
        suggestion="Use 'git add <files>' to stage changes before generating a commit message",
    )


def missing_api_key_error(provider: str) -> AppError:
    return AppError(
        ErrorCode.MISSING_API_KEY,
        f"API key is required for {provider} provider",
        suggestion=(
            "Set your API key using 'gitsage config set provider.api_key <your-key>' "
            "or set the GITSAGE_API_KEY environment variable"
        ),
    )


def invalid_config_error(message: str) -> AppError:
    return AppError(
        ErrorCode.INVALID_CONFIG,
        message,
        suggestion="Run 'gitsage config init' to create a valid configuration file",
    )


def git_error(err: BaseException | None, output: str = "") -> AppError:
    context = {"output": output} if output else None
    return AppError(ErrorCode.GIT_COMMAND_FAILED, "git command failed", cause=err, context=context)


def network_error(err: BaseException | None) -> AppError:
    return AppError(
        ErrorCode.NETWORK_ERROR,
        "network error occurred",
        cause=err,
        suggestion="Please check your network connection and try again",
    )


def rate_limit_error(retry_after: float) -> AppError:
    suggestion = "Please wait and try again later"
    if retry_after > 0:
        suggestion = f"Please wait {_format_seconds(retry_after)} and try again"
    return AppError(
        ErrorCode.RATE_LIMITED,
        "rate limit exceeded",
        retry_after=retry_after,
        suggestion=suggestion,
    )


def timeout_error(err: BaseException | None) -> AppError:
    return AppError(
        ErrorCode.TIMEOUT,
        "request timed out",
        cause=err,
        suggestion="Please check your network connection or try again later",
    )


def authentication_error(provider: str) -> AppError:
    return AppError(
        ErrorCode.AUTHENTICATION_FAILED,
        f"authentication failed with {provider}",
        suggestion="Please check your API key is valid and has not expired",
    )


def ai_provider_error(provider: str, err: BaseException | None) -> AppError:
    return AppError(
        ErrorCode.AI_PROVIDER_FAILED,
        f"{provider} provider error",
        cause=err,
        suggestion="Please check your API key and network connectivity",
    )


_INTEGER = re.compile(r"[+-]?\d+")


def parse_retry_after_header(header: str) -> float:
    """Parse a Retry-After value (seconds or HTTP date) into seconds."""
    if not header:
        return 0.0
    if _INTEGER.fullmatch(header):
        return float(int(header))
    try:
        when = parsedate_to_datetime(header)
    except (TypeError, ValueError, IndexError):
        return 0.0
    if when is None:
        return 0.0
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    remaining = (when - datetime.now(timezone.utc)).total_seconds()
    return remaining if remaining > 0 else 0.0


_SENSITIVE_PATTERN = re.compile("sk-" + r"[a-zA-Z0-9]{20,}")


def _mask(match: re.Match[str]) -> str:
    text = match.group(0)
    if len(text) <= 4:
        return "****"
    return "*" * (len(text) - 4) + text[-4:]


def sanitize_error_message(msg: str) -> str:
    """Mask anything that looks like an API key, keeping its last 4 characters."""
    return _SENSITIVE_PATTERN.sub(_mask, msg)


def format_error(err: BaseException | None) -> str:
    """Format an error for display to the user."""
    if err is None:
        return ""
    app_err = get_app_error(err)
    if app_err is None:
        return "Error: " + sanitize_error_message(str(err))
    parts = ["Error: " + sanitize_error_message(app_err.message)]
    if app_err.cause is not None:
        parts.append("\n  Cause: " + sanitize_error_message(str(app_err.cause)))
    if app_err.suggestion:
        parts.append("\n  Suggestion: " + app_err.suggestion)
    return "".join(parts)


def _error_chain_lines(err: BaseException | None, indent: int) -> list[str]:
    return [
        f"{'  ' * (indent + depth)}- {type(item).__name__}: {sanitize_error_message(str(item))}\n"
        for depth, item in enumerate(_chain(err))
    ]


def format_error_verbose(err: BaseException | None) -> str:
    """Format an error with its full cause chain and context."""
    if err is None:
        return ""
    app_err = get_app_error(err)
    lines: list[str] = []
    if app_err is None:
        lines.append(f"Error: {sanitize_error_message(str(err))}\n")
        lines.append("  Error chain:\n")
        lines.extend(_error_chain_lines(err, 2))
        return "".join(lines)

    lines.append(f"Error [{app_err.code}]: {sanitize_error_message(app_err.message)}\n")
    if app_err.cause is not None:
        lines.append(f"  Cause: {sanitize_error_message(str(app_err.cause))}\n")
        lines.append("  Error chain:\n")
        lines.extend(_error_chain_lines(app_err.cause, 2))
    if app_err.context:
        lines.append("  Context:\n")
        for key, value in app_err.context.items():
            lines.append(f"    {key}: {sanitize_error_message(str(value))}\n")
    if app_err.suggestion:
        lines.append(f"  Suggestion: {app_err.suggestion}\n")
    if app_err.retry_after > 0:
        lines.append(f"  Retry after: {_format_seconds(app_err.retry_after)}\n")
    return "".join(lines)