from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import pytest

from gitsage.apperrors import (
    AppError,
    ErrorCode,
    ai_provider_error,
    authentication_error,
    format_error,
    format_error_verbose,
    get_app_error,
    get_exit_code,
    get_retry_after,
    git_error,
    invalid_config_error,
    is_app_error,
    is_retryable,
    missing_api_key_error,
    network_error,
    no_staged_changes_error,
    parse_retry_after_header,
    rate_limit_error,
    sanitize_error_message,
    timeout_error,
    wrap,
    wrap_with_context,
)


@pytest.mark.parametrize(
    "code, expected",
    [
        (ErrorCode.NO_STAGED_CHANGES, 1),
        (ErrorCode.INVALID_CONFIG, 1),
        (ErrorCode.MISSING_API_KEY, 1),
        (ErrorCode.GIT_COMMAND_FAILED, 2),
        (ErrorCode.FILE_SYSTEM_ERROR, 2),
        (ErrorCode.AI_PROVIDER_FAILED, 3),
        (ErrorCode.NETWORK_ERROR, 3),
        (ErrorCode.RATE_LIMITED, 3),
    ],
)
def test_exit_code(code, expected):
    assert code.exit_code() == expected


def test_error_code_names_in_verbose_format():
    first = format_error_verbose(AppError(ErrorCode.NO_STAGED_CHANGES, "nothing"))
    assert first.startswith("Error [NoStagedChanges]: nothing\n")
    second = format_error_verbose(authentication_error("openai"))
    assert second.startswith("Error [AuthenticationFailed]: authentication failed with openai\n")


def test_str_without_cause():
    err = AppError(ErrorCode.NO_STAGED_CHANGES, "no staged changes")
    assert str(err) == "no staged changes"


def test_str_with_cause():
    err = AppError(ErrorCode.GIT_COMMAND_FAILED, "git command failed", cause=Exception("exit status 1"))
    assert str(err) == "git command failed: exit status 1"


@pytest.mark.parametrize(
    "code, expected",
    [
        (ErrorCode.RATE_LIMITED, True),
        (ErrorCode.NETWORK_ERROR, True),
        (ErrorCode.TIMEOUT, True),
        (ErrorCode.NO_STAGED_CHANGES, False),
        (ErrorCode.INVALID_CONFIG, False),
    ],
)
def test_is_retryable_by_code(code, expected):
    assert AppError(code, "").is_retryable() is expected


def test_ai_provider_error_retryable_follows_cause():
    assert ai_provider_error("openai", network_error(Exception("down"))).is_retryable() is True
    assert ai_provider_error("openai", Exception("bad")).is_retryable() is False
    assert ai_provider_error("openai", None).is_retryable() is False


def test_with_context():
    err = AppError(ErrorCode.GIT_COMMAND_FAILED, "git failed")
    result = err.with_context("command", "git commit").with_context("exit_code", 1)
    assert result is err
    assert err.context == {"command": "git commit", "exit_code": 1}


def test_with_suggestion():
    err = AppError(ErrorCode.NO_STAGED_CHANGES, "no staged changes")
    err.with_suggestion("Use 'git add' to stage changes")
    assert err.suggestion == "Use 'git add' to stage changes"


def test_wrap():
    cause = Exception("underlying error")
    wrapped = wrap(cause, ErrorCode.GIT_COMMAND_FAILED, "git command failed")
    assert wrapped.code == ErrorCode.GIT_COMMAND_FAILED
    assert wrapped.message == "git command failed"
    assert wrapped.cause is cause
    assert wrapped.__cause__ is cause


def test_wrap_with_context():
    assert wrap_with_context(None, "ctx") is None
    inner = network_error(Exception("reset"))
    outer = wrap_with_context(inner, "loading")
    assert str(outer) == "loading: network error occurred: reset"
    assert get_app_error(outer) is inner
    assert is_retryable(outer) is True


def test_is_app_error():
    assert is_app_error(AppError(ErrorCode.NO_STAGED_CHANGES, "no staged changes")) is True
    assert is_app_error(Exception("regular error")) is False


@pytest.mark.parametrize(
    "err, expected",
    [
        (AppError(ErrorCode.NO_STAGED_CHANGES, "no staged changes"), 1),
        (AppError(ErrorCode.GIT_COMMAND_FAILED, "git failed"), 2),
        (AppError(ErrorCode.NETWORK_ERROR, "network error"), 3),
        (Exception("regular error"), 1),
    ],
)
def test_get_exit_code(err, expected):
    assert get_exit_code(err) == expected


@pytest.mark.parametrize("header, expected", [("", 0), ("60", 60), ("invalid", 0)])
def test_parse_retry_after_header(header, expected):
    assert parse_retry_after_header(header) == expected


def test_parse_retry_after_http_date():
    future = datetime.now(timezone.utc) + timedelta(hours=2)
    seconds = parse_retry_after_header(format_datetime(future, usegmt=True))
    assert 7100 < seconds <= 7200
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    assert parse_retry_after_header(format_datetime(past, usegmt=True)) == 0


def test_no_staged_changes_error():
    err = no_staged_changes_error()
    assert err.code == ErrorCode.NO_STAGED_CHANGES
    assert "git add" in err.suggestion


def test_missing_api_key_error():
    err = missing_api_key_error("openai")
    assert err.code == ErrorCode.MISSING_API_KEY
    assert err.message == "API key is required for openai provider"
    assert "provider.api_key" in err.suggestion


def test_rate_limit_error():
    err = rate_limit_error(30)
    assert err.code == ErrorCode.RATE_LIMITED
    assert err.retry_after == 30
    assert err.is_retryable() is True
    assert err.suggestion == "Please wait 30s and try again"
    assert get_retry_after(err) == 30


def test_rate_limit_error_without_delay():
    err = rate_limit_error(0)
    assert err.suggestion == "Please wait and try again later"
    assert err.get_retry_after() == 0


def test_other_constructors():
    assert invalid_config_error("bad").code == ErrorCode.INVALID_CONFIG
    assert timeout_error(None).code == ErrorCode.TIMEOUT
    assert authentication_error("openai").message == "authentication failed with openai"
    assert git_error(Exception("x"), "fatal").context == {"output": "fatal"}
    assert git_error(Exception("x"), "").context == {}


def test_format_error_none():
    assert format_error(None) == ""


def test_format_error_app_error_with_suggestion():
    err = AppError(ErrorCode.NO_STAGED_CHANGES, "no staged changes", suggestion="Use git add")
    result = format_error(err)
    assert result == "Error: no staged changes\n  Suggestion: Use git add"


def test_format_error_regular():
    assert format_error(Exception("regular error")) == "Error: regular error"


def test_format_error_with_cause():
    err = network_error(Exception("connection refused"))
    assert format_error(err) == (
        "Error: network error occurred\n"
        "  Cause: connection refused\n"
        "  Suggestion: Please check your network connection and try again"
    )


def test_sanitize_error_message():
    text = "bad key sk-" + "placeholder" * 2 + " used"
    masked = sanitize_error_message(text)
    assert masked == "bad key " + "*" * 21 + "lder used"
    assert sanitize_error_message("sk-short") == "sk-short"


def test_format_error_verbose():
    err = rate_limit_error(5).with_context("provider", "openai")
    result = format_error_verbose(err)
    assert result.startswith("Error [RateLimited]: rate limit exceeded\n")
    assert "  Context:\n    provider: openai\n" in result
    assert "  Retry after: 5s\n" in result


def test_format_error_verbose_chain():
    err = ai_provider_error("openai", ValueError("boom"))
    result = format_error_verbose(err)
    assert "  Cause: boom\n" in result
    assert "    - ValueError: boom\n" in result
    plain = format_error_verbose(Exception("plain"))
    assert plain == "Error: plain\n  Error chain:\n    - Exception: plain\n"
    assert format_error_verbose(None) == ""