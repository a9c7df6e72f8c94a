import io

import pytest

from gitsage import logger
from gitsage.circuit_breaker import CircuitState
from gitsage.logger import Logger, mask_api_key


@pytest.fixture
def default_stream():
    stream = io.StringIO()
    logger.set_output(stream)
    yield stream
    logger.set_output(None)
    logger.set_verbose(False)


def test_level_names_in_output():
    stream = io.StringIO()
    log = Logger(stream, verbose=True)
    log.warn("careful")
    log.info("note")
    output = stream.getvalue()
    assert "WARN: careful\n" in output
    assert "INFO: note\n" in output


def test_error_line_format():
    stream = io.StringIO()
    Logger(stream).error("boom %d", 7)
    line = stream.getvalue()
    assert line[0] == "["
    assert line[3] == ":" and line[6] == ":"
    assert line[9:] == "] ERROR: boom 7\n"


def test_non_verbose_filters_lower_levels():
    stream = io.StringIO()
    log = Logger(stream, verbose=False)
    log.warn("w")
    log.info("i")
    log.debug("d")
    assert stream.getvalue() == ""


def test_verbose_writes_all_levels():
    stream = io.StringIO()
    log = Logger(stream, verbose=True)
    log.error("e")
    log.warn("w")
    log.info("i")
    log.debug("d")
    lines = stream.getvalue().splitlines()
    assert len(lines) == 4
    assert [line.split("] ", 1)[1].split(":")[0] for line in lines] == [
        "ERROR",
        "WARN",
        "INFO",
        "DEBUG",
    ]


def test_message_without_args_keeps_percent():
    stream = io.StringIO()
    Logger(stream).error("100% done")
    assert stream.getvalue().endswith("ERROR: 100% done\n")


def test_api_request_only_when_verbose():
    quiet = io.StringIO()
    Logger(quiet).log_api_request("openai", "/v1", "gpt-4o-mini", 12)
    assert quiet.getvalue() == ""

    loud = io.StringIO()
    Logger(loud, verbose=True).log_api_request("openai", "/v1", "gpt-4o-mini", 12)
    assert "API Request: provider=openai, endpoint=/v1, model=gpt-4o-mini, prompt_length=12" in loud.getvalue()


def test_circuit_breaker_log_uses_state_name():
    stream = io.StringIO()
    Logger(stream, verbose=True).log_circuit_breaker(CircuitState.HALF_OPEN, 3)
    assert "Circuit breaker state: half-open (consecutive failures: 3)" in stream.getvalue()


def test_retry_log_mentions_attempts_and_error():
    stream = io.StringIO()
    Logger(stream, verbose=True).log_retry(1, 3, ValueError("nope"), 2.0)
    output = stream.getvalue()
    assert "Retry attempt 1/3 after error: nope" in output
    assert output.count("\n") == 1


def test_default_logger_verbose_toggle(default_stream):
    logger.set_verbose(False)
    assert logger.is_verbose() is False
    logger.debug("hidden")
    assert default_stream.getvalue() == ""

    logger.set_verbose(True)
    assert logger.is_verbose() is True
    logger.debug("shown %s", "here")
    assert "DEBUG: shown here" in default_stream.getvalue()


def test_default_logger_error_always_written(default_stream):
    logger.error("failure")
    assert "ERROR: failure" in default_stream.getvalue()


def test_mask_short_key():
    assert mask_api_key("abc") == "****"
    assert mask_api_key("abcd") == "****"


def test_mask_long_key_keeps_tail():
    key = "placeholder"
    masked = mask_api_key(key)
    assert len(masked) == len(key)
    assert masked.endswith(key[-4:])
    assert set(masked[:-4]) == {"*"}