"""Checks for the JSONL logging setup."""
import asyncio
import json
import logging

from netScope.logging_config import (
    JSONLFormatter,
    get_logger,
    reset_request_id,
    sanitize_log_data,
    set_request_id,
    setup_logging,
)


def _read_lines(path):
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


def test_basic_logging(tmp_path):
    log_file = tmp_path / "basic.jsonl"
    logger = setup_logging("test_basic", log_level="DEBUG", log_file=str(log_file), enable_console=False)

    logger.info("This is an INFO message", extra={"target": "8.8.8.8", "outcome": "success"})

    line = _read_lines(log_file)[-1]
    assert line["level"] == "INFO"
    assert line["component"] == "test_basic"
    assert line["logger"] == "netscope.test_basic"
    assert line["message"] == "This is an INFO message"
    assert line["target"] == "8.8.8.8"
    assert line["outcome"] == "success"
    assert line["timestamp"].endswith("Z")


def test_request_id_from_context(tmp_path):
    log_file = tmp_path / "ctx.jsonl"
    logger = setup_logging("test_ctx", log_file=str(log_file), enable_console=False)

    async def lookup():
        await asyncio.sleep(0)
        logger.info("inside", extra={"record_type": "A"})

    async def handle():
        token = set_request_id("req-123")
        try:
            await asyncio.gather(lookup())
        finally:
            reset_request_id(token)
        logger.info("outside")

    asyncio.run(handle())

    inside, outside = _read_lines(log_file)[-2:]
    assert inside["request_id"] == "req-123"
    assert inside["record_type"] == "A"
    assert "request_id" not in outside


def test_error_logging_includes_exception(tmp_path):
    log_file = tmp_path / "err.jsonl"
    logger = setup_logging("test_err", log_file=str(log_file), enable_console=False)

    try:
        1 / 0
    except ZeroDivisionError as e:
        logger.error("Math error occurred", exc_info=True, extra={"error_type": type(e).__name__})

    line = _read_lines(log_file)[-1]
    assert line["exception"]["type"] == "ZeroDivisionError"
    assert line["error_type"] == "ZeroDivisionError"


def test_sensitive_data_redaction():
    sanitized = sanitize_log_data(
        {
            "abuseipdb_key": "k-123",
            "headers": {"Key": "k-123", "Accept": "application/json"},
            "target": "1.1.1.1",
        }
    )
    assert sanitized["abuseipdb_key"] == "***REDACTED***"
    assert sanitized["headers"]["Key"] == "***REDACTED***"
    assert sanitized["headers"]["Accept"] == "application/json"
    assert sanitized["target"] == "1.1.1.1"


def test_get_logger_with_context_adapter():
    adapter = get_logger("test_adapter", context={"service": "ip_api"})
    assert isinstance(adapter, logging.LoggerAdapter)
    msg, kwargs = adapter.process("hello", {"extra": {"target": "x"}})
    assert kwargs["extra"] == {"target": "x", "service": "ip_api"}


def test_formatter_without_extras():
    record = logging.LogRecord("netscope.x", logging.WARNING, __file__, 1, "plain %s", ("msg",), None)
    line = json.loads(JSONLFormatter(component="x").format(record))
    assert line["message"] == "plain msg"
    assert line["level"] == "WARNING"
