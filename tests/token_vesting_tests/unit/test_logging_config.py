"""
Unit tests for logging setup.
"""

import io
import json
import logging

import pytest

from token_vesting.core.logging_config import get_logger, setup_logging


def test_json_logging_includes_context_fields():
    stream = io.StringIO()
    logger = setup_logging(name="token_vesting_test_json", level="DEBUG", json_format=True, stream=stream)

    logger.info("Plan compiled", extra={"event": "vesting.plan_compiled", "plan": "seed"})

    record = json.loads(stream.getvalue().strip())
    assert record["message"] == "Plan compiled"
    assert record["event"] == "vesting.plan_compiled"
    assert record["plan"] == "seed"
    assert record["service"] == "token_vesting_test_json"
    assert record["level"] == "info"
    assert record["timestamp"].endswith("Z")
    assert record["source"]["function"] == "test_json_logging_includes_context_fields"


def test_text_logging_and_level_filtering():
    stream = io.StringIO()
    logger = setup_logging(name="token_vesting_test_text", level="WARNING", stream=stream)

    logger.info("hidden")
    logger.warning("shown")

    output = stream.getvalue()
    assert "hidden" not in output
    assert "WARNING - shown" in output


def test_setup_logging_replaces_handlers():
    logger = setup_logging(name="token_vesting_test_handlers", stream=io.StringIO())
    setup_logging(name="token_vesting_test_handlers", stream=io.StringIO())
    assert len(logger.handlers) == 1


def test_rotating_file_handler(tmp_path):
    log_file = tmp_path / "logs" / "vesting.log"
    logger = setup_logging(
        name="token_vesting_test_file", level="INFO", enable_console=False, log_file=str(log_file)
    )
    logger.info("to file")
    for handler in logger.handlers:
        handler.flush()
    assert "to file" in log_file.read_text()
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def test_invalid_level_rejected():
    with pytest.raises(ValueError):
        setup_logging(name="token_vesting_test_invalid", level="LOUD")


def test_get_logger_configures_once():
    logger = get_logger("token_vesting_test_get")
    handler = logger.handlers[0]
    assert get_logger("token_vesting_test_get").handlers[0] is handler
    assert isinstance(logger, logging.Logger)
