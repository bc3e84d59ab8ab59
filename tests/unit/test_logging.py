"""Tests for logging configuration."""
import json
import logging
import sys

from src.utils.logging import JsonFormatter, pair_context


def _record(**extra):
    record = logging.LogRecord("src.proxy", logging.INFO, __file__, 10, "served %s", ("prediction",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_promotes_context():
    """Test resource/pair context becomes top-level JSON keys."""
    output = json.loads(JsonFormatter().format(_record(**pair_context("prediction", "USD", "EUR", outcome="empty"))))

    assert output["message"] == "served prediction"
    assert output["level"] == "INFO"
    assert output["resource"] == "prediction"
    assert output["pair"] == "USD/EUR"
    assert output["outcome"] == "empty"
    assert "status_code" not in output


def test_json_formatter_includes_exception():
    """Test exception text is included."""
    try:
        raise ValueError("bad payload")
    except ValueError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

    output = json.loads(JsonFormatter().format(record))
    assert "ValueError: bad payload" in output["exception"]
