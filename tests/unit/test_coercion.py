"""Tests for numeric coercion of upstream fields."""
import math
from decimal import Decimal

import pytest

from src.analytics.coercion import (
    CONFIDENCE_DEFAULT,
    coerce_fields,
    coerce_int,
    coerce_number,
    coerce_number_map,
    coerce_optional_number,
    coerce_text,
    ensure_dict,
    ensure_list,
)


@pytest.mark.parametrize("raw, expected", [
    (82, 82.0),
    (82.5, 82.5),
    ("82", 82.0),
    (" 82.5 ", 82.5),
    (Decimal("1.25"), 1.25),
    ("-0.4", -0.4),
])
def test_direct_cast(raw, expected):
    assert coerce_number(raw) == expected


@pytest.mark.parametrize("raw, expected", [
    ("82%", 82.0),
    ("approx. 82.5", 82.5),
    ("confidence: -12 points", -12.0),
    ("1.5 to 2.5", 1.5),
])
def test_first_numeric_substring(raw, expected):
    assert coerce_number(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "n/a", [], {}, True, False, float("nan"), float("inf"), "inf"])
def test_falls_back_to_default(raw):
    assert coerce_number(raw, default=CONFIDENCE_DEFAULT) == CONFIDENCE_DEFAULT


@pytest.mark.parametrize("raw", [82, "82%", "abc", None, "  -3.5e", True, "1e400"])
def test_coercion_is_idempotent(raw):
    once = coerce_number(raw, default=70)
    assert coerce_number(once, default=70) == once
    assert math.isfinite(once)


def test_optional_number_keeps_absence():
    assert coerce_optional_number(None) is None
    assert coerce_optional_number("none") is None
    assert coerce_optional_number("0.0158") == 0.0158


def test_coerce_int_truncates():
    assert coerce_int("30 days") == 30
    assert coerce_int(29.9) == 29
    assert coerce_int("soon", default=90) == 90


def test_coerce_fields_fills_and_copies():
    attributes = {"confidence_score": "85%", "model_version": "arima"}
    result = coerce_fields(attributes, {"confidence_score": 70, "current_rate": 0})

    assert result == {"confidence_score": 85.0, "model_version": "arima", "current_rate": 0.0}
    assert attributes["confidence_score"] == "85%"


def test_container_helpers():
    assert ensure_list(None) == []
    assert ensure_list("abc") == []
    assert ensure_list((1, 2)) == [1, 2]
    assert ensure_dict([("a", 1)]) == {}
    assert ensure_dict({"a": 1}) == {"a": 1}
    assert coerce_number_map({"gdp": "0.4", "cpi": "x"}) == {"gdp": 0.4, "cpi": 0.0}
    assert coerce_number_map("oops") == {}
    assert coerce_text(None, "fallback") == "fallback"
    assert coerce_text(12) == "12"
