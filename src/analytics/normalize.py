"""Mapping of untrusted upstream attributes onto typed records.

Two families of functions live here:

* ``sanitize_*`` return wire dicts with drift-prone numeric fields coerced and
  list fields guaranteed; the proxy routes use them before passing a payload on.
* ``to_*`` build the typed records handed to dashboard code; the client
  layer uses them and applies the same coercion again on its own.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

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
from src.analytics.envelope import AdageEvent, parse_timestamp
from src.analytics.fallback import CORRELATION_GROUPS
from src.analytics.models import (
    VOLATILITY_LEVELS,
    VOLATILITY_TRENDS,
    AnomalyDetectionResult,
    AnomalyPoint,
    CorrelationAnalysis,
    CorrelationFactor,
    HistoricalDataPoint,
    InfluencingFactor,
    NewsArticle,
    Prediction,
    PredictionValue,
    VolatilityAnalysis,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

PREDICTION_NUMERIC_DEFAULTS = {
    "current_rate": 0.0,
    "change_percent": 0.0,
    "confidence_score": CONFIDENCE_DEFAULT,
}
CORRELATION_NUMERIC_DEFAULTS = {
    "confidence_score": 0.0,
    "data_completeness": 0.0,
}
VOLATILITY_NUMERIC_DEFAULTS = {
    "current_volatility": 0.0,
    "average_volatility": 0.0,
}


def _sort_key(timestamp: str) -> datetime:
    return parse_timestamp(timestamp) or _EPOCH


def _choice(value: Any, allowed: Iterable[str], default: str) -> str:
    text = coerce_text(value).strip().upper()
    return text if text in allowed else default


# Wire sanitizers (proxy side)

def sanitize_prediction_attributes(attributes: Mapping[str, Any]) -> Dict[str, Any]:
    clean = coerce_fields(attributes, PREDICTION_NUMERIC_DEFAULTS)
    clean["influencing_factors"] = ensure_list(attributes.get("influencing_factors"))
    clean["prediction_values"] = ensure_list(attributes.get("prediction_values"))
    if "backtest_values" in attributes:
        clean["backtest_values"] = ensure_list(attributes.get("backtest_values"))
    return clean


def sanitize_correlation_attributes(attributes: Mapping[str, Any], default_days: int) -> Dict[str, Any]:
    clean = coerce_fields(attributes, CORRELATION_NUMERIC_DEFAULTS)
    clean["analysis_period_days"] = coerce_int(attributes.get("analysis_period_days"), default_days)
    clean["influencing_factors"] = ensure_list(attributes.get("influencing_factors"))
    correlations = ensure_dict(attributes.get("correlations"))
    clean["correlations"] = {
        group: ensure_dict(correlations.get(group)) for group in CORRELATION_GROUPS
    }
    return clean


def sanitize_volatility_attributes(attributes: Mapping[str, Any], default_days: int) -> Dict[str, Any]:
    clean = coerce_fields(attributes, VOLATILITY_NUMERIC_DEFAULTS)
    clean["analysis_period_days"] = coerce_int(attributes.get("analysis_period_days"), default_days)
    clean["volatility_level"] = _choice(attributes.get("volatility_level"), VOLATILITY_LEVELS, "NORMAL")
    clean["trend"] = _choice(attributes.get("trend"), VOLATILITY_TRENDS, "STABLE")
    if "confidence_score" in attributes:
        clean["confidence_score"] = coerce_number(attributes.get("confidence_score"), 0.0)
    return clean


def _anomaly_point_dict(raw: Any, timestamp: Optional[str] = None) -> Optional[Dict[str, Any]]:
    if not isinstance(raw, Mapping):
        return None
    return {
        "timestamp": coerce_text(raw.get("timestamp") or timestamp),
        "rate": coerce_number(raw.get("rate")),
        "z_score": coerce_number(raw.get("z_score")),
        "percent_change": coerce_number(raw.get("percent_change")),
    }


def anomaly_points_from_payload(payload: Any) -> Optional[List[Dict[str, Any]]]:
    """Extract anomaly points from either upstream layout.

    Supported layouts:

    * ``events[0].attributes.anomaly_points`` (aggregate event), or
    * one event per anomaly with ``time_object.timestamp`` and
      ``attributes``/``attribute`` holding ``rate``, ``z_score``,
      ``percent_change``.

    Returns None when the payload matches neither layout.
    """
    if not isinstance(payload, Mapping):
        return None
    raw_events = payload.get("events")
    if not isinstance(raw_events, list):
        return None
    events = [e for e in (AdageEvent.from_raw(r) for r in raw_events) if e is not None]

    if events and "anomaly_points" in events[0].attributes:
        raw_points = ensure_list(events[0].attributes.get("anomaly_points"))
        points = [_anomaly_point_dict(p) for p in raw_points]
    else:
        points = [
            _anomaly_point_dict(e.attributes, timestamp=e.time_object.get("timestamp"))
            for e in events
            if "z_score" in e.attributes
        ]
    valid = [p for p in points if p is not None]
    valid.sort(key=lambda p: _sort_key(p["timestamp"]))
    return valid


def flat_anomaly_payload(base: str, target: str, days: int, points: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "base": base,
        "target": target,
        "anomaly_count": len(points),
        "analysis_period_days": days,
        "anomaly_points": points,
    }


# Typed records (client side)

def _prediction_value(raw: Any, historical: bool) -> Optional[PredictionValue]:
    if not isinstance(raw, Mapping):
        return None
    timestamp = coerce_text(raw.get("timestamp") or raw.get("date"))
    if parse_timestamp(timestamp) is None:
        logger.warning("Dropping prediction value without a usable timestamp: %r", raw)
        return None
    mean = coerce_number(raw.get("mean"))
    return PredictionValue(
        timestamp=timestamp,
        mean=mean,
        lower_bound=coerce_number(raw.get("lower_bound"), mean),
        upper_bound=coerce_number(raw.get("upper_bound"), mean),
        is_historical=historical or bool(raw.get("is_historical")),
    )


def _influencing_factor(raw: Any) -> Optional[InfluencingFactor]:
    if not isinstance(raw, Mapping):
        return None
    return InfluencingFactor(
        factor_name=coerce_text(raw.get("factor_name") or raw.get("factor")),
        impact_level=coerce_text(raw.get("impact_level"), "low"),
        used_in_prediction=bool(raw.get("used_in_prediction", False)),
    )


def to_prediction(attributes: Mapping[str, Any], base: str = "", target: str = "") -> Prediction:
    """Build a Prediction; backtest values are tagged historical and merged
    with forecast values in ascending timestamp order."""
    values = [_prediction_value(v, historical=True) for v in ensure_list(attributes.get("backtest_values"))]
    values += [_prediction_value(v, historical=False) for v in ensure_list(attributes.get("prediction_values"))]
    merged = sorted((v for v in values if v is not None), key=lambda v: _sort_key(v.timestamp))

    factors = [_influencing_factor(f) for f in ensure_list(attributes.get("influencing_factors"))]

    return Prediction(
        base_currency=coerce_text(attributes.get("base_currency"), base) or base,
        target_currency=coerce_text(attributes.get("target_currency"), target) or target,
        current_rate=coerce_number(attributes.get("current_rate"), 0.0),
        change_percent=coerce_number(attributes.get("change_percent"), 0.0),
        confidence_score=coerce_number(attributes.get("confidence_score"), CONFIDENCE_DEFAULT),
        model_version=coerce_text(attributes.get("model_version")),
        input_data_range=coerce_text(attributes.get("input_data_range")),
        influencing_factors=[f for f in factors if f is not None],
        prediction_values=merged,
        mean_square_error=coerce_optional_number(attributes.get("mean_square_error")),
        root_mean_square_error=coerce_optional_number(attributes.get("root_mean_square_error")),
        mean_absolute_error=coerce_optional_number(attributes.get("mean_absolute_error")),
    )


def to_volatility(attributes: Mapping[str, Any], base: str = "", target: str = "", days: int = 30) -> VolatilityAnalysis:
    return VolatilityAnalysis(
        base_currency=coerce_text(attributes.get("base_currency"), base) or base,
        target_currency=coerce_text(attributes.get("target_currency"), target) or target,
        current_volatility=coerce_number(attributes.get("current_volatility")),
        average_volatility=coerce_number(attributes.get("average_volatility")),
        volatility_level=_choice(attributes.get("volatility_level"), VOLATILITY_LEVELS, "NORMAL"),
        analysis_period_days=coerce_int(attributes.get("analysis_period_days"), days),
        trend=_choice(attributes.get("trend"), VOLATILITY_TRENDS, "STABLE"),
        confidence_score=coerce_optional_number(attributes.get("confidence_score")),
    )


def _correlation_factor(raw: Any) -> Optional[CorrelationFactor]:
    if not isinstance(raw, Mapping):
        return None
    return CorrelationFactor(
        factor=coerce_text(raw.get("factor") or raw.get("factor_name")),
        correlation=coerce_number(raw.get("correlation")),
        type=coerce_text(raw.get("type"), "economic") or "economic",
        actual_correlation=coerce_optional_number(raw.get("actual_correlation")),
    )


def to_correlation(attributes: Mapping[str, Any], base: str = "", target: str = "", days: int = 90) -> CorrelationAnalysis:
    factors = [_correlation_factor(f) for f in ensure_list(attributes.get("influencing_factors"))]
    correlations = ensure_dict(attributes.get("correlations"))
    return CorrelationAnalysis(
        base_currency=coerce_text(attributes.get("base_currency"), base) or base,
        target_currency=coerce_text(attributes.get("target_currency"), target) or target,
        confidence_score=coerce_number(attributes.get("confidence_score")),
        data_completeness=coerce_number(attributes.get("data_completeness")),
        analysis_period_days=coerce_int(attributes.get("analysis_period_days"), days),
        influencing_factors=[f for f in factors if f is not None],
        correlations={group: coerce_number_map(correlations.get(group)) for group in CORRELATION_GROUPS},
    )


def to_anomaly_result(payload: Mapping[str, Any], base: str, target: str, days: int) -> AnomalyDetectionResult:
    """Build an anomaly result from the flat proxy shape."""
    raw_points = ensure_list(payload.get("anomaly_points"))
    points = [
        AnomalyPoint(**p) for p in (_anomaly_point_dict(r) for r in raw_points) if p is not None
    ]
    points.sort(key=lambda p: _sort_key(p.timestamp))
    return AnomalyDetectionResult(
        base=coerce_text(payload.get("base") or payload.get("base_currency"), base) or base,
        target=coerce_text(payload.get("target") or payload.get("target_currency"), target) or target,
        anomaly_count=coerce_int(payload.get("anomaly_count"), len(points)),
        analysis_period_days=coerce_int(payload.get("analysis_period_days"), days),
        anomaly_points=points,
    )


def to_news_article(event: AdageEvent, currency: str = "") -> NewsArticle:
    attrs = event.attributes
    return NewsArticle(
        title=coerce_text(attrs.get("title")),
        source=coerce_text(attrs.get("source")),
        url=coerce_text(attrs.get("url")),
        summary=coerce_text(attrs.get("summary")),
        sentiment_score=coerce_number(attrs.get("sentiment_score")),
        sentiment_label=coerce_text(attrs.get("sentiment_label"), "neutral") or "neutral",
        currency=coerce_text(attrs.get("currency"), currency) or currency,
        published_at=coerce_text(event.time_object.get("timestamp")),
    )


def to_historical_points(rows: Iterable[Any]) -> List[HistoricalDataPoint]:
    """Build historical rate points sorted oldest first; rows without a date are skipped."""
    points = []
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        date = coerce_text(row.get("date"))
        if parse_timestamp(date) is None:
            logger.warning("Dropping historical row without a usable date: %r", row)
            continue
        close = coerce_number(row.get("close"))
        points.append(HistoricalDataPoint(
            date=date,
            open=coerce_number(row.get("open"), close),
            high=coerce_number(row.get("high"), close),
            low=coerce_number(row.get("low"), close),
            close=close,
        ))
    points.sort(key=lambda p: _sort_key(p.date))
    return points
