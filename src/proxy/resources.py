"""Per-resource proxy handlers.

Each handler turns an :class:`AnalyticsQuery` into one (prediction: at most
two) upstream calls and returns a :class:`ResourceResult`. Handlers never
raise; policy per resource:

* analytics resources (prediction, correlation, volatility, anomalies, news)
  answer absent data, timeouts, transport failures and malformed 2xx bodies
  with their neutral FallbackResult and status 200, and propagate any other
  upstream error status;
* exchange rate and historical rates have no neutral shape and propagate
  every failure (504 on timeout, 502 on transport failure);
* alert registration validates its input (400) and propagates upstream errors.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from src.analytics.coercion import coerce_number, coerce_optional_number
from src.analytics.envelope import AdageEvent, first_attributes, replace_first_attributes
from src.analytics.fallback import (
    DEFAULT_ANOMALY_DAYS,
    DEFAULT_CORRELATION_DAYS,
    DEFAULT_VOLATILITY_DAYS,
    fallback_anomalies,
    fallback_correlation,
    fallback_news,
    fallback_prediction,
    fallback_volatility,
    sample_correlation,
)
from src.analytics.mock_data import MockDataGenerator
from src.analytics.models import AnalyticsQuery, ResourceResult
from src.analytics.normalize import (
    anomaly_points_from_payload,
    flat_anomaly_payload,
    sanitize_correlation_attributes,
    sanitize_prediction_attributes,
    sanitize_volatility_attributes,
    to_historical_points,
)
from src.proxy.upstream import ReplyKind, UpstreamClient, UpstreamReply
from src.utils.errors import ValidationError
from src.utils.logging import get_logger, pair_context
from src.utils.validation import normalize_currency_code, parse_float, parse_int, require_fields

logger = get_logger(__name__)

PATHS = {
    "exchange_rate": "/api/v1/currency/rates/{base}/{target}/",
    "historical": "/api/v1/currency/rates/{base}/{target}/historical",
    "prediction": "/api/v2/analytics/prediction/{base}/{target}",
    "correlation": "/api/v2/analytics/correlation/{base}/{target}",
    "volatility": "/api/v1/analytics/volatility/{base}/{target}",
    "anomalies": "/api/v2/analytics/anomaly-detection/",
    "news": "/api/v1/news/events",
    "alerts": "/api/v2/alerts/register/",
}

STATISTICAL_MODEL = "statistical"
DEFAULT_NEWS_LIMIT = 10


def _cache_buster() -> str:
    return str(int(time.time() * 1000))


@dataclass(frozen=True)
class PredictionStage:
    """One attempt of the prediction plan."""
    name: str
    params: Mapping[str, str]
    budget_key: str


def prediction_plan(params: Mapping[str, str]) -> Tuple[PredictionStage, ...]:
    """Primary attempt, then a statistical-model attempt reached only on timeout.

    A request that already asks for the statistical model has no second stage.
    """
    primary = PredictionStage("primary", dict(params), "prediction")
    if params.get("model") == STATISTICAL_MODEL:
        return (primary,)
    retry = PredictionStage("statistical", {**params, "model": STATISTICAL_MODEL}, "prediction_retry")
    return (primary, retry)


class AnalyticsProxy:
    """Proxy handlers for every dashboard resource."""

    def __init__(
        self,
        upstream: UpstreamClient,
        use_mock_data: bool = False,
        mock: Optional[MockDataGenerator] = None,
        default_pair: Tuple[str, str] = ("USD", "AUD"),
    ) -> None:
        self.upstream = upstream
        self.use_mock_data = use_mock_data
        self.mock = mock or MockDataGenerator()
        self.default_pair = default_pair

    def query(self, params: Mapping[str, Any]) -> AnalyticsQuery:
        return AnalyticsQuery.from_params(params, self.default_pair)

    def _path(self, resource: str, query: AnalyticsQuery) -> str:
        return PATHS[resource].format(base=query.base, target=query.target)

    def _analytics_result(
        self,
        resource: str,
        query: AnalyticsQuery,
        reply: UpstreamReply,
        fallback: Callable[[], Any],
        sanitize: Callable[[Dict[str, Any]], Dict[str, Any]],
    ) -> ResourceResult:
        """Shared classification for single-event analytics envelopes."""
        context = pair_context(resource, query.base, query.target)
        if reply.kind is ReplyKind.FAILED:
            return ResourceResult.error(reply.status_code, f"Failed to fetch {resource.replace('_', ' ')}: {reply.status_code}")
        if reply.is_soft_failure:
            logger.info(f"Serving empty {resource} ({reply.kind.value}: {reply.detail})", extra={**context, "outcome": "empty"})
            return ResourceResult.empty(fallback(), reply.kind.value)

        attributes = first_attributes(reply.payload)
        if attributes is None:
            logger.warning(f"Upstream {resource} payload has no events[0].attributes", extra={**context, "outcome": "empty"})
            return ResourceResult.empty(fallback(), "invalid shape")
        return ResourceResult.ok(replace_first_attributes(reply.payload, sanitize(attributes)))

    async def prediction(self, query: AnalyticsQuery) -> ResourceResult:
        params: Dict[str, str] = {}
        if query.flag("refresh"):
            params["refresh"] = "true"
        horizon = query.int_param("forecast_horizon")
        if horizon:
            params["forecast_horizon"] = str(horizon)
        model = (query.get("model") or "").strip().lower()
        if model:
            params["model"] = model
        confidence = parse_float(query.get("confidence"))
        if confidence is not None:
            params["confidence"] = str(confidence)
        if query.flag("backtest"):
            params["backtest"] = "true"

        path = self._path("prediction", query)
        reply: Optional[UpstreamReply] = None
        for stage in prediction_plan(params):
            reply = await self.upstream.request(
                "prediction", "GET", path,
                params={**stage.params, "_t": _cache_buster()},
                budget=self.upstream.budget(stage.budget_key),
                pair=query.pair,
            )
            if reply.kind is not ReplyKind.TIMEOUT:
                break
            logger.warning(
                f"Prediction {stage.name} attempt timed out",
                extra=pair_context("prediction", query.base, query.target, outcome="timeout"),
            )

        return self._analytics_result(
            "prediction", query, reply,
            fallback=lambda: fallback_prediction(query),
            sanitize=sanitize_prediction_attributes,
        )

    async def correlation(self, query: AnalyticsQuery) -> ResourceResult:
        params: Dict[str, str] = {}
        if query.flag("refresh"):
            params["refresh"] = "true"
        lookback = query.int_param("lookback_days")
        if lookback:
            params["lookback_days"] = str(lookback)
        params["_t"] = _cache_buster()
        days = lookback or DEFAULT_CORRELATION_DAYS

        reply = await self.upstream.request(
            "correlation", "GET", self._path("correlation", query), params=params, pair=query.pair,
        )
        return self._analytics_result(
            "correlation", query, reply,
            fallback=lambda: fallback_correlation(query, days),
            sanitize=lambda attrs: sanitize_correlation_attributes(attrs, days),
        )

    async def correlation_from_body(self, body: Mapping[str, Any]) -> ResourceResult:
        """Correlation lookup driven by a JSON body ``{base, target, days}``.

        All three fields are required. Any upstream failure is answered with
        the sample factor catalog for the pair.
        """
        try:
            require_fields(body, ("base", "target", "days"))
        except ValidationError as e:
            return ResourceResult.error(400, str(e))
        days = parse_int(body.get("days"))
        if days is None or days <= 0:
            return ResourceResult.error(400, "days must be a positive integer")

        query = AnalyticsQuery(
            normalize_currency_code(body.get("base"), self.default_pair[0]),
            normalize_currency_code(body.get("target"), self.default_pair[1]),
        )
        reply = await self.upstream.request(
            "correlation", "GET", self._path("correlation", query),
            params={"days": str(days)}, pair=query.pair,
        )
        attributes = first_attributes(reply.payload) if reply.ok else None
        if attributes is None:
            logger.info(
                f"Serving sample correlation ({reply.kind.value}: {reply.detail or 'invalid shape'})",
                extra=pair_context("correlation", query.base, query.target, outcome="empty"),
            )
            return ResourceResult.empty(sample_correlation(query, days), reply.kind.value)
        return ResourceResult.ok(
            replace_first_attributes(reply.payload, sanitize_correlation_attributes(attributes, days))
        )

    async def volatility(self, query: AnalyticsQuery) -> ResourceResult:
        days = query.int_param("days", DEFAULT_VOLATILITY_DAYS)
        reply = await self.upstream.request(
            "volatility", "GET", self._path("volatility", query),
            params={"days": str(days)}, pair=query.pair,
        )
        return self._analytics_result(
            "volatility", query, reply,
            fallback=lambda: fallback_volatility(query, days),
            sanitize=lambda attrs: sanitize_volatility_attributes(attrs, days),
        )

    async def anomalies(self, query: AnalyticsQuery) -> ResourceResult:
        days = query.int_param("days", DEFAULT_ANOMALY_DAYS)
        context = pair_context("anomalies", query.base, query.target)
        reply = await self.upstream.request(
            "anomalies", "POST", PATHS["anomalies"],
            json={"base": query.base, "target": query.target, "days": days},
            pair=query.pair,
        )
        if reply.kind is ReplyKind.FAILED:
            return ResourceResult.error(reply.status_code, f"Anomaly detection failed: {reply.status_code}")
        if reply.is_soft_failure:
            logger.info(f"Serving empty anomalies ({reply.kind.value}: {reply.detail})", extra={**context, "outcome": "empty"})
            return ResourceResult.empty(fallback_anomalies(query, days), reply.kind.value)

        points = anomaly_points_from_payload(reply.payload)
        if points is None:
            logger.warning("Upstream anomaly payload has no events list", extra={**context, "outcome": "empty"})
            return ResourceResult.empty(fallback_anomalies(query, days), "invalid shape")
        return ResourceResult.ok(flat_anomaly_payload(query.base, query.target, days, points))

    async def news(self, params: Mapping[str, Any]) -> ResourceResult:
        currency = str(params.get("currency") or self.default_pair[0]).strip().upper()
        limit = parse_int(params.get("limit"))
        if limit is None or limit <= 0:
            limit = DEFAULT_NEWS_LIMIT
        if self.use_mock_data:
            return ResourceResult.ok(self.mock.news(currency, limit))

        upstream_params: Dict[str, str] = {"currency": currency, "limit": str(limit)}
        sentiment = parse_float(params.get("sentiment_score"))
        if sentiment is not None:
            upstream_params["sentiment_score"] = str(sentiment)

        reply = await self.upstream.request(
            "news", "GET", PATHS["news"], params=upstream_params, pair=currency,
        )
        if reply.kind is ReplyKind.FAILED:
            return ResourceResult.error(reply.status_code, f"Failed to fetch currency news: {reply.status_code}")
        if reply.is_soft_failure:
            return ResourceResult.empty(fallback_news(currency), reply.kind.value)

        payload = reply.payload
        if not isinstance(payload, dict) or not isinstance(payload.get("events"), list):
            logger.warning("Upstream news payload has no events list", extra={"resource": "news", "pair": currency})
            return ResourceResult.empty(fallback_news(currency), "invalid shape")

        events = []
        for raw in payload["events"][:limit]:
            event = AdageEvent.from_raw(raw)
            if event is None:
                continue
            event.attributes["sentiment_score"] = coerce_number(event.attributes.get("sentiment_score"))
            events.append(event.to_dict())
        return ResourceResult.ok({**payload, "events": events})

    async def exchange_rate(self, query: AnalyticsQuery) -> ResourceResult:
        reply = await self.upstream.request(
            "exchange_rate", "GET", self._path("exchange_rate", query), pair=query.pair,
        )
        if reply.kind is ReplyKind.TIMEOUT:
            return ResourceResult.error(504, "Exchange rate request timed out")
        if reply.kind is ReplyKind.TRANSPORT and reply.status_code is None:
            return ResourceResult.error(502, "Failed to fetch exchange rate")
        if reply.kind in (ReplyKind.ABSENT, ReplyKind.FAILED):
            return ResourceResult.error(reply.status_code, f"Failed to fetch exchange rate: {reply.status_code}")

        attributes = first_attributes(reply.payload) if reply.ok else None
        rate = coerce_optional_number(attributes.get("rate")) if attributes else None
        if rate is None or rate <= 0:
            return ResourceResult.error(500, "Could not extract rate from API response")
        return ResourceResult.ok({"rate": rate})

    async def historical(self, query: AnalyticsQuery) -> ResourceResult:
        reply = await self.upstream.request(
            "historical", "POST", self._path("historical", query), pair=query.pair,
        )
        if reply.kind is ReplyKind.TIMEOUT:
            return ResourceResult.error(504, "Historical rates request timed out")
        if reply.kind is ReplyKind.TRANSPORT and reply.status_code is None:
            return ResourceResult.error(502, "Failed to fetch historical rates")
        if reply.kind in (ReplyKind.ABSENT, ReplyKind.FAILED):
            return ResourceResult.error(reply.status_code, f"Failed to fetch historical rates: {reply.status_code}")

        payload = reply.payload if isinstance(reply.payload, dict) else None
        # Some backend revisions name the list "event"
        if payload is not None and "events" not in payload and isinstance(payload.get("event"), list):
            payload = {**{k: v for k, v in payload.items() if k != "event"}, "events": payload["event"]}
        attributes = first_attributes(payload)
        rows = attributes.get("data") if attributes else None
        if not isinstance(rows, list):
            return ResourceResult.error(500, "Invalid data format received from API")

        points = [vars(p) for p in to_historical_points(rows)]
        return ResourceResult.ok(replace_first_attributes(payload, {**attributes, "data": points}))

    async def register_alert(self, body: Mapping[str, Any]) -> ResourceResult:
        try:
            require_fields(body, ("base", "target", "alert_type", "email", "threshold"))
        except ValidationError as e:
            return ResourceResult.error(400, str(e))
        threshold = parse_float(body.get("threshold"))
        if threshold is None:
            return ResourceResult.error(400, "threshold must be a number")

        alert = {
            "base": normalize_currency_code(body.get("base"), self.default_pair[0]),
            "target": normalize_currency_code(body.get("target"), self.default_pair[1]),
            "alert_type": str(body.get("alert_type")),
            "email": str(body.get("email")).strip(),
            "threshold": threshold,
        }
        pair = f"{alert['base']}/{alert['target']}"
        reply = await self.upstream.request("alerts", "POST", PATHS["alerts"], json=alert, pair=pair)

        if reply.kind is ReplyKind.TIMEOUT:
            return ResourceResult.error(504, "Alert registration timed out")
        if reply.kind is ReplyKind.TRANSPORT and reply.status_code is None:
            return ResourceResult.error(502, "Failed to register alert")
        if reply.kind in (ReplyKind.ABSENT, ReplyKind.FAILED):
            return ResourceResult.error(reply.status_code, reply.payload or "Failed to register alert")
        logger.info("Alert registered", extra={"resource": "alerts", "pair": pair})
        return ResourceResult.ok(reply.payload, status_code=201)

