"""Typed data-access client for the dashboard's same-origin proxy routes."""
from __future__ import annotations

import random
from typing import Any, Callable, Dict, List, Optional, TypeVar

import httpx

from src.analytics.coercion import coerce_optional_number, ensure_list
from src.analytics.envelope import AdageEnvelope, AdageEvent, first_attributes, parse_timestamp
from src.analytics.fallback import (
    DEFAULT_ANOMALY_DAYS,
    DEFAULT_CORRELATION_DAYS,
    DEFAULT_VOLATILITY_DAYS,
    fallback_correlation,
    fallback_prediction,
    fallback_volatility,
)
from src.analytics.mock_data import MockDataGenerator
from src.analytics.models import (
    AnalyticsQuery,
    AnomalyDetectionResult,
    CorrelationAnalysis,
    HistoricalDataPoint,
    NewsArticle,
    Prediction,
    VolatilityAnalysis,
)
from src.analytics.normalize import (
    to_anomaly_result,
    to_correlation,
    to_historical_points,
    to_news_article,
    to_prediction,
    to_volatility,
)
from src.config import Config
from src.utils.decorators import log_execution
from src.utils.errors import DataAccessError, FetchError, PayloadDecodeError, ShapeValidationError
from src.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

PAIR_NEWS_LIMIT = 5
PER_CURRENCY_NEWS_LIMIT = 3


class DashboardClient:
    """
    Async client used by dashboard code to read every resource.

    Only the proxy routes are called. Payloads are shape-checked before any
    field is read and coerced again here, independently of the proxy, so a
    drifting backend never reaches the dashboard as a crash.

    With ``use_mock_data`` set, calls that fail outright return synthesized
    data instead of raising. Intended for development only.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        timeout: float = 65.0,
        use_mock_data: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.use_mock_data = use_mock_data
        self.mock = MockDataGenerator(rng)
        self._transport = transport

    @classmethod
    def from_config(cls, cfg: Config, transport: Optional[httpx.AsyncBaseTransport] = None) -> "DashboardClient":
        return cls(
            base_url=cfg.client_base_url,
            timeout=cfg.client_timeout,
            use_mock_data=cfg.use_mock_data,
            transport=transport,
        )

    async def _request_json(
        self,
        resource: str,
        path: str,
        pair: str,
        params: Optional[Dict[str, Any]] = None,
        method: str = "GET",
        json: Any = None,
    ) -> Any:
        """Call one proxy route and decode its JSON body.

        Raises:
            FetchError: network failure or non-2xx status
            PayloadDecodeError: body is not valid JSON
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, transport=self._transport, timeout=self.timeout
            ) as client:
                response = await client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            reason = str(e) or e.__class__.__name__
            raise FetchError(
                f"Could not reach the {resource} service for {pair}: {reason}", resource=resource, pair=pair
            ) from e

        if response.status_code >= 400:
            raise FetchError(
                f"The {resource} service answered HTTP {response.status_code} for {pair}",
                resource=resource, pair=pair, status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise PayloadDecodeError(
                f"The {resource} service returned an unreadable response for {pair}", resource=resource, pair=pair
            ) from e

    def _attributes(self, payload: Any, resource: str, pair: str) -> Dict[str, Any]:
        attributes = AdageEnvelope.parse(payload, resource, pair).first_attributes()
        if not attributes:
            raise ShapeValidationError(
                f"No {resource} attributes returned for {pair}", resource=resource, pair=pair
            )
        return attributes

    def _attributes_or_fallback(
        self, payload: Any, resource: str, pair: str, fallback: Callable[[], Dict[str, Any]]
    ) -> Dict[str, Any]:
        try:
            return self._attributes(payload, resource, pair)
        except ShapeValidationError as e:
            logger.warning(f"{e}; using neutral values", extra={"resource": resource, "pair": pair})
            return first_attributes(fallback()) or {}

    def _recover(self, error: DataAccessError, mock: Callable[[], T]) -> T:
        """Return mock data for a failed call when mock mode is on, else re-raise."""
        if not self.use_mock_data:
            raise error
        logger.warning(
            f"Using mock {error.resource} data: {error}",
            extra={"resource": error.resource, "pair": error.pair, "outcome": "mock"},
        )
        return mock()

    @log_execution("exchange_rate")
    async def fetch_exchange_rate(self, base: str, target: str) -> float:
        query = AnalyticsQuery.from_params({"base": base, "target": target})
        try:
            payload = await self._request_json(
                "exchange_rate", "/api/exchange-rate", query.pair, params={"base": query.base, "target": query.target}
            )
            rate = coerce_optional_number(payload.get("rate")) if isinstance(payload, dict) else None
            if rate is None or rate <= 0:
                raise ShapeValidationError(
                    f"No exchange rate returned for {query.pair}", resource="exchange_rate", pair=query.pair
                )
            return rate
        except DataAccessError as e:
            return self._recover(e, lambda: self.mock.exchange_rate(query.base, query.target))

    @log_execution("historical")
    async def fetch_historical_exchange_rate(self, base: str, target: str) -> List[HistoricalDataPoint]:
        """Daily OHLC points, oldest first."""
        query = AnalyticsQuery.from_params({"base": base, "target": target})
        try:
            payload = await self._request_json(
                "historical", "/api/historical", query.pair, params={"base": query.base, "target": query.target}
            )
            rows = self._attributes(payload, "historical", query.pair).get("data")
            if not isinstance(rows, list):
                raise ShapeValidationError(
                    f"Invalid historical data format for {query.pair}", resource="historical", pair=query.pair
                )
            return to_historical_points(rows)
        except DataAccessError as e:
            return self._recover(
                e, lambda: to_historical_points(first_attributes(self.mock.historical(query))["data"])
            )

    @log_execution("prediction")
    async def fetch_currency_prediction(
        self,
        base: str,
        target: str,
        forecast_horizon: Optional[int] = None,
        refresh: bool = False,
        model: Optional[str] = None,
        confidence: Optional[float] = None,
        backtest: bool = False,
    ) -> Prediction:
        query = AnalyticsQuery.from_params({"base": base, "target": target})
        params: Dict[str, Any] = {"base": query.base, "target": query.target}
        if refresh:
            params["refresh"] = "true"
        if forecast_horizon:
            params["forecast_horizon"] = forecast_horizon
        if model:
            params["model"] = model
        if confidence:
            params["confidence"] = confidence
        if backtest:
            params["backtest"] = "true"

        try:
            payload = await self._request_json("prediction", "/api/prediction", query.pair, params=params)
        except (FetchError, PayloadDecodeError) as e:
            return self._recover(
                e, lambda: to_prediction(first_attributes(self.mock.prediction(query, forecast_horizon or 7)), query.base, query.target)
            )
        attributes = self._attributes_or_fallback(payload, "prediction", query.pair, lambda: fallback_prediction(query))
        return to_prediction(attributes, query.base, query.target)

    @log_execution("volatility")
    async def fetch_volatility_analysis(
        self, base: str, target: str, days: int = DEFAULT_VOLATILITY_DAYS
    ) -> VolatilityAnalysis:
        query = AnalyticsQuery.from_params({"base": base, "target": target})
        try:
            payload = await self._request_json(
                "volatility", "/api/volatility", query.pair,
                params={"base": query.base, "target": query.target, "days": days},
            )
        except (FetchError, PayloadDecodeError) as e:
            return self._recover(
                e, lambda: to_volatility(first_attributes(self.mock.volatility(query, days)), query.base, query.target, days)
            )
        attributes = self._attributes_or_fallback(payload, "volatility", query.pair, lambda: fallback_volatility(query, days))
        return to_volatility(attributes, query.base, query.target, days)

    @log_execution("correlation")
    async def fetch_correlation_analysis(
        self, base: str, target: str, lookback_days: int = DEFAULT_CORRELATION_DAYS, refresh: bool = False
    ) -> CorrelationAnalysis:
        query = AnalyticsQuery.from_params({"base": base, "target": target})
        params: Dict[str, Any] = {"base": query.base, "target": query.target, "lookback_days": lookback_days}
        if refresh:
            params["refresh"] = "true"
        try:
            payload = await self._request_json("correlation", "/api/correlation", query.pair, params=params)
        except (FetchError, PayloadDecodeError) as e:
            return self._recover(
                e, lambda: to_correlation(first_attributes(self.mock.correlation(query, lookback_days)), query.base, query.target, lookback_days)
            )
        attributes = self._attributes_or_fallback(
            payload, "correlation", query.pair, lambda: fallback_correlation(query, lookback_days)
        )
        return to_correlation(attributes, query.base, query.target, lookback_days)

    @log_execution("anomalies")
    async def fetch_anomaly_detection(
        self, base: str, target: str, days: int = DEFAULT_ANOMALY_DAYS
    ) -> AnomalyDetectionResult:
        query = AnalyticsQuery.from_params({"base": base, "target": target})
        try:
            payload = await self._request_json(
                "anomalies", "/api/anomalies", query.pair,
                params={"base": query.base, "target": query.target, "days": days},
            )
        except (FetchError, PayloadDecodeError) as e:
            return self._recover(
                e, lambda: to_anomaly_result(self.mock.anomalies(query, days), query.base, query.target, days)
            )
        if not isinstance(payload, dict) or not isinstance(payload.get("anomaly_points"), list):
            logger.warning(
                f"No anomaly data returned for {query.pair}; using neutral values",
                extra={"resource": "anomalies", "pair": query.pair},
            )
            payload = {}
        return to_anomaly_result(payload, query.base, query.target, days)

    @log_execution("news")
    async def fetch_currency_news(
        self, currency: str, limit: int = 10, sentiment_score: Optional[float] = None
    ) -> List[NewsArticle]:
        """News articles for a currency code or a ``BASE/TARGET`` pair, in backend order."""
        params: Dict[str, Any] = {"currency": currency, "limit": limit}
        if sentiment_score is not None:
            params["sentiment_score"] = sentiment_score
        try:
            payload = await self._request_json("news", "/api/currency-news", currency, params=params)
        except (FetchError, PayloadDecodeError) as e:
            payload = self._recover(e, lambda: self.mock.news(currency, limit))
        events = _news_events(payload, currency)
        return [to_news_article(event, currency) for event in events[:limit]]

    async def fetch_pair_news(self, base: str, target: str, limit: int = PAIR_NEWS_LIMIT) -> List[NewsArticle]:
        """
        News for a currency pair.

        Asks for the pair first. When that yields nothing, asks for each
        currency separately and merges the results newest first.
        """
        articles = await self.fetch_currency_news(f"{base}/{target}", limit=limit)
        if articles:
            return articles

        combined: List[NewsArticle] = []
        for currency in (base, target):
            combined.extend(await self.fetch_currency_news(currency, limit=PER_CURRENCY_NEWS_LIMIT))
        combined.sort(key=_published_sort_key, reverse=True)
        return combined[:limit]

    @log_execution("alerts")
    async def register_alert(
        self, base: str, target: str, alert_type: str, threshold: float, email: str
    ) -> Dict[str, Any]:
        """Register a rate alert; returns the backend's confirmation body."""
        pair = f"{base}/{target}"
        payload = await self._request_json(
            "alerts", "/api/alerts/register", pair, method="POST",
            json={"base": base, "target": target, "alert_type": alert_type, "threshold": threshold, "email": email},
        )
        return payload if isinstance(payload, dict) else {"result": payload}


def _news_events(payload: Any, currency: str) -> List[AdageEvent]:
    if not isinstance(payload, dict) or not isinstance(payload.get("events"), list):
        logger.warning(f"No news events returned for {currency}", extra={"resource": "news", "pair": currency})
        return []
    events = (AdageEvent.from_raw(raw) for raw in ensure_list(payload.get("events")))
    return [e for e in events if e is not None and e.attributes]


def _published_sort_key(article: NewsArticle) -> float:
    published = parse_timestamp(article.published_at)
    return published.timestamp() if published else 0.0
