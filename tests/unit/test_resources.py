"""Tests for per-resource proxy handlers and their failure policy."""
import asyncio
import json
import random
import time

import httpx
import pytest

from src.analytics.envelope import first_attributes, single_event_envelope
from src.analytics.mock_data import MockDataGenerator
from src.analytics.models import AnalyticsQuery, Outcome
from src.proxy.resources import AnalyticsProxy, prediction_plan
from src.proxy.upstream import ReplyKind


class Recorder:
    """MockTransport handler that records requests and replays canned responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    async def __call__(self, request):
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if response == "timeout":
            await asyncio.sleep(5)
            return httpx.Response(200, json={"late": True})
        if isinstance(response, Exception):
            raise response
        return response


def ok(payload, status=200):
    return httpx.Response(status, json=payload)


def make_proxy(make_upstream, recorder, use_mock_data=False, **timeouts):
    upstream = make_upstream(recorder, **timeouts)
    return AnalyticsProxy(upstream, use_mock_data=use_mock_data, mock=MockDataGenerator(random.Random(1)))


def query(**params):
    return AnalyticsQuery.from_params({"base": "USD", "target": "EUR", **params})


# Prediction

def test_prediction_plan_stages():
    assert [s.name for s in prediction_plan({})] == ["primary", "statistical"]
    assert prediction_plan({"model": "arima"})[1].params["model"] == "statistical"
    assert [s.budget_key for s in prediction_plan({})] == ["prediction", "prediction_retry"]
    assert len(prediction_plan({"model": "statistical"})) == 1


@pytest.mark.asyncio
async def test_prediction_success_forwards_params_and_coerces(make_upstream):
    recorder = Recorder(ok(single_event_envelope("currency_prediction", {
        "confidence_score": "82%",
        "current_rate": 0.91,
        "prediction_values": [{"timestamp": "2024-05-02", "mean": 0.92}],
    })))
    proxy = make_proxy(make_upstream, recorder)

    result = await proxy.prediction(query(refresh="true", forecast_horizon="14", model="ARIMA", confidence="95", backtest="1"))

    assert result.outcome is Outcome.OK
    attributes = first_attributes(result.body)
    assert attributes["confidence_score"] == 82.0
    assert attributes["influencing_factors"] == []
    params = recorder.requests[0].url.params
    assert recorder.requests[0].url.path == "/api/v2/analytics/prediction/USD/EUR"
    assert params["refresh"] == "true"
    assert params["forecast_horizon"] == "14"
    assert params["model"] == "arima"
    assert params["confidence"] == "95.0"
    assert params["backtest"] == "true"
    assert "_t" in params


@pytest.mark.asyncio
async def test_prediction_ignores_invalid_horizon(make_upstream):
    recorder = Recorder(ok(single_event_envelope("currency_prediction", {"confidence_score": 80})))
    await make_proxy(make_upstream, recorder).prediction(query(forecast_horizon="soon"))

    assert "forecast_horizon" not in recorder.requests[0].url.params


@pytest.mark.asyncio
async def test_prediction_retries_once_with_statistical_model(make_upstream):
    recorder = Recorder("timeout", "timeout")
    proxy = make_proxy(make_upstream, recorder, prediction=0.05, prediction_retry=0.05)

    result = await proxy.prediction(query(model="arima"))

    assert len(recorder.requests) == 2
    assert recorder.requests[1].url.params["model"] == "statistical"
    assert result.outcome is Outcome.EMPTY
    assert result.status_code == 200
    assert first_attributes(result.body)["prediction_values"] == []


@pytest.mark.asyncio
async def test_prediction_retry_can_succeed(make_upstream):
    recorder = Recorder("timeout", ok(single_event_envelope("currency_prediction", {"confidence_score": 75})))
    proxy = make_proxy(make_upstream, recorder, prediction=0.05, prediction_retry=1)

    result = await proxy.prediction(query())

    assert result.outcome is Outcome.OK
    assert len(recorder.requests) == 2


@pytest.mark.asyncio
async def test_prediction_statistical_request_is_not_retried(make_upstream):
    recorder = Recorder("timeout")
    proxy = make_proxy(make_upstream, recorder, prediction=0.05, prediction_retry=0.05)

    result = await proxy.prediction(query(model="statistical"))

    assert len(recorder.requests) == 1
    assert result.outcome is Outcome.EMPTY


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(404, json={"detail": "Not Found"}),
    httpx.Response(422, json={"detail": "bad pair"}),
    httpx.Response(200, text="not json"),
    httpx.Response(200, json={"events": []}),
    httpx.Response(200, json=["unexpected"]),
])
async def test_prediction_soft_failures_fall_back_without_retry(make_upstream, response):
    recorder = Recorder(response)
    result = await make_proxy(make_upstream, recorder).prediction(query())

    assert len(recorder.requests) == 1
    assert result.outcome is Outcome.EMPTY
    assert result.status_code == 200
    assert first_attributes(result.body)["base_currency"] == "USD"


@pytest.mark.asyncio
async def test_prediction_connection_error_falls_back(make_upstream):
    recorder = Recorder(httpx.ConnectError("refused"))
    result = await make_proxy(make_upstream, recorder).prediction(query())
    assert result.outcome is Outcome.EMPTY


@pytest.mark.asyncio
async def test_prediction_upstream_error_propagates(make_upstream):
    recorder = Recorder(httpx.Response(500, text="boom"))
    result = await make_proxy(make_upstream, recorder).prediction(query())

    assert result.outcome is Outcome.ERROR
    assert result.status_code == 500
    assert result.body == {"error": "Failed to fetch prediction: 500"}


# Correlation

@pytest.mark.asyncio
async def test_correlation_forwards_lookback_and_sanitizes(make_upstream):
    recorder = Recorder(ok(single_event_envelope("correlation_analysis", {
        "confidence_score": "88",
        "influencing_factors": "none",
        "correlations": {"news_sentiment": {"positive_news": 0.4}},
    })))
    result = await make_proxy(make_upstream, recorder).correlation(query(lookback_days="60", refresh="true"))

    params = recorder.requests[0].url.params
    assert params["lookback_days"] == "60"
    assert params["refresh"] == "true"
    attributes = first_attributes(result.body)
    assert attributes["confidence_score"] == 88.0
    assert attributes["analysis_period_days"] == 60
    assert attributes["influencing_factors"] == []
    assert attributes["correlations"]["volatility_news"] == {}


@pytest.mark.asyncio
async def test_correlation_timeout_falls_back(make_upstream):
    recorder = Recorder("timeout")
    started = time.monotonic()
    result = await make_proxy(make_upstream, recorder, correlation=0.05).correlation(query())
    elapsed = time.monotonic() - started

    assert elapsed < 0.5
    assert result.outcome is Outcome.EMPTY
    assert result.status_code == 200
    assert result.reason == ReplyKind.TIMEOUT.value
    assert first_attributes(result.body)["analysis_period_days"] == 90


@pytest.mark.asyncio
@pytest.mark.parametrize("body, message", [
    ({"base": "USD", "target": "EUR"}, "days"),
    ({"target": "EUR", "days": 30}, "base"),
    ({"base": "USD", "target": "EUR", "days": "many"}, "days"),
    ({"base": "USD", "target": "EUR", "days": -3}, "days"),
])
async def test_correlation_body_validation(make_upstream, body, message):
    recorder = Recorder(ok({}))
    result = await make_proxy(make_upstream, recorder).correlation_from_body(body)

    assert result.status_code == 400
    assert message in result.body["error"]
    assert recorder.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(500, text="boom"),
    httpx.Response(404),
    httpx.Response(200, json={"unexpected": True}),
])
async def test_correlation_body_failures_use_sample_catalog(make_upstream, response):
    recorder = Recorder(response)
    result = await make_proxy(make_upstream, recorder).correlation_from_body({"base": "usd", "target": "jpy", "days": "45"})

    assert result.status_code == 200
    assert recorder.requests[0].url.params["days"] == "45"
    assert recorder.requests[0].url.path == "/api/v2/analytics/correlation/USD/JPY"
    attributes = first_attributes(result.body)
    assert attributes["analysis_period_days"] == 45
    assert attributes["influencing_factors"][0]["factor"] == "Bank of Japan Policy"


# Volatility

@pytest.mark.asyncio
async def test_volatility_default_days_and_coercion(make_upstream):
    recorder = Recorder(ok(single_event_envelope("volatility_analysis", {
        "current_volatility": "12.3",
        "volatility_level": "high",
        "analysis_period_days": "thirty",
    })))
    result = await make_proxy(make_upstream, recorder).volatility(query(days="abc"))

    assert recorder.requests[0].url.params["days"] == "30"
    attributes = first_attributes(result.body)
    assert attributes["current_volatility"] == 12.3
    assert attributes["volatility_level"] == "HIGH"
    assert attributes["analysis_period_days"] == 30


@pytest.mark.asyncio
async def test_volatility_policy(make_upstream):
    down = await make_proxy(make_upstream, Recorder(httpx.ConnectError("down"))).volatility(query(days="7"))
    assert down.outcome is Outcome.EMPTY
    assert first_attributes(down.body)["analysis_period_days"] == 7

    failed = await make_proxy(make_upstream, Recorder(httpx.Response(503, text="busy"))).volatility(query())
    assert failed.status_code == 503


# Anomalies

@pytest.mark.asyncio
async def test_anomalies_flat_output(make_upstream):
    recorder = Recorder(ok({"events": [
        {"time_object": {"timestamp": "2024-05-02T00:00:00Z"}, "attributes": {"rate": 1.1, "z_score": 2.5, "percent_change": 3}},
        {"time_object": {"timestamp": "2024-05-01T00:00:00Z"}, "attributes": {"rate": 1.0, "z_score": -2.1, "percent_change": 2}},
    ]}))
    result = await make_proxy(make_upstream, recorder).anomalies(query(days="14"))

    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/api/v2/analytics/anomaly-detection/"
    assert json.loads(request.content) == {"base": "USD", "target": "EUR", "days": 14}
    assert result.body["anomaly_count"] == 2
    assert result.body["analysis_period_days"] == 14
    assert result.body["anomaly_points"][0]["timestamp"] == "2024-05-01T00:00:00Z"


@pytest.mark.asyncio
async def test_anomalies_policy(make_upstream):
    absent = await make_proxy(make_upstream, Recorder(httpx.Response(404))).anomalies(query())
    assert absent.body == {"base": "USD", "target": "EUR", "anomaly_count": 0, "analysis_period_days": 30, "anomaly_points": []}

    invalid = await make_proxy(make_upstream, Recorder(ok({"data": []}))).anomalies(query())
    assert invalid.outcome is Outcome.EMPTY

    failed = await make_proxy(make_upstream, Recorder(httpx.Response(500, text="x"))).anomalies(query())
    assert failed.status_code == 500


# News

@pytest.mark.asyncio
async def test_news_proxies_and_coerces(make_upstream):
    recorder = Recorder(ok({"dataset_type": "currency_news", "events": [
        {"time_object": {"timestamp": "2024-05-01T00:00:00Z"}, "attributes": {"title": "a", "sentiment_score": "0.5"}},
        {"time_object": {"timestamp": "2024-05-02T00:00:00Z"}, "attributes": {"title": "b", "sentiment_score": None}},
        {"time_object": {"timestamp": "2024-05-03T00:00:00Z"}, "attributes": {"title": "c"}},
    ]}))
    result = await make_proxy(make_upstream, recorder).news({"currency": "eur", "limit": "2", "sentiment_score": "0.2"})

    params = recorder.requests[0].url.params
    assert params["currency"] == "EUR"
    assert params["limit"] == "2"
    assert params["sentiment_score"] == "0.2"
    assert [e["attributes"]["title"] for e in result.body["events"]] == ["a", "b"]
    assert result.body["events"][1]["attributes"]["sentiment_score"] == 0.0
    assert result.body["dataset_type"] == "currency_news"


@pytest.mark.asyncio
async def test_news_defaults_and_policy(make_upstream):
    recorder = Recorder(httpx.Response(404))
    result = await make_proxy(make_upstream, recorder).news({})

    assert recorder.requests[0].url.params["currency"] == "USD"
    assert recorder.requests[0].url.params["limit"] == "10"
    assert result.status_code == 200
    assert result.body["events"] == []

    failed = await make_proxy(make_upstream, Recorder(httpx.Response(500, text="x"))).news({})
    assert failed.status_code == 500


@pytest.mark.asyncio
async def test_news_mock_mode_skips_upstream(make_upstream):
    recorder = Recorder(ok({}))
    result = await make_proxy(make_upstream, recorder, use_mock_data=True).news({"currency": "USD/EUR", "limit": "4"})

    assert recorder.requests == []
    assert result.body["data_source"] == "Mock Data"
    assert len(result.body["events"]) == 4


# Exchange rate and historical rates

@pytest.mark.asyncio
async def test_exchange_rate_success(make_upstream):
    recorder = Recorder(ok(single_event_envelope("exchange_rate", {"rate": 1.52})))
    proxy = make_proxy(make_upstream, recorder)

    result = await proxy.exchange_rate(AnalyticsQuery.from_params({"from": "usd", "to": "aud"}))

    assert recorder.requests[0].url.path == "/api/v1/currency/rates/USD/AUD/"
    assert result.body == {"rate": 1.52}


@pytest.mark.asyncio
async def test_exchange_rate_failures(make_upstream):
    async def call(response, **timeouts):
        return await make_proxy(make_upstream, Recorder(response), **timeouts).exchange_rate(query())

    timed_out = await call("timeout", exchange_rate=0.05)
    assert timed_out.status_code == 504

    unreachable = await call(httpx.ConnectError("refused"))
    assert unreachable.status_code == 502

    missing_rate = await call(ok(single_event_envelope("exchange_rate", {"rate": "n/a"})))
    assert missing_rate.status_code == 500
    assert missing_rate.body == {"error": "Could not extract rate from API response"}

    not_json = await call(httpx.Response(200, text="<html>"))
    assert not_json.status_code == 500

    not_found = await call(httpx.Response(404))
    assert not_found.status_code == 404
    assert not_found.body == {"error": "Failed to fetch exchange rate: 404"}


@pytest.mark.asyncio
async def test_historical_accepts_event_key_and_sorts(make_upstream):
    recorder = Recorder(ok({"event": [{"attributes": {"data": [
        {"date": "2024-05-02", "open": 1.1, "high": 1.2, "low": 1.0, "close": 1.15},
        {"date": "2024-05-01", "open": 1.0, "high": 1.1, "low": 0.9, "close": "1.05"},
    ]}}]}))
    result = await make_proxy(make_upstream, recorder).historical(query())

    assert recorder.requests[0].method == "POST"
    assert recorder.requests[0].url.path == "/api/v1/currency/rates/USD/EUR/historical"
    rows = first_attributes(result.body)["data"]
    assert [r["date"] for r in rows] == ["2024-05-01", "2024-05-02"]
    assert rows[0]["close"] == 1.05
    assert "event" not in result.body


@pytest.mark.asyncio
async def test_historical_invalid_shape(make_upstream):
    result = await make_proxy(make_upstream, Recorder(ok({"events": [{"attributes": {"rows": []}}]}))).historical(query())
    assert result.status_code == 500
    assert result.body == {"error": "Invalid data format received from API"}


# Alerts

ALERT = {"base": "usd", "target": "eur", "alert_type": "above", "threshold": "1.1", "email": " me@example.com "}


@pytest.mark.asyncio
@pytest.mark.parametrize("body, message", [
    ({k: v for k, v in ALERT.items() if k != "email"}, "email"),
    ({**ALERT, "threshold": "high"}, "threshold"),
    ({**ALERT, "base": ""}, "base"),
])
async def test_alert_validation(make_upstream, body, message):
    recorder = Recorder(ok({}))
    result = await make_proxy(make_upstream, recorder).register_alert(body)

    assert result.status_code == 400
    assert message in result.body["error"]
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_alert_success_passes_body_through(make_upstream):
    recorder = Recorder(ok({"id": 7, "status": "registered"}))
    result = await make_proxy(make_upstream, recorder).register_alert(ALERT)

    assert result.status_code == 201
    assert result.body == {"id": 7, "status": "registered"}
    assert json.loads(recorder.requests[0].content) == {
        "base": "USD", "target": "EUR", "alert_type": "above", "email": "me@example.com", "threshold": 1.1,
    }


@pytest.mark.asyncio
async def test_alert_failures(make_upstream):
    rejected = await make_proxy(make_upstream, Recorder(httpx.Response(409, json={"detail": "duplicate"}))).register_alert(ALERT)
    assert rejected.status_code == 409
    assert rejected.body == {"error": {"detail": "duplicate"}}

    timed_out = await make_proxy(make_upstream, Recorder("timeout"), alerts=0.05).register_alert(ALERT)
    assert timed_out.status_code == 504

    unreachable = await make_proxy(make_upstream, Recorder(httpx.ConnectError("refused"))).register_alert(ALERT)
    assert unreachable.status_code == 502
