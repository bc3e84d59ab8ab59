"""Synthesized development data.

Every generator returns exactly the payload a genuine upstream (or proxy)
response would carry, only with made-up values, so the normalizers run
unchanged on it. Values stay inside realistic bounds: rates in [0.5, 2.5]
unless the pair is in the reference table, confidence in [70, 95],
volatility in [5, 20] percent, correlations in [-0.8, 0.8].
"""
from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from src.analytics.envelope import build_envelope, make_event, single_event_envelope
from src.analytics.models import AnalyticsQuery

REFERENCE_RATES: Dict[str, float] = {
    "USDEUR": 0.91,
    "USDGBP": 0.77,
    "USDAUD": 1.52,
    "USDJPY": 154.65,
    "USDCAD": 1.36,
    "USDCHF": 0.90,
    "USDCNY": 7.24,
    "EURAUD": 1.66,
    "EURGBP": 0.85,
}

NEWS_TEMPLATES = [
    {
        "title": "{c} gains momentum as economic outlook improves",
        "source": "Financial Times",
        "url": "https://www.ft.com",
        "summary": "The {c} showed strong performance against major currencies amid positive economic data.",
        "sentiment_score": 0.75,
        "sentiment_label": "bullish",
    },
    {
        "title": "{c} faces pressure following central bank announcement",
        "source": "Bloomberg",
        "url": "https://www.bloomberg.com",
        "summary": "The {c} declined after the central bank signaled potential policy changes in the upcoming quarter.",
        "sentiment_score": -0.45,
        "sentiment_label": "somewhat_bearish",
    },
    {
        "title": "Analysts predict {c} volatility in coming weeks",
        "source": "Reuters",
        "url": "https://www.reuters.com",
        "summary": "Market analysts expect increased {c} volatility due to geopolitical tensions and trade uncertainties.",
        "sentiment_score": 0.15,
        "sentiment_label": "neutral",
    },
    {
        "title": "{c} trading volume reaches new highs",
        "source": "CNBC",
        "url": "https://www.cnbc.com",
        "summary": "Trading volume for {c} reached record levels as institutional investors increase their positions.",
        "sentiment_score": 0.62,
        "sentiment_label": "somewhat_bullish",
    },
    {
        "title": "{c} outlook remains uncertain amid global economic slowdown",
        "source": "Wall Street Journal",
        "url": "https://www.wsj.com",
        "summary": "Experts remain divided on the future of {c} as global economic indicators show mixed signals.",
        "sentiment_score": -0.12,
        "sentiment_label": "neutral",
    },
]


def volatility_level(current: float) -> str:
    if current < 10:
        return "NORMAL"
    if current < 15:
        return "HIGH"
    return "EXTREME"


def split_currencies(currency: str) -> List[str]:
    """``"USD/EUR"`` -> ``["USD", "EUR"]``; single codes pass through."""
    parts = [p.strip().upper() for p in currency.split("/") if p.strip()]
    return parts or ["USD"]


class MockDataGenerator:
    """Realistic-looking payloads for development and backend outages."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def _correlation(self) -> float:
        return round(self.rng.uniform(-0.8, 0.8), 2)

    def exchange_rate(self, base: str, target: str) -> float:
        pair, inverse = f"{base}{target}", f"{target}{base}"
        if pair in REFERENCE_RATES:
            return REFERENCE_RATES[pair]
        if inverse in REFERENCE_RATES:
            return 1 / REFERENCE_RATES[inverse]
        return self.rng.uniform(0.5, 2.5)

    def prediction(self, query: AnalyticsQuery, horizon: int = 7) -> Dict[str, Any]:
        base_rate = self.rng.uniform(0.5, 2.5)
        today = datetime.now(timezone.utc).date()
        values = []
        for i in range(horizon):
            day_change = self.rng.uniform(-1, 1) * 0.005 + 0.001
            mean = base_rate * (1 + day_change * i)
            values.append({
                "timestamp": (today + timedelta(days=i + 1)).isoformat(),
                "mean": mean,
                "lower_bound": mean * 0.97,
                "upper_bound": mean * 1.03,
            })
        return single_event_envelope("currency_prediction", {
            "base_currency": query.base,
            "target_currency": query.target,
            "current_rate": base_rate,
            "change_percent": 1.2,
            "confidence_score": self.rng.randint(70, 85),
            "model_version": "Statistical Model v2",
            "input_data_range": f"{(today - timedelta(days=365)).isoformat()} to {today.isoformat()}",
            "influencing_factors": [
                {"factor_name": "Economic Indicators", "impact_level": "high", "used_in_prediction": True},
                {"factor_name": "Market Sentiment", "impact_level": "medium", "used_in_prediction": True},
                {"factor_name": "Historical Volatility", "impact_level": "medium", "used_in_prediction": True},
            ],
            "prediction_values": values,
            "backtest_values": [],
            "mean_square_error": 0.00025,
            "root_mean_square_error": 0.0158,
            "mean_absolute_error": 0.0122,
        })

    def volatility(self, query: AnalyticsQuery, days: int = 30) -> Dict[str, Any]:
        current = self.rng.uniform(5, 20)
        return single_event_envelope("volatility_analysis", {
            "base_currency": query.base,
            "target_currency": query.target,
            "current_volatility": current,
            "average_volatility": min(20.0, max(5.0, current * self.rng.uniform(0.8, 1.2))),
            "volatility_level": volatility_level(current),
            "analysis_period_days": days,
            "trend": self.rng.choice(["STABLE", "INCREASING", "DECREASING"]),
            "confidence_score": self.rng.randint(75, 95),
        })

    def correlation(self, query: AnalyticsQuery, days: int = 90) -> Dict[str, Any]:
        factors = [
            {"factor": "GDP Growth", "correlation": self._correlation(), "type": "economic"},
            {"factor": "Inflation Rate", "correlation": self._correlation(), "type": "economic"},
            {"factor": "Interest Rate", "correlation": self._correlation(), "type": "economic"},
            {"factor": "Trade Balance", "correlation": self._correlation(), "type": "economic"},
            {"factor": "Market Sentiment", "correlation": self._correlation(), "type": "news"},
        ]
        factors.sort(key=lambda f: abs(f["correlation"]), reverse=True)
        return single_event_envelope("correlation_analysis", {
            "base_currency": query.base,
            "target_currency": query.target,
            "confidence_score": self.rng.randint(70, 95),
            "data_completeness": self.rng.randint(70, 100),
            "analysis_period_days": days,
            "influencing_factors": factors,
            "correlations": {
                "news_sentiment": {
                    key: self._correlation()
                    for key in ("positive_news", "negative_news", "neutral_news", "financial_news", "political_news")
                },
                "economic_indicators": {
                    key: self._correlation()
                    for key in ("gdp_growth", "inflation_rate", "interest_rate", "unemployment", "trade_balance")
                },
                "volatility_news": {
                    key: self._correlation()
                    for key in ("market_volatility", "news_sentiment_volatility")
                },
            },
        })

    def anomalies(self, query: AnalyticsQuery, days: int = 30) -> Dict[str, Any]:
        """Flat anomaly payload, as served by the proxy route."""
        now = datetime.now(timezone.utc)
        count = self.rng.randint(1, 4)
        offsets = sorted(self.rng.sample(range(max(days, count)), count), reverse=True)
        points = []
        for offset in offsets:
            sign = -1 if self.rng.random() < 0.5 else 1
            points.append({
                "timestamp": (now - timedelta(days=offset)).isoformat(),
                "rate": self.rng.uniform(0.5, 2.5),
                "z_score": self.rng.uniform(2, 4) * sign,
                "percent_change": self.rng.uniform(2, 8),
            })
        return {
            "base": query.base,
            "target": query.target,
            "anomaly_count": count,
            "analysis_period_days": days,
            "anomaly_points": points,
        }

    def news(self, currency: str, limit: int = 10) -> Dict[str, Any]:
        """ADAGE news envelope; pairs like ``USD/EUR`` get items for each side."""
        currencies = split_currencies(currency)
        per_currency = -(-limit // len(currencies))
        items = []
        for code in currencies:
            templates = self.rng.sample(NEWS_TEMPLATES, min(per_currency, len(NEWS_TEMPLATES)))
            items.extend((code, t) for t in templates)
        items = items[:limit]

        now = datetime.now(timezone.utc)
        events = []
        for index, (code, template) in enumerate(items):
            published = now - timedelta(days=self.rng.randint(0, 6))
            events.append(make_event(
                {
                    "title": template["title"].format(c=code),
                    "source": template["source"],
                    "url": template["url"],
                    "summary": template["summary"].format(c=code),
                    "sentiment_score": template["sentiment_score"],
                    "sentiment_label": template["sentiment_label"],
                    "currency": code,
                },
                event_type="currency_news",
                timestamp=published.isoformat(),
                event_id=f"mock-news-{index}-{int(now.timestamp() * 1000)}",
            ))
        return build_envelope(
            "currency_news", events,
            data_source="Mock Data",
            dataset_id=f"currency-news-{currency}-{int(now.timestamp() * 1000)}",
        )

    def historical(self, query: AnalyticsQuery, days: int = 7) -> Dict[str, Any]:
        today = datetime.now(timezone.utc).date()
        anchor = self.exchange_rate(query.base, query.target)
        rows = []
        for i in range(days):
            close = anchor * (1 + self.rng.uniform(-0.01, 0.01))
            rows.append({
                "date": (today - timedelta(days=days - 1 - i)).isoformat(),
                "open": close * (1 + self.rng.uniform(-0.003, 0.003)),
                "high": close * 1.005,
                "low": close * 0.995,
                "close": close,
            })
        return single_event_envelope("historical_rates", {
            "base": query.base,
            "target": query.target,
            "data": rows,
        })
