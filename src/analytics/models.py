"""Request and result records shared by the proxy and client layers."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from src.utils.validation import normalize_currency_code, parse_bool, parse_int

DEFAULT_BASE = "USD"
DEFAULT_TARGET = "AUD"

VOLATILITY_LEVELS = ("NORMAL", "HIGH", "EXTREME")
VOLATILITY_TRENDS = ("STABLE", "INCREASING", "DECREASING")

_PAIR_KEYS = {"base", "from", "target", "to"}


@dataclass(frozen=True)
class AnalyticsQuery:
    """Normalized query for one analytics request.

    ``optional_params`` is read-only; build a new query instead of mutating.
    """

    base: str
    target: str
    optional_params: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_params(
        cls,
        params: Mapping[str, Any],
        default_pair: Tuple[str, str] = (DEFAULT_BASE, DEFAULT_TARGET),
    ) -> "AnalyticsQuery":
        """Build a query from request parameters.

        Accepts ``base``/``from`` and ``target``/``to``; absent codes fall back
        to ``default_pair``. Every other non-empty parameter is kept as a string.
        """
        base = params.get("base") or params.get("from")
        target = params.get("target") or params.get("to")
        optional = {
            str(k): str(v)
            for k, v in params.items()
            if k not in _PAIR_KEYS and v is not None and str(v) != ""
        }
        return cls(
            base=normalize_currency_code(base, default_pair[0]),
            target=normalize_currency_code(target, default_pair[1]),
            optional_params=MappingProxyType(optional),
        )

    @property
    def pair(self) -> str:
        return f"{self.base}/{self.target}"

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.optional_params.get(name, default)

    def int_param(self, name: str, default: Optional[int] = None) -> Optional[int]:
        """Integer parameter; invalid or non-positive values count as absent."""
        value = parse_int(self.optional_params.get(name))
        if value is None or value <= 0:
            return default
        return value

    def flag(self, name: str) -> bool:
        return parse_bool(self.optional_params.get(name))

    def with_params(self, **overrides: Any) -> "AnalyticsQuery":
        merged = dict(self.optional_params)
        merged.update({k: str(v) for k, v in overrides.items() if v is not None})
        return AnalyticsQuery(self.base, self.target, MappingProxyType(merged))


class Outcome(str, Enum):
    """Which path produced a resource result."""
    OK = "ok"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True)
class ResourceResult:
    """Tagged result of one proxy resource call.

    ``OK`` and ``EMPTY`` serialize to the same wire shape with status 200;
    the tag and ``reason`` exist for logging and tests only.
    """

    outcome: Outcome
    body: Any
    status_code: int = 200
    reason: str = ""

    @classmethod
    def ok(cls, body: Any, status_code: int = 200) -> "ResourceResult":
        return cls(Outcome.OK, body, status_code)

    @classmethod
    def empty(cls, body: Any, reason: str) -> "ResourceResult":
        return cls(Outcome.EMPTY, body, 200, reason)

    @classmethod
    def error(cls, status_code: int, message: Any) -> "ResourceResult":
        return cls(Outcome.ERROR, {"error": message}, status_code, str(message))

    @property
    def is_fallback(self) -> bool:
        return self.outcome is Outcome.EMPTY


@dataclass
class PredictionValue:
    timestamp: str
    mean: float
    lower_bound: float
    upper_bound: float
    is_historical: bool = False


@dataclass
class InfluencingFactor:
    factor_name: str
    impact_level: str
    used_in_prediction: bool


@dataclass
class Prediction:
    """Normalized currency prediction."""
    base_currency: str
    target_currency: str
    current_rate: float
    change_percent: float
    confidence_score: float
    model_version: str
    input_data_range: str
    influencing_factors: List[InfluencingFactor] = field(default_factory=list)
    prediction_values: List[PredictionValue] = field(default_factory=list)
    mean_square_error: Optional[float] = None
    root_mean_square_error: Optional[float] = None
    mean_absolute_error: Optional[float] = None

    @property
    def forecast(self) -> List[PredictionValue]:
        return [v for v in self.prediction_values if not v.is_historical]

    @property
    def backtest(self) -> List[PredictionValue]:
        return [v for v in self.prediction_values if v.is_historical]


@dataclass
class VolatilityAnalysis:
    base_currency: str
    target_currency: str
    current_volatility: float
    average_volatility: float
    volatility_level: str  # NORMAL | HIGH | EXTREME
    analysis_period_days: int
    trend: str  # STABLE | INCREASING | DECREASING
    confidence_score: Optional[float] = None


@dataclass
class CorrelationFactor:
    factor: str
    correlation: float
    type: str
    actual_correlation: Optional[float] = None


@dataclass
class CorrelationAnalysis:
    base_currency: str
    target_currency: str
    confidence_score: float
    data_completeness: float
    analysis_period_days: int
    influencing_factors: List[CorrelationFactor] = field(default_factory=list)
    correlations: Dict[str, Dict[str, float]] = field(default_factory=dict)


@dataclass
class AnomalyPoint:
    timestamp: str
    rate: float
    z_score: float
    percent_change: float


@dataclass
class AnomalyDetectionResult:
    base: str
    target: str
    anomaly_count: int
    analysis_period_days: int
    anomaly_points: List[AnomalyPoint] = field(default_factory=list)


@dataclass
class NewsArticle:
    title: str
    source: str
    url: str
    summary: str
    sentiment_score: float
    sentiment_label: str
    currency: str
    published_at: str = ""


@dataclass
class HistoricalDataPoint:
    date: str
    open: float
    high: float
    low: float
    close: float
