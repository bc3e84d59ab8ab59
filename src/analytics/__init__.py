"""Shared normalization and fallback core for the dashboard."""

from src.analytics.coercion import coerce_number
from src.analytics.envelope import AdageEnvelope, AdageEvent
from src.analytics.mock_data import MockDataGenerator
from src.analytics.models import AnalyticsQuery, Outcome, ResourceResult

__all__ = [
    "AdageEnvelope",
    "AdageEvent",
    "AnalyticsQuery",
    "MockDataGenerator",
    "Outcome",
    "ResourceResult",
    "coerce_number",
]
