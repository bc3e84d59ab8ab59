from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: Any


class ExchangeRateResponse(BaseModel):
    rate: float


class AnomalyResponse(BaseModel):
    """Flat anomaly shape served by /api/anomalies."""
    base: str
    target: str
    anomaly_count: int
    analysis_period_days: int
    anomaly_points: list


class ComponentHealth(BaseModel):
    status: str
    message: str
    upstream: Optional[str] = None
    mock_data: Optional[bool] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    components: Dict[str, ComponentHealth]


ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid request parameters"},
    500: {"model": ErrorResponse, "description": "Unexpected server error"},
}
