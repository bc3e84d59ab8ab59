from __future__ import annotations

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Bodies are validated leniently: every field is optional here and the proxy
# decides which missing fields are a 400. Unknown keys are kept.
Scalar = Union[str, int, float]


class LenientBody(BaseModel):
    model_config = ConfigDict(extra="allow")

    @field_validator("*", mode="before")
    @classmethod
    def _strip_strings(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    def to_params(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class CorrelationRequest(LenientBody):
    base: Optional[str] = None
    target: Optional[str] = None
    days: Optional[Scalar] = Field(default=None, description="Lookback window in days")


class AnomalyRequest(LenientBody):
    base: Optional[str] = None
    target: Optional[str] = None
    days: Optional[Scalar] = None


class PredictionRequest(LenientBody):
    base: Optional[str] = None
    target: Optional[str] = None
    refresh: Optional[Union[bool, str]] = None
    forecast_horizon: Optional[Scalar] = None
    model: Optional[str] = Field(default=None, description="arima|statistical|auto")
    confidence: Optional[Scalar] = None
    backtest: Optional[Union[bool, str]] = None


class AlertRegistrationRequest(LenientBody):
    base: Optional[str] = None
    target: Optional[str] = None
    alert_type: Optional[str] = None
    threshold: Optional[Scalar] = None
    email: Optional[str] = None
