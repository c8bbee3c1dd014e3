"""Pipeline stages."""

from .common import CancellationStage, TimingStage, TransformStage, ValidationStage
from .forecast import (
    FORECAST_RECORDS,
    FORECAST_RESPONSE,
    FetchForecastStage,
    ForecastRequest,
    RespondStage,
    ValidateForecastRequestStage,
    build_forecast_pipeline,
)

__all__ = [
    "CancellationStage",
    "TimingStage",
    "TransformStage",
    "ValidationStage",
    "FORECAST_RECORDS",
    "FORECAST_RESPONSE",
    "ForecastRequest",
    "ValidateForecastRequestStage",
    "FetchForecastStage",
    "RespondStage",
    "build_forecast_pipeline",
]
