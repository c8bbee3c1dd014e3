"""Forecast API endpoints."""

import logging
from typing import Any, Dict, List, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from domain_pipeline.dependencies import get_forecast_service, get_service_scope
from domain_pipeline.pipeline.result import ErrorKind, PipelineError
from domain_pipeline.pipeline.services import ServiceScope
from domain_pipeline.pipeline.stages.forecast import FORECAST_RESPONSE
from domain_pipeline.services.forecast_service import ForecastService

logger = logging.getLogger(__name__)

# Create router for forecast endpoints
router = APIRouter(prefix="/api/forecasts", tags=["forecasts"])

ERROR_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.DEPENDENCY_FAILURE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.CANCELLED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.UNEXPECTED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ForecastDay(BaseModel):
    """One day of forecast data."""

    date: str = Field(..., description="ISO date")
    temperature_c: float
    temperature_f: float
    summary: str


class ForecastResponse(BaseModel):
    """Response model for a forecast lookup."""

    city: str
    generated_at: str = Field(..., description="ISO timestamp of response generation")
    forecasts: List[ForecastDay]


def error_status(errors: Tuple[PipelineError, ...]) -> int:
    """HTTP status for an error result; the first error's kind decides."""
    return ERROR_STATUS.get(errors[0].kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_envelope(errors: Tuple[PipelineError, ...]) -> Dict[str, Any]:
    return {"errors": [{"code": e.code, "description": e.description} for e in errors]}


@router.get("/{city}", response_model=ForecastResponse)
async def get_forecast(
    city: str,
    days: int = Query(3, description="Number of days to forecast"),
    scope: ServiceScope = Depends(get_service_scope),
    service: ForecastService = Depends(get_forecast_service),
):
    """
    Get the forecast for a city.

    Runs the validate -> fetch -> respond pipeline and translates an error
    result into an HTTP error with a uniform ``{"errors": [...]}`` body.
    """
    result = await service.get_forecast(city, days, scope)

    def on_error(errors: Tuple[PipelineError, ...]):
        code = error_status(errors)
        if code >= 500:
            logger.error(f"Forecast request for {city!r} failed: {[e.code for e in errors]}")
        raise HTTPException(status_code=code, detail=error_envelope(errors))

    return result.match(lambda context: context.get(FORECAST_RESPONSE), on_error)
