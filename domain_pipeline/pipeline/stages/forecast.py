"""Forecast lookup stages: validate the request, fetch data, build the response."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from ... import config
from ...db.forecast_db import ForecastRecord, ForecastRepository
from ..base import AsyncNext, Pipeline, Stage
from ..context import ContextKey, PipelineContext
from ..result import Err, PipelineError, Result
from .common import TimingStage

logger = logging.getLogger(__name__)


# Context keys for the forecast pipeline
FORECAST_RECORDS = ContextKey("forecast_records")
FORECAST_RESPONSE = ContextKey("forecast_response")


@dataclass(frozen=True)
class ForecastRequest:
    city: str
    days: int = 3


class ValidateForecastRequestStage(Stage):
    """Checks the request shape and reports every violation at once."""

    def __init__(self, max_days: Optional[int] = None):
        self.max_days = max_days if max_days is not None else config.FORECAST_MAX_DAYS

    @property
    def name(self) -> str:
        return "ValidateForecastRequest"

    async def handle(self, context: PipelineContext, next: AsyncNext) -> Result:
        request = context.request
        if not isinstance(request, ForecastRequest):
            return Err.of(
                PipelineError.validation(
                    "forecast.invalid_request",
                    f"Expected ForecastRequest, got {type(request).__name__}",
                )
            )

        errors: List[PipelineError] = []
        city = request.city.strip() if isinstance(request.city, str) else request.city
        if city is not None and not isinstance(city, str):
            errors.append(
                PipelineError.validation("forecast.invalid_field", "City must be a string", field="city")
            )
        elif not city:
            errors.append(PipelineError.validation("forecast.city_required", "City is required", field="city"))

        # bool is an int subclass
        if isinstance(request.days, bool) or not isinstance(request.days, int):
            errors.append(
                PipelineError.validation("forecast.invalid_field", "Days must be an integer", field="days")
            )
        elif not 1 <= request.days <= self.max_days:
            errors.append(
                PipelineError.validation(
                    "forecast.days_out_of_range",
                    f"Days must be between 1 and {self.max_days}",
                    field="days",
                    value=request.days,
                )
            )

        if errors:
            logger.info(f"Rejected forecast request: {[e.code for e in errors]}")
            return Err.from_iterable(errors)

        return await next(context.with_request(ForecastRequest(city=city, days=request.days)))


class FetchForecastStage(Stage):
    """
    Loads forecast records through the request-scoped ``ForecastRepository``.

    Short-circuits with NOT_FOUND when the repository has nothing for the
    city, and with DEPENDENCY_FAILURE when the repository raises.
    """

    @property
    def name(self) -> str:
        return "FetchForecast"

    async def handle(self, context: PipelineContext, next: AsyncNext) -> Result:
        if context.cancellation.is_cancelled:
            return Err.of(PipelineError.cancelled(f"Forecast lookup cancelled: {context.cancellation.reason}"))

        request: ForecastRequest = context.request
        repository: ForecastRepository = context.resolve(ForecastRepository)

        try:
            records = repository.get_forecasts(request.city, request.days)
        except Exception as e:
            logger.error(f"Forecast repository failed for {request.city}: {e}", exc_info=True)
            return Err.of(
                PipelineError.dependency_failure(
                    "forecast.repository_unavailable",
                    "Forecast data source is unavailable",
                    city=request.city,
                )
            )

        if not records:
            return Err.of(PipelineError.not_found("forecast.not_found", "No data found", city=request.city))

        return await next(context.set(FORECAST_RECORDS, records))


class RespondStage(Stage):
    """Shapes fetched records into the response payload."""

    @property
    def name(self) -> str:
        return "Respond"

    async def handle(self, context: PipelineContext, next: AsyncNext) -> Result:
        request: ForecastRequest = context.request
        records: List[ForecastRecord] = context.get(FORECAST_RECORDS, [])

        response = {
            "city": request.city,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "forecasts": [
                {
                    "date": record.day.isoformat(),
                    "temperature_c": record.temperature_c,
                    "temperature_f": record.temperature_f,
                    "summary": record.summary,
                }
                for record in records
            ],
        }
        return await next(context.set(FORECAST_RESPONSE, response))


def build_forecast_pipeline(max_days: Optional[int] = None, log_timings: Optional[bool] = None) -> Pipeline:
    """validate -> fetch -> respond, optionally wrapped in a TimingStage."""
    stages: List[Stage] = [
        ValidateForecastRequestStage(max_days=max_days),
        FetchForecastStage(),
        RespondStage(),
    ]
    if log_timings is None:
        log_timings = config.PIPELINE_LOG_TIMINGS
    if log_timings:
        stages.insert(0, TimingStage("forecast"))
    return Pipeline(stages)
