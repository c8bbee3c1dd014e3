"""Forecast service bridging callers and the forecast pipeline."""

import logging
from typing import Optional

from domain_pipeline.pipeline.base import Pipeline
from domain_pipeline.pipeline.cancellation import CancellationToken
from domain_pipeline.pipeline.result import Err, Result
from domain_pipeline.pipeline.services import ServiceScope
from domain_pipeline.pipeline.stages.forecast import ForecastRequest, build_forecast_pipeline

logger = logging.getLogger(__name__)


class ForecastService:
    """
    Service class for forecast lookups.

    Owns one composed forecast pipeline (stateless, shared by every
    request) and seeds a fresh context per call with the caller's
    request scope and cancellation token.
    """

    def __init__(self, pipeline: Optional[Pipeline] = None):
        self.pipeline = pipeline or build_forecast_pipeline()

    async def get_forecast(
        self,
        city: str,
        days: int,
        scope: ServiceScope,
        cancellation: Optional[CancellationToken] = None,
    ) -> Result:
        """
        Run the forecast pipeline for one request.

        Args:
            city: City name as supplied by the caller
            days: Number of days requested
            scope: Request-scoped services (must provide ForecastRepository)
            cancellation: Optional cancellation token

        Returns:
            Ok with FORECAST_RESPONSE populated, or Err from the first failing stage
        """
        result = await self.pipeline.run(ForecastRequest(city=city, days=days), scope, cancellation)

        if isinstance(result, Err):
            logger.info(f"Forecast lookup for {city!r} failed: {[e.code for e in result.errors]}")
        else:
            logger.info(f"Forecast lookup for {city!r} succeeded")
        return result
