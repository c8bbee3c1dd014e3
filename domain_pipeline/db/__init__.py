"""Data access for pipeline stages."""

from .forecast_db import ForecastRecord, ForecastRepository, InMemoryForecastRepository, RepositoryUnavailableError

__all__ = [
    "ForecastRecord",
    "ForecastRepository",
    "InMemoryForecastRepository",
    "RepositoryUnavailableError",
]
