"""FastAPI dependency injection utilities.

These dependencies own the application-wide ``ServiceProvider`` and hand
each HTTP request its own ``ServiceScope`` so pipeline stages resolve
repositories per request.
"""

import logging
from typing import Generator, Optional

from domain_pipeline.db.forecast_db import ForecastRepository, InMemoryForecastRepository, sample_records
from domain_pipeline.pipeline.services import ServiceProvider, ServiceScope
from domain_pipeline.services.forecast_service import ForecastService

logger = logging.getLogger(__name__)

_provider: Optional[ServiceProvider] = None
_forecast_service: Optional[ForecastService] = None


def build_service_provider() -> ServiceProvider:
    """Register default services. A new in-memory repository is created per scope."""
    provider = ServiceProvider()
    provider.add_scoped(ForecastRepository, lambda scope: InMemoryForecastRepository(sample_records()))
    return provider


def get_service_provider() -> ServiceProvider:
    """Application-wide provider, built lazily on first use."""
    global _provider
    if _provider is None:
        _provider = build_service_provider()
    return _provider


def get_service_scope() -> Generator[ServiceScope, None, None]:
    """
    FastAPI dependency yielding a request scope with automatic cleanup.

    The scope is always closed when the request completes, closing any
    scoped services it created.
    """
    scope = get_service_provider().create_scope()
    try:
        yield scope
    finally:
        scope.close()


def get_forecast_service() -> ForecastService:
    """Shared ForecastService; its composed pipeline is reentrant."""
    global _forecast_service
    if _forecast_service is None:
        _forecast_service = ForecastService()
    return _forecast_service


def reset_dependencies() -> None:
    """Drop cached provider and service (used by tests and config reloads)."""
    global _provider, _forecast_service
    _provider = None
    _forecast_service = None
