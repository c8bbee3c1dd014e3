"""Pytest configuration and shared fixtures for domain pipeline tests.

This module provides:
- Basic pytest configuration
- Common fixtures (service provider, repository, seed contexts)
- Recording stages for asserting execution order
- Setup/teardown for test isolation
"""

import os
import sys
from datetime import date
from pathlib import Path
from typing import List

import pytest

# Add project root to Python path to allow imports from domain_pipeline
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from domain_pipeline.db.forecast_db import ForecastRepository, InMemoryForecastRepository, sample_records
from domain_pipeline.pipeline.base import Stage
from domain_pipeline.pipeline.context import ContextKey, PipelineContext
from domain_pipeline.pipeline.result import Err, PipelineError
from domain_pipeline.pipeline.services import ServiceProvider


# ==================== Pytest Configuration ====================

def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers",
        "asyncio: mark test as async (automatically handled by pytest-asyncio)"
    )
    config.addinivalue_line(
        "markers",
        "unit: mark test as a unit test (fast, isolated)"
    )
    config.addinivalue_line(
        "markers",
        "integration: mark test as an integration test (slower, multiple components)"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (may take several seconds)"
    )


# ==================== Environment Fixtures ====================

@pytest.fixture(scope="function", autouse=True)
def isolate_environment():
    """Isolate each test by preventing environment variable pollution."""
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ==================== Recording Stages ====================

TRAIL = ContextKey("trail")


class RecordingStage(Stage):
    """Appends its label to a shared call log and to the context trail, then delegates."""

    def __init__(self, label: str, calls: List[str]):
        self.label = label
        self.calls = calls

    @property
    def name(self) -> str:
        return f"Recording[{self.label}]"

    async def handle(self, context, next):
        self.calls.append(self.label)
        trail = context.get(TRAIL, ())
        return await next(context.set(TRAIL, trail + (self.label,)))


class FailingStage(Stage):
    """Records itself then short-circuits."""

    def __init__(self, label: str, calls: List[str], code: str = "test.failed"):
        self.label = label
        self.calls = calls
        self.code = code

    async def handle(self, context, next):
        self.calls.append(self.label)
        return Err.of(PipelineError.validation(self.code, f"{self.label} rejected the request"))


@pytest.fixture
def calls() -> List[str]:
    """Shared execution log for recording stages."""
    return []


# ==================== Forecast Fixtures ====================

@pytest.fixture
def forecast_start() -> date:
    return date(2024, 3, 1)


@pytest.fixture
def forecast_repository(forecast_start) -> InMemoryForecastRepository:
    """Repository preloaded with deterministic sample data."""
    return InMemoryForecastRepository(sample_records(start=forecast_start))


@pytest.fixture
def service_provider(forecast_repository) -> ServiceProvider:
    """Provider whose scopes resolve the shared test repository."""
    provider = ServiceProvider()
    provider.add_scoped(ForecastRepository, lambda scope: forecast_repository)
    return provider


@pytest.fixture
def service_scope(service_provider):
    with service_provider.create_scope() as scope:
        yield scope


@pytest.fixture
def seed_context() -> PipelineContext:
    return PipelineContext.seed({"query": "test"})
