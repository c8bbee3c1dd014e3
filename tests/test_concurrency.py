"""Concurrency tests for reentrant pipeline invocation.

Ensures that concurrent invocations of one composed pipeline:
- each see only their own context chain
- each resolve their own request-scoped services
- keep stage order fixed regardless of interleaving
"""

import asyncio
import random

import pytest

from domain_pipeline.db.forecast_db import ForecastRepository, InMemoryForecastRepository, sample_records
from domain_pipeline.pipeline.base import Pipeline, Stage
from domain_pipeline.pipeline.context import ContextKey
from domain_pipeline.pipeline.result import Err, Ok, PipelineError
from domain_pipeline.pipeline.services import ServiceProvider
from domain_pipeline.pipeline.stages.forecast import FORECAST_RESPONSE, ForecastRequest, build_forecast_pipeline

SEEN = ContextKey("seen")
SCOPE_ID = ContextKey("scope_id")


class SleepyStage(Stage):
    """Suspends for a random interval so invocations interleave."""

    def __init__(self, label: str):
        self.label = label

    async def handle(self, context, next):
        await asyncio.sleep(random.uniform(0, 0.01))
        return await next(context.set(SEEN, context.get(SEEN, ()) + ((self.label, context.request),)))


class RejectOdd(Stage):
    async def handle(self, context, next):
        if context.request % 2:
            return Err.of(PipelineError.validation("odd", f"{context.request} is odd"))
        return await next(context)


class ScopeIdentityStage(Stage):
    async def handle(self, context, next):
        await asyncio.sleep(0)
        return await next(context.set(SCOPE_ID, id(context.resolve("scoped"))))


class TestConcurrentInvocations:
    """Test suite for isolation between concurrent invocations."""

    @pytest.mark.asyncio
    async def test_same_seed_concurrent_invocations_match(self):
        pipeline = Pipeline([SleepyStage("a"), SleepyStage("b")])

        first, second = await asyncio.gather(pipeline.run(2), pipeline.run(2))

        assert first.context.get(SEEN) == second.context.get(SEEN) == (("a", 2), ("b", 2))
        assert first.context is not second.context

    @pytest.mark.asyncio
    @pytest.mark.slow
    async def test_many_interleaved_invocations_are_isolated(self):
        pipeline = Pipeline([SleepyStage("a"), RejectOdd(), SleepyStage("b"), SleepyStage("c")])

        results = await asyncio.gather(*(pipeline.run(n) for n in range(50)))

        for n, result in enumerate(results):
            if n % 2:
                assert isinstance(result, Err)
                assert result.first.description == f"{n} is odd"
            else:
                assert isinstance(result, Ok)
                assert result.context.get(SEEN) == (("a", n), ("b", n), ("c", n))

    @pytest.mark.asyncio
    async def test_each_invocation_gets_its_own_scope(self):
        provider = ServiceProvider().add_scoped("scoped", lambda scope: object())
        pipeline = Pipeline([ScopeIdentityStage()])
        scopes = [provider.create_scope() for _ in range(10)]

        results = await asyncio.gather(*(pipeline.run(i, scope) for i, scope in enumerate(scopes)))

        assert len({r.context.get(SCOPE_ID) for r in results}) == 10

    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_concurrent_forecast_lookups(self):
        provider = ServiceProvider().add_scoped(
            ForecastRepository, lambda scope: InMemoryForecastRepository(sample_records())
        )
        pipeline = build_forecast_pipeline(log_timings=True)
        cities = ["Brisbane", "Melbourne", "Wellington", "Atlantis"] * 5

        async def lookup(city):
            with provider.create_scope() as scope:
                return city, await pipeline.run(ForecastRequest(city=city, days=2), scope)

        outcomes = await asyncio.gather(*(lookup(c) for c in cities))

        for city, result in outcomes:
            if city == "Atlantis":
                assert result.first.description == "No data found"
            else:
                assert result.context.get(FORECAST_RESPONSE)["city"] == city
