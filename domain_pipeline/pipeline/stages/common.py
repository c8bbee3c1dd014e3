"""Reusable stages that are not tied to a particular domain."""

import logging
import time
from typing import Callable, Iterable, Optional, Union

from ..base import AsyncNext, Stage
from ..context import PipelineContext
from ..result import Err, Ok, PipelineError, Result

logger = logging.getLogger(__name__)

STAGE_TIMINGS_METADATA = "stage_timings_ms"


class CancellationStage(Stage):
    """Short-circuits with a CANCELLED error once the context's token is cancelled."""

    async def handle(self, context: PipelineContext, next: AsyncNext) -> Result:
        token = context.cancellation
        if token.is_cancelled:
            logger.info(f"Pipeline cancelled before downstream stages: {token.reason}")
            return Err.of(PipelineError.cancelled(f"Request cancelled: {token.reason}"))
        return await next(context)


class ValidationStage(Stage):
    """
    Runs a validator over the context and short-circuits on any errors.

    The validator returns an iterable of ``PipelineError``; every error it
    reports is returned together so callers can show all problems at once.
    """

    def __init__(self, validator: Callable[[PipelineContext], Iterable[PipelineError]], name: Optional[str] = None):
        self._validator = validator
        self._name = name or getattr(validator, "__name__", "ValidationStage")

    @property
    def name(self) -> str:
        return self._name

    async def handle(self, context: PipelineContext, next: AsyncNext) -> Result:
        errors = list(self._validator(context))
        if errors:
            logger.debug(f"{self.name}: {len(errors)} validation error(s)")
            return Err.from_iterable(errors)
        return await next(context)


class TransformStage(Stage):
    """
    Applies a pure context transformation then delegates.

    ``fn`` may return a new context, or an ``Err`` to stop the pipeline.
    """

    def __init__(self, fn: Callable[[PipelineContext], Union[PipelineContext, Err]], name: Optional[str] = None):
        self._fn = fn
        self._name = name or getattr(fn, "__name__", "TransformStage")

    @property
    def name(self) -> str:
        return self._name

    async def handle(self, context: PipelineContext, next: AsyncNext) -> Result:
        outcome = self._fn(context)
        if isinstance(outcome, Err):
            return outcome
        return await next(outcome)


class TimingStage(Stage):
    """Measures how long everything downstream of it takes."""

    def __init__(self, label: str = "pipeline"):
        self.label = label

    @property
    def name(self) -> str:
        return f"Timing[{self.label}]"

    async def handle(self, context: PipelineContext, next: AsyncNext) -> Result:
        logger.debug(f"{self.label}: started")
        t0 = time.perf_counter()
        result = await next(context)
        elapsed_ms = (time.perf_counter() - t0) * 1000
        logger.debug(f"{self.label}: finished in {elapsed_ms:.2f}ms (ok={result.is_ok})")

        if isinstance(result, Err):
            return result

        timings = dict(result.context.get_metadata(STAGE_TIMINGS_METADATA, {}))
        timings[self.label] = elapsed_ms
        return Ok(result.context.set_metadata(STAGE_TIMINGS_METADATA, timings))
