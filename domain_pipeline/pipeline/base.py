"""Stage contract and the composer that folds stages into one pipeline.

A stage wraps the rest of the pipeline: it receives the context plus a
``next`` callable and decides whether to delegate, post-process the
downstream result or short-circuit with an ``Err``. The composer folds the
ordered stages around a terminal function that always succeeds, so the
first stage supplied is the outermost wrapper and runs first.
"""

import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Sequence, Union

from ..exceptions import StageContractError
from .context import PipelineContext
from .result import Err, ErrorKind, Ok, PipelineError, Result

logger = logging.getLogger(__name__)

AsyncNext = Callable[[PipelineContext], Awaitable[Result]]
SyncNext = Callable[[PipelineContext], Result]
Wrapper = Callable[[Any], Any]

UNHANDLED_EXCEPTION_CODE = "pipeline.unhandled_exception"


async def terminal_stage(context: PipelineContext) -> Result:
    """Innermost function of every async pipeline."""
    return Ok(context)


def sync_terminal_stage(context: PipelineContext) -> Result:
    """Innermost function of every synchronous pipeline."""
    return Ok(context)


def compose(wrappers: Sequence[Wrapper], terminal: Callable[[PipelineContext], Any]) -> Callable[[PipelineContext], Any]:
    """
    Fold wrappers (``next -> (context -> result)``) around ``terminal``.

    The fold runs from last to first so ``wrappers[0]`` becomes the outermost
    function. Composition has no side effects and cannot fail.
    """
    pipeline = terminal
    for wrapper in reversed(list(wrappers)):
        pipeline = wrapper(pipeline)
    return pipeline


class _NextGuard:
    """Per-invocation ``next`` handle enforcing single-pass delegation."""

    __slots__ = ("_next", "_stage_name", "_called", "_returned")

    def __init__(self, nxt: Callable, stage_name: str):
        self._next = nxt
        self._stage_name = stage_name
        self._called = False
        self._returned = False

    def __call__(self, context: PipelineContext):
        if self._returned:
            raise StageContractError(self._stage_name, "next called after the stage returned")
        if self._called:
            raise StageContractError(self._stage_name, "next called more than once")
        self._called = True
        return self._next(context)

    def release(self) -> None:
        self._returned = True


def _checked(result: Any, stage_name: str) -> Result:
    """Reject anything a stage returns that is not an Ok or Err."""
    if isinstance(result, (Ok, Err)):
        return result
    if inspect.iscoroutine(result):
        # un-awaited next(); close it so the downstream never starts
        result.close()
    raise StageContractError(stage_name, f"handle returned {type(result).__name__}, expected Ok or Err")


class Stage(ABC):
    """Base class for async pipeline stages. Must return a Result and never mutate the input context."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def handle(self, context: PipelineContext, next: AsyncNext) -> Result:
        """
        Process the context.

        Either return ``await next(new_context)`` to delegate, or return an
        ``Err`` without calling ``next`` to short-circuit. ``next`` may be
        called at most once.
        """
        pass

    def wrap(self, next: AsyncNext) -> AsyncNext:
        stage = self

        async def invoke(context: PipelineContext) -> Result:
            guard = _NextGuard(next, stage.name)
            try:
                return _checked(await stage.handle(context, guard), stage.name)
            finally:
                guard.release()

        return invoke


class SyncStage(ABC):
    """Blocking counterpart of ``Stage`` for use with ``SyncPipeline``."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def handle(self, context: PipelineContext, next: SyncNext) -> Result:
        pass

    def wrap(self, next: SyncNext) -> SyncNext:
        stage = self

        def invoke(context: PipelineContext) -> Result:
            guard = _NextGuard(next, stage.name)
            try:
                return _checked(stage.handle(context, guard), stage.name)
            finally:
                guard.release()

        return invoke


def _stage_name(stage: Any) -> str:
    if isinstance(stage, (Stage, SyncStage)):
        return stage.name
    return getattr(stage, "__name__", type(stage).__name__)


def _as_wrapper(stage: Any) -> Wrapper:
    if isinstance(stage, (Stage, SyncStage)):
        return stage.wrap
    if callable(stage):
        return stage
    raise TypeError(f"Pipeline stage must be a Stage or a callable wrapper, got {type(stage).__name__}")


def _unhandled(exc: Exception) -> Err:
    return Err.of(
        PipelineError(
            UNHANDLED_EXCEPTION_CODE,
            f"{type(exc).__name__}: {exc}",
            ErrorKind.UNEXPECTED,
            {"exception_type": type(exc).__name__},
        )
    )


class _BasePipeline:
    _terminal: Callable[[PipelineContext], Any]

    def __init__(self, stages: List[Union[Stage, SyncStage, Wrapper]] | None = None):
        self.stages = list(stages or [])
        self._pipeline = compose([_as_wrapper(s) for s in self.stages], type(self)._terminal)

    def with_stage(self, stage: Union[Stage, SyncStage, Wrapper]):
        """
        Return new pipeline with stage appended.

        Creates a new pipeline, leaves the original unchanged.
        """
        return type(self)(self.stages + [stage])

    @property
    def stage_names(self) -> List[str]:
        return [_stage_name(s) for s in self.stages]

    def __len__(self) -> int:
        return len(self.stages)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(stages={self.stage_names})"


class Pipeline(_BasePipeline):
    """Async chain of stages. Immutable and reentrant - with_stage() returns a new pipeline."""

    _terminal = staticmethod(terminal_stage)

    async def invoke(self, context: PipelineContext) -> Result:
        """Run the composed pipeline against one seed context. Never raises for stage failures."""
        try:
            return await self._pipeline(context)
        except Exception as e:
            logger.error(f"Unhandled exception in pipeline {self.stage_names}: {e}", exc_info=True)
            return _unhandled(e)

    async def run(self, request: Any, services=None, cancellation=None) -> Result:
        """Seed a fresh context from ``request`` and invoke."""
        return await self.invoke(PipelineContext.seed(request, services, cancellation))


class SyncPipeline(_BasePipeline):
    """Blocking chain of ``SyncStage`` objects or sync wrappers; safe to call from many threads."""

    _terminal = staticmethod(sync_terminal_stage)

    def invoke(self, context: PipelineContext) -> Result:
        try:
            return self._pipeline(context)
        except Exception as e:
            logger.error(f"Unhandled exception in pipeline {self.stage_names}: {e}", exc_info=True)
            return _unhandled(e)

    def run(self, request: Any, services=None, cancellation=None) -> Result:
        return self.invoke(PipelineContext.seed(request, services, cancellation))
