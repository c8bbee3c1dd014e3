"""Composable, short-circuiting request pipeline.

This module provides a pipeline abstraction where:
- Each Stage wraps the rest of the pipeline and may delegate or short-circuit
- Stages are folded around a terminal stage in the order given
- PipelineContext carries immutable request state between stages
- Every invocation returns a Result (Ok or Err) instead of raising
"""

from .base import Pipeline, Stage, SyncPipeline, SyncStage, compose, sync_terminal_stage, terminal_stage
from .cancellation import CancellationToken
from .context import ContextKey, PipelineContext
from .result import Err, ErrorKind, Ok, PipelineError, Result
from .services import Lifetime, ServiceProvider, ServiceScope

__all__ = [
    "Stage",
    "SyncStage",
    "Pipeline",
    "SyncPipeline",
    "compose",
    "terminal_stage",
    "sync_terminal_stage",
    "PipelineContext",
    "ContextKey",
    "Ok",
    "Err",
    "Result",
    "PipelineError",
    "ErrorKind",
    "CancellationToken",
    "ServiceProvider",
    "ServiceScope",
    "Lifetime",
]
