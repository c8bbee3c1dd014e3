"""Exceptions raised for misuse of the pipeline library.

Domain failures never surface as exceptions: stages report them through
``Err`` results. The classes below signal programming errors in how a
pipeline or its request scope is wired up.
"""


class PipelineConfigurationError(Exception):
    """Base class for pipeline wiring errors."""


class StageContractError(PipelineConfigurationError):
    """A stage called ``next`` twice, or after it had already returned."""

    def __init__(self, stage_name: str, reason: str):
        self.stage_name = stage_name
        self.reason = reason
        super().__init__(f"Stage '{stage_name}' broke the delegation contract: {reason}")


class ServiceNotRegisteredError(PipelineConfigurationError, KeyError):
    """No registration exists for the requested service key."""

    def __init__(self, key):
        self.key = key
        super().__init__(f"No service registered for {key!r}")

    def __str__(self) -> str:
        return self.args[0]
