"""Success-or-error result returned by every pipeline stage."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Tuple, TypeVar, Union

if TYPE_CHECKING:
    from .context import PipelineContext

T = TypeVar("T")


class ErrorKind(Enum):
    """Closed set of failure categories a stage can report."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    DEPENDENCY_FAILURE = "dependency_failure"
    CANCELLED = "cancelled"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class PipelineError:
    """Machine-readable code plus human-readable description."""

    code: str
    description: str
    kind: ErrorKind = ErrorKind.UNEXPECTED
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def validation(cls, code: str, description: str, **metadata: Any) -> "PipelineError":
        return cls(code, description, ErrorKind.VALIDATION, metadata)

    @classmethod
    def not_found(cls, code: str, description: str, **metadata: Any) -> "PipelineError":
        return cls(code, description, ErrorKind.NOT_FOUND, metadata)

    @classmethod
    def dependency_failure(cls, code: str, description: str, **metadata: Any) -> "PipelineError":
        return cls(code, description, ErrorKind.DEPENDENCY_FAILURE, metadata)

    @classmethod
    def cancelled(cls, description: str = "Operation was cancelled") -> "PipelineError":
        return cls("pipeline.cancelled", description, ErrorKind.CANCELLED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "description": self.description,
            "kind": self.kind.value,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class Ok:
    """Successful traversal carrying the final context."""

    context: "PipelineContext"

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_error(self) -> bool:
        return False

    def match(
        self,
        on_ok: Callable[["PipelineContext"], T],
        on_error: Callable[[Tuple[PipelineError, ...]], T],
    ) -> T:
        return on_ok(self.context)


@dataclass(frozen=True)
class Err:
    """Short-circuit carrying one or more error descriptors."""

    errors: Tuple[PipelineError, ...]

    def __post_init__(self):
        errors = tuple(self.errors)
        if not errors:
            raise ValueError("Err requires at least one PipelineError")
        object.__setattr__(self, "errors", errors)

    @classmethod
    def of(cls, *errors: PipelineError) -> "Err":
        return cls(errors)

    @classmethod
    def from_iterable(cls, errors: Iterable[PipelineError]) -> "Err":
        return cls(tuple(errors))

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_error(self) -> bool:
        return True

    @property
    def first(self) -> PipelineError:
        return self.errors[0]

    def match(
        self,
        on_ok: Callable[["PipelineContext"], T],
        on_error: Callable[[Tuple[PipelineError, ...]], T],
    ) -> T:
        return on_error(self.errors)


Result = Union[Ok, Err]
