"""Pipeline context for carrying request state through stages."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Hashable, Optional

from .cancellation import CancellationToken
from .services import ServiceScope


@dataclass(frozen=True)
class ContextKey:
    """Type-safe context key identifier."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class PipelineContext:
    """
    Immutable context that flows through pipeline stages.

    Holds the original request, response fields computed so far, the
    request-scoped service handle and the cancellation signal. Each stage
    receives a context and produces a new one; the context is never
    mutated in place.
    """

    request: Any = None
    services: Optional[ServiceScope] = None
    cancellation: CancellationToken = field(default_factory=CancellationToken.none)
    _data: Dict[str, Any] = field(default_factory=dict, hash=False)
    _metadata: Dict[str, Any] = field(default_factory=dict, hash=False)

    @classmethod
    def seed(
        cls,
        request: Any,
        services: Optional[ServiceScope] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> "PipelineContext":
        """Create the initial context for one invocation (response fields empty)."""
        return cls(
            request=request,
            services=services,
            cancellation=cancellation or CancellationToken.none(),
        )

    def get(self, key: ContextKey, default: Any = None) -> Any:
        """Get value from context."""
        return self._data.get(str(key), default)

    def set(self, key: ContextKey, value: Any) -> "PipelineContext":
        """
        Return a new context with the key set.
        Context is immutable - this returns a new instance.
        """
        new_data = self._data.copy()
        new_data[str(key)] = value
        return replace(self, _data=new_data, _metadata=self._metadata.copy())

    def update(self, **kwargs: Any) -> "PipelineContext":
        """Return a new context with multiple keys set."""
        new_data = self._data.copy()
        new_data.update(kwargs)
        return replace(self, _data=new_data, _metadata=self._metadata.copy())

    def with_request(self, request: Any) -> "PipelineContext":
        """Return a new context carrying a replacement request (e.g. normalized)."""
        return replace(self, request=request, _data=self._data.copy(), _metadata=self._metadata.copy())

    def get_metadata(self, key: str, default: Any = None) -> Any:
        """Get metadata value (for internal pipeline use)."""
        return self._metadata.get(key, default)

    def set_metadata(self, key: str, value: Any) -> "PipelineContext":
        """Return a new context with metadata set."""
        new_metadata = self._metadata.copy()
        new_metadata[key] = value
        return replace(self, _data=self._data.copy(), _metadata=new_metadata)

    def has(self, key: ContextKey) -> bool:
        """Check if key exists in context."""
        return str(key) in self._data

    def keys(self) -> list[str]:
        """Get all data keys."""
        return list(self._data.keys())

    def resolve(self, service_key: Hashable) -> Any:
        """Resolve a request-scoped dependency."""
        if self.services is None:
            raise RuntimeError("PipelineContext has no service scope attached")
        return self.services.get(service_key)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dict (for serialization). Services and cancellation are omitted."""
        return {
            "request": self.request,
            "data": self._data.copy(),
            "metadata": self._metadata.copy(),
        }
