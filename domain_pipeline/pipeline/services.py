"""Request-scoped dependency resolution for pipeline stages.

A ``ServiceProvider`` is built once at application start-up. Each pipeline
invocation gets its own ``ServiceScope`` so scoped services (repositories,
sessions) are never shared between concurrent invocations.
"""

import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, Hashable, List, Tuple

from ..exceptions import ServiceNotRegisteredError

logger = logging.getLogger(__name__)


class Lifetime(Enum):
    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"


Factory = Callable[["ServiceScope"], Any]


class ServiceProvider:
    """Registry of service factories keyed by type or name."""

    def __init__(self):
        self._registrations: Dict[Hashable, Tuple[Factory, Lifetime]] = {}
        self._singletons: Dict[Hashable, Any] = {}
        self._lock = threading.RLock()

    def register(self, key: Hashable, factory: Factory, lifetime: Lifetime = Lifetime.SCOPED) -> "ServiceProvider":
        self._registrations[key] = (factory, lifetime)
        return self

    def add_singleton(self, key: Hashable, instance: Any) -> "ServiceProvider":
        with self._lock:
            self._singletons[key] = instance
        return self.register(key, lambda scope: instance, Lifetime.SINGLETON)

    def add_scoped(self, key: Hashable, factory: Factory) -> "ServiceProvider":
        return self.register(key, factory, Lifetime.SCOPED)

    def add_transient(self, key: Hashable, factory: Factory) -> "ServiceProvider":
        return self.register(key, factory, Lifetime.TRANSIENT)

    def is_registered(self, key: Hashable) -> bool:
        return key in self._registrations

    def create_scope(self) -> "ServiceScope":
        return ServiceScope(self)

    def _registration(self, key: Hashable) -> Tuple[Factory, Lifetime]:
        try:
            return self._registrations[key]
        except KeyError:
            raise ServiceNotRegisteredError(key) from None

    def _singleton(self, key: Hashable, factory: Factory, scope: "ServiceScope") -> Any:
        with self._lock:
            if key not in self._singletons:
                self._singletons[key] = factory(scope)
            return self._singletons[key]


class ServiceScope:
    """Per-invocation view over a provider; caches scoped instances."""

    def __init__(self, provider: ServiceProvider):
        self._provider = provider
        self._instances: Dict[Hashable, Any] = {}
        self._owned: List[Any] = []
        self._closed = False

    def get(self, key: Hashable) -> Any:
        if self._closed:
            raise RuntimeError("ServiceScope is closed")

        factory, lifetime = self._provider._registration(key)

        if lifetime is Lifetime.SINGLETON:
            return self._provider._singleton(key, factory, self)

        if lifetime is Lifetime.SCOPED:
            if key not in self._instances:
                self._instances[key] = factory(self)
                self._owned.append(self._instances[key])
            return self._instances[key]

        instance = factory(self)
        self._owned.append(instance)
        return instance

    def close(self) -> None:
        """Close every instance this scope created, newest first."""
        if self._closed:
            return
        self._closed = True
        for instance in reversed(self._owned):
            close = getattr(instance, "close", None)
            if callable(close):
                try:
                    close()
                except Exception as e:
                    logger.error(f"Error closing scoped service {type(instance).__name__}: {e}", exc_info=True)
        self._owned.clear()
        self._instances.clear()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "ServiceScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
