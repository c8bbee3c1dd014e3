"""Advisory cancellation signal threaded through the pipeline context."""

import threading
from typing import Optional


class CancellationToken:
    """
    Thread-safe, one-way cancellation flag.

    The pipeline never acts on the token itself. Stages poll
    ``is_cancelled`` and short-circuit with a ``CANCELLED`` error.
    """

    def __init__(self):
        self._event = threading.Event()
        self._reason: Optional[str] = None
        self._lock = threading.Lock()

    @classmethod
    def none(cls) -> "CancellationToken":
        """Token that nobody holds a reference to cancel."""
        return cls()

    def cancel(self, reason: str = "cancelled") -> None:
        with self._lock:
            if not self._event.is_set():
                self._reason = reason
                self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def __repr__(self) -> str:
        state = f"cancelled: {self._reason}" if self.is_cancelled else "active"
        return f"CancellationToken({state})"
