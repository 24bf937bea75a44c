import threading
import time
from typing import Optional

from shared.modules.errors import DeadlineExceeded, OperationCancelled


class Deadline:
    """
    Per-request cancellation and deadline signal.

    Created by the request handler and threaded through every repository and
    cache call. `check()` is called before each blocking step; cancellation
    takes precedence over expiry so callers can tell the two apart.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._expires_at = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = threading.Event()

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def remaining(self) -> Optional[float]:
        """Seconds left, or None when there is no deadline."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def slice(self, interval: float) -> float:
        """Wait budget for one polling step: the interval capped by what is left."""
        remaining = self.remaining()
        if remaining is None:
            return interval
        return min(interval, remaining)

    def check(self):
        if self.cancelled:
            raise OperationCancelled("operation cancelled by caller")
        if self.expired:
            raise DeadlineExceeded(f"deadline of {self.timeout}s exceeded")

    def __repr__(self):
        return f"Deadline(timeout={self.timeout}, remaining={self.remaining()}, cancelled={self.cancelled})"
