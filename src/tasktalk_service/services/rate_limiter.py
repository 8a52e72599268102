"""Per-identity fixed-window request limiting."""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from .cache import InMemoryStore, Store

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"


@dataclass
class RateWindow:
    """Request count for one identity within the current window."""

    identity: str
    count: int
    reset_at: float


class RateLimiter:
    """
    Fixed-window limiter: the counter resets entirely once a window expires.

    State is process-local and lost on restart, so this is a best-effort guard
    rather than a hard quota.
    """

    def __init__(
        self,
        limit: int = 10,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        store: Store | None = None,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Store = store if store is not None else InMemoryStore()
        # read-modify-write of a window must not interleave
        self._lock = threading.Lock()

    @staticmethod
    def _identity(identity: str | None) -> str:
        return identity or ANONYMOUS

    def allow(self, identity: str | None) -> bool:
        """Record a request for the identity and report whether it may proceed."""
        key = self._identity(identity)
        now = self._clock()

        with self._lock:
            window: RateWindow | None = self._windows.get(key)
            if window is None or now > window.reset_at:
                self._windows.put(key, RateWindow(identity=key, count=1, reset_at=now + self.window_seconds))
                return True

            if window.count >= self.limit:
                logger.warning(f"Rate limit reached for {key} ({window.count}/{self.limit})")
                return False

            window.count += 1
            self._windows.put(key, window)
            return True

    def retry_after(self, identity: str | None) -> float:
        """Seconds until the identity's current window resets."""
        with self._lock:
            window: RateWindow | None = self._windows.get(self._identity(identity))
            if window is None:
                return 0.0
            return max(0.0, window.reset_at - self._clock())
