"""Per-source spacing for outbound result lookups."""

from typing import Dict, Optional
import threading
import time


class RateLimiter:
    """Keeps at least ``interval`` seconds between calls to the same source.

    Live polling of a match runs every few minutes, so a coarse monotonic
    clock gate is enough; there is no token bucket.
    """

    def __init__(self, default_interval: float = 1.0, overrides: Optional[Dict[str, float]] = None) -> None:
        self._default_interval = max(0.0, default_interval)
        self._overrides: Dict[str, float] = dict(overrides or {})
        self._last_called: Dict[str, float] = {}
        self._lock = threading.Lock()

    def set_interval(self, source: str, interval: float) -> None:
        self._overrides[source] = max(0.0, interval)

    def interval_for(self, source: str) -> float:
        return self._overrides.get(source, self._default_interval)

    def wait(self, source: str) -> float:
        """Block until ``source`` may be called again; returns the time slept."""
        min_interval = self.interval_for(source)
        with self._lock:
            now = time.monotonic()
            last = self._last_called.get(source)
            sleep_for = 0.0 if last is None else max(0.0, min_interval - (now - last))
            if sleep_for > 0:
                time.sleep(sleep_for)
                now = time.monotonic()
            self._last_called[source] = now
        return sleep_for

    def reset(self, source: Optional[str] = None) -> None:
        with self._lock:
            if source is None:
                self._last_called.clear()
            else:
                self._last_called.pop(source, None)


_DEFAULT_RATE_LIMITER = RateLimiter()


def get_rate_limiter() -> RateLimiter:
    return _DEFAULT_RATE_LIMITER
