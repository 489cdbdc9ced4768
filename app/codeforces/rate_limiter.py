import time
import threading


class RateLimiter:
    """Thread-safe minimum-interval gate for outbound API calls.

    Every call to :meth:`wait` blocks until at least ``min_interval`` seconds
    have passed since the previous call was let through. ``clock`` and
    ``sleep`` are injectable so tests can drive the limiter with a fake clock.
    """

    def __init__(self, min_interval: float = 2.0, clock=time.monotonic, sleep=time.sleep):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_request_time = None
        self._lock = threading.Lock()

    def wait(self) -> float:
        """Block until the next call may fire. Returns the seconds slept."""
        with self._lock:
            slept = 0.0
            if self._last_request_time is not None:
                elapsed = self._clock() - self._last_request_time
                if elapsed < self.min_interval:
                    slept = self.min_interval - elapsed
                    self._sleep(slept)
            self._last_request_time = self._clock()
            return slept


_platform_limiters = {}
_registry_lock = threading.Lock()


def get_platform_limiter(platform: str, min_interval: float = 2.0) -> RateLimiter:
    """Get or create a shared rate limiter for a platform.

    The interval of an existing limiter is updated so a config change takes
    effect for every client sharing it.
    """
    with _registry_lock:
        limiter = _platform_limiters.get(platform)
        if limiter is None:
            limiter = RateLimiter(min_interval)
            _platform_limiters[platform] = limiter
        else:
            limiter.min_interval = min_interval
        return limiter
