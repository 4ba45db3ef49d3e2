import time
from contextlib import contextmanager
from typing import Callable, Dict

from settings.loader import RateLimit, Settings


class TokenBucketLimiter:
    """Paces calls to a remote API: `burst` calls up front, then `rate_per_sec`.

    Requests are issued one after another, so the bucket is not shared
    between threads.
    """

    def __init__(
        self,
        rate_per_sec: float,
        burst: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if rate_per_sec <= 0:
            raise ValueError("rate_per_sec must be positive")
        if burst < 1:
            raise ValueError("burst must be at least 1")
        self.rate = rate_per_sec
        self.capacity = burst
        self.tokens = float(burst)
        self._clock = clock
        self._sleep = sleep
        self._stamp = clock()

    def _refill(self) -> None:
        now = self._clock()
        self.tokens = min(self.capacity, self.tokens + (now - self._stamp) * self.rate)
        self._stamp = now

    def acquire(self) -> float:
        """Take one token, sleeping until it is available. Returns the wait."""
        self._refill()
        wait = max(0.0, (1 - self.tokens) / self.rate)
        if wait:
            self._sleep(wait)
            self._refill()
            # a fake clock may not advance during sleep
            self.tokens = max(self.tokens, 1.0)
        self.tokens -= 1
        return wait

    @contextmanager
    def __call__(self):
        self.acquire()
        yield


_limiters: Dict[str, TokenBucketLimiter] = {}


def get_limiter(api: str, limit: RateLimit) -> TokenBucketLimiter:
    key = f"{api}:{limit.rate_per_sec}:{limit.burst}"
    if key not in _limiters:
        _limiters[key] = TokenBucketLimiter(limit.rate_per_sec, limit.burst)
    return _limiters[key]


def limiter_for(settings: Settings, api: str = "graph") -> TokenBucketLimiter:
    return get_limiter(api, settings.rate_limit(api))
