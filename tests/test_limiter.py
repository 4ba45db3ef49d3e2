import pytest

from rate_limit.limiter import TokenBucketLimiter, get_limiter, limiter_for
from settings.loader import RateLimit, Settings


class _Clock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def test_burst_passes_without_waiting():
    clock = _Clock()
    limiter = TokenBucketLimiter(rate_per_sec=2, burst=3, clock=clock, sleep=clock.sleep)
    for _ in range(3):
        with limiter():
            pass
    assert clock.sleeps == []


def test_waits_once_bucket_is_empty():
    clock = _Clock()
    limiter = TokenBucketLimiter(rate_per_sec=2, burst=1, clock=clock, sleep=clock.sleep)
    with limiter():
        pass
    with limiter():
        pass
    assert clock.sleeps == [pytest.approx(0.5)]


def test_refills_over_time():
    clock = _Clock()
    limiter = TokenBucketLimiter(rate_per_sec=1, burst=1, clock=clock, sleep=clock.sleep)
    with limiter():
        pass
    clock.now += 1.0
    with limiter():
        pass
    assert clock.sleeps == []


def test_rejects_invalid_configuration():
    with pytest.raises(ValueError):
        TokenBucketLimiter(rate_per_sec=0, burst=1)
    with pytest.raises(ValueError):
        TokenBucketLimiter(rate_per_sec=1, burst=0)


def test_limiters_are_shared_per_configuration():
    limit = RateLimit(rate_per_sec=7, burst=3)
    assert get_limiter("graph", limit) is get_limiter("graph", limit)
    settings = Settings(rate_limits={"graph": limit})
    assert limiter_for(settings) is get_limiter("graph", limit)
    assert limiter_for(settings, "other").rate == RateLimit().rate_per_sec


def test_wait_covers_only_the_missing_fraction():
    clock = _Clock()
    limiter = TokenBucketLimiter(rate_per_sec=4, burst=1, clock=clock, sleep=clock.sleep)
    assert limiter.acquire() == 0.0
    clock.now += 0.125
    assert limiter.acquire() == pytest.approx(0.125)
    assert clock.sleeps == [pytest.approx(0.125)]
    assert limiter.tokens == pytest.approx(0.0)
