import asyncio

import pytest

from webtracker.services.command_rate_limiter import CommandRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_allows_up_to_limit_then_blocks():
    clock = FakeClock()
    limiter = CommandRateLimiter(limit=5, window_seconds=60, clock=clock)

    results = [limiter.allow("2348000000050")[0] for _ in range(5)]
    allowed, retry_in = limiter.allow("2348000000050")

    assert results == [True] * 5
    assert allowed is False
    assert retry_in == 60


def test_window_slides():
    clock = FakeClock()
    limiter = CommandRateLimiter(limit=2, window_seconds=60, clock=clock)
    limiter.allow("a")
    clock.now += 30
    limiter.allow("a")

    clock.now += 31
    allowed, _ = limiter.allow("a")

    assert allowed is True


def test_retry_is_at_least_one_second():
    clock = FakeClock()
    limiter = CommandRateLimiter(limit=1, window_seconds=60, clock=clock)
    limiter.allow("a")
    clock.now += 59.9

    allowed, retry_in = limiter.allow("a")

    assert allowed is False
    assert retry_in == 1


def test_keys_are_independent():
    limiter = CommandRateLimiter(limit=1, window_seconds=60, clock=FakeClock())

    assert limiter.allow("a")[0] is True
    assert limiter.allow("b")[0] is True
    assert limiter.allow("a")[0] is False


def test_cleanup_drops_stale_keys():
    clock = FakeClock()
    limiter = CommandRateLimiter(limit=5, window_seconds=60, clock=clock)
    limiter.allow("old")
    clock.now += 61
    limiter.allow("fresh")

    removed = limiter.cleanup()

    assert removed == 1
    assert len(limiter) == 1


@pytest.mark.asyncio
async def test_sweeper_stops_on_event():
    limiter = CommandRateLimiter()
    stop = asyncio.Event()
    task = asyncio.create_task(limiter.run_sweeper(stop, interval=0.01))
    await asyncio.sleep(0.03)
    stop.set()

    await asyncio.wait_for(task, timeout=1)

    assert task.done()
