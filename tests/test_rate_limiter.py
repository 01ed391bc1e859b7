import asyncio

from yandere_links.utils.rate_limiter import RateLimiter


def test_slots_bound_concurrency():
    limiter = RateLimiter(max_concurrent=3)
    active = 0
    peak = 0

    async def worker():
        nonlocal active, peak
        async with limiter.slot():
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.005)
            active -= 1

    async def main():
        await asyncio.gather(*(worker() for _ in range(10)))

    asyncio.run(main())
    assert peak == 3


def test_back_off_and_ease_off():
    limiter = RateLimiter(delay_seconds=0.0)
    assert not limiter.is_throttled

    limiter.back_off()
    assert limiter.delay_seconds == 0.25
    limiter.back_off()
    assert limiter.delay_seconds == 0.5
    for _ in range(10):
        limiter.back_off()
    assert limiter.delay_seconds == 5.0
    assert limiter.peak_delay == 5.0
    assert limiter.backoff_count == 12

    while limiter.is_throttled:
        limiter.ease_off()
    assert limiter.delay_seconds == 0.0


def test_slot_released_on_error():
    limiter = RateLimiter(max_concurrent=1)

    async def main():
        try:
            async with limiter.slot():
                raise ValueError("boom")
        except ValueError:
            pass
        async with limiter.slot():
            return True

    assert asyncio.run(asyncio.wait_for(main(), timeout=1))
