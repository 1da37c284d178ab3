import asyncio
import time

import pytest

from newsletter_digest_mcp.pipeline.ratelimit import CallSpacer


async def test_first_call_does_not_wait():
    spacer = CallSpacer(min_interval=5)

    assert spacer.last_call is None
    assert await spacer.wait() == 0
    assert spacer.last_call is not None


async def test_consecutive_calls_are_spaced():
    spacer = CallSpacer(min_interval=0.05)

    starts: list[float] = []

    for _ in range(3):
        _ = await spacer.wait()
        starts.append(time.monotonic())

    gaps = [later - earlier for earlier, later in zip(starts, starts[1:], strict=False)]

    assert all(gap >= 0.045 for gap in gaps)


async def test_concurrent_callers_are_serialized():
    spacer = CallSpacer(min_interval=0.05)

    async def call() -> float:
        _ = await spacer.wait()
        return time.monotonic()

    starts = sorted(await asyncio.gather(*[call() for _ in range(4)]))

    gaps = [later - earlier for earlier, later in zip(starts, starts[1:], strict=False)]

    assert all(gap >= 0.045 for gap in gaps)


async def test_no_wait_after_interval_elapsed():
    spacer = CallSpacer(min_interval=0.01)

    _ = await spacer.wait()
    await asyncio.sleep(0.03)

    assert await spacer.wait() == 0


def test_from_milliseconds():
    assert CallSpacer.from_milliseconds(10000).min_interval == pytest.approx(10.0)
