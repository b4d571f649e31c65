"""Tests for time-boxed awaiting."""

import asyncio

import pytest

from authlens.utils import timeouts
from authlens.utils.timeouts import try_with_timeout, with_timeout


async def _value_after(delay, value):
    await asyncio.sleep(delay)
    return value


class TestWithTimeout:
    @pytest.mark.asyncio
    async def test_returns_result(self):
        assert await with_timeout(_value_after(0, "ok"), 1.0) == "ok"

    @pytest.mark.asyncio
    async def test_raises_on_timeout(self):
        with pytest.raises(TimeoutError, match="slow thing timed out"):
            await with_timeout(_value_after(1.0, "late"), 0.01, label="slow thing")

    @pytest.mark.asyncio
    async def test_loser_is_abandoned_not_cancelled(self):
        finished = asyncio.Event()

        async def slow():
            await asyncio.sleep(0.05)
            finished.set()

        with pytest.raises(TimeoutError):
            await with_timeout(slow(), 0.01)
        assert timeouts.pending_abandoned() >= 1

        await asyncio.wait_for(finished.wait(), 1.0)
        await asyncio.sleep(0)
        assert finished.is_set()

    @pytest.mark.asyncio
    async def test_propagates_errors(self):
        async def boom():
            raise ValueError("bad")

        with pytest.raises(ValueError, match="bad"):
            await with_timeout(boom(), 1.0)


class TestTryWithTimeout:
    @pytest.mark.asyncio
    async def test_none_on_timeout(self):
        assert await try_with_timeout(_value_after(1.0, "late"), 0.01) is None

    @pytest.mark.asyncio
    async def test_none_on_error(self):
        async def boom():
            raise RuntimeError("nope")

        assert await try_with_timeout(boom(), 1.0) is None

    @pytest.mark.asyncio
    async def test_value(self):
        assert await try_with_timeout(_value_after(0, 3), 1.0) == 3
