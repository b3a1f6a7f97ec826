"""
Test suite for the candle-aligned scheduler.
Tests next-fire-time computation, wrap-around, and the serialized run loop.
"""

import pytest
import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from core.scheduler import CandleScheduler, next_fire_time, seconds_until

OFFSETS = (4, 19, 34, 49)


class TestNextFireTime:

    def test_on_candle_boundary_moves_to_next(self):
        now = datetime(2026, 3, 10, 14, 19, 0)
        nxt = next_fire_time(now, OFFSETS)
        assert nxt == datetime(2026, 3, 10, 14, 34, 0)
        assert seconds_until(nxt, now) == 15 * 60

    def test_wraps_to_next_hour(self):
        now = datetime(2026, 3, 10, 14, 50, 30)
        nxt = next_fire_time(now, OFFSETS)
        assert nxt == datetime(2026, 3, 10, 15, 4, 0)
        assert seconds_until(nxt, now) == 13.5 * 60

    def test_wraps_past_midnight(self):
        now = datetime(2026, 12, 31, 23, 55, 0)
        assert next_fire_time(now, OFFSETS) == datetime(2027, 1, 1, 0, 4, 0)

    def test_before_first_offset(self):
        now = datetime(2026, 3, 10, 9, 0, 1)
        assert next_fire_time(now, OFFSETS) == datetime(2026, 3, 10, 9, 4, 0)

    def test_same_minute_later_seconds(self):
        now = datetime(2026, 3, 10, 9, 4, 59, 999999)
        assert next_fire_time(now, OFFSETS) == datetime(2026, 3, 10, 9, 19, 0)

    def test_unsorted_offsets(self):
        now = datetime(2026, 3, 10, 9, 20, 0)
        assert next_fire_time(now, [49, 4, 34, 19]) == datetime(2026, 3, 10, 9, 34, 0)

    def test_keeps_timezone(self):
        now = datetime(2026, 3, 10, 9, 20, 0, tzinfo=timezone.utc)
        assert next_fire_time(now, OFFSETS).tzinfo is timezone.utc

    def test_every_minute_of_an_hour(self):
        start = datetime(2026, 6, 1, 13, 0, 0)
        for minute in range(60):
            for second in (0, 1, 30, 59):
                now = start + timedelta(minutes=minute, seconds=second)
                nxt = next_fire_time(now, OFFSETS)
                assert nxt > now
                assert nxt.minute in OFFSETS
                assert nxt.second == 0 and nxt.microsecond == 0
                assert nxt - now < timedelta(minutes=75)

    def test_single_offset(self):
        now = datetime(2026, 6, 1, 13, 30, 0)
        assert next_fire_time(now, [0]) == datetime(2026, 6, 1, 14, 0, 0)

    @pytest.mark.parametrize("offsets", [[], [60], [-1, 4]])
    def test_invalid_offsets(self, offsets):
        with pytest.raises(ValueError):
            next_fire_time(datetime(2026, 1, 1), offsets)

    def test_seconds_until_never_negative(self):
        now = datetime(2026, 1, 1, 12, 0, 0)
        assert seconds_until(now - timedelta(seconds=5), now) == 0.0


class TestCandleScheduler:

    @pytest.mark.asyncio
    async def test_runs_immediately_on_start(self):
        scheduler = None

        async def run_check():
            scheduler.stop()

        scheduler = CandleScheduler(run_check, OFFSETS, run_on_start=True)
        await asyncio.wait_for(scheduler.run_forever(), timeout=2)

        assert scheduler.runs_completed == 1
        assert scheduler.next_run_at is None

    @pytest.mark.asyncio
    async def test_waits_for_candle_then_runs(self):
        scheduler = None
        calls = []

        async def run_check():
            calls.append(scheduler.next_run_at)
            scheduler.stop()

        clock = lambda: datetime(2026, 1, 1, 14, 33, 59, 950000)
        scheduler = CandleScheduler(run_check, OFFSETS, run_on_start=False, clock=clock)
        await asyncio.wait_for(scheduler.run_forever(), timeout=2)

        assert calls == [datetime(2026, 1, 1, 14, 34, 0)]
        assert scheduler.runs_completed == 1

    @pytest.mark.asyncio
    async def test_runs_are_serialized(self):
        scheduler = None
        active = 0
        max_active = 0

        async def run_check():
            nonlocal active, max_active
            active += 1
            max_active = max(max_active, active)
            await asyncio.sleep(0.05)
            active -= 1
            if scheduler.runs_completed >= 2:
                scheduler.stop()

        # Always one tick before a candle, so every wait is ~10ms
        clock = lambda: datetime(2026, 1, 1, 14, 3, 59, 990000)
        scheduler = CandleScheduler(run_check, OFFSETS, run_on_start=True, clock=clock)
        await asyncio.wait_for(scheduler.run_forever(), timeout=3)

        assert scheduler.runs_completed == 3
        assert max_active == 1

    @pytest.mark.asyncio
    async def test_failed_run_does_not_stop_schedule(self):
        scheduler = None
        run_check = AsyncMock(side_effect=[Exception("boom"), None])

        async def wrapped():
            await run_check()
            if run_check.await_count >= 2:
                scheduler.stop()

        clock = lambda: datetime(2026, 1, 1, 14, 3, 59, 990000)
        scheduler = CandleScheduler(wrapped, OFFSETS, run_on_start=True, clock=clock)
        await asyncio.wait_for(scheduler.run_forever(), timeout=3)

        assert run_check.await_count == 2
        assert scheduler.runs_completed == 2

    @pytest.mark.asyncio
    async def test_stop_during_wait(self):
        run_check = AsyncMock()
        clock = lambda: datetime(2026, 1, 1, 14, 5, 0)
        scheduler = CandleScheduler(run_check, OFFSETS, run_on_start=False, clock=clock)

        task = asyncio.create_task(scheduler.run_forever())
        await asyncio.sleep(0.05)
        scheduler.stop()
        await asyncio.wait_for(task, timeout=2)

        run_check.assert_not_called()
        assert scheduler.next_run_at == datetime(2026, 1, 1, 14, 19, 0)
