"""Candle-aligned scheduling for polyclaim.

Runs happen at fixed minute offsets within each hour (the "candle close"
times, ``:04 :19 :34 :49`` by default).  :func:`next_fire_time` is the pure
decision; :class:`CandleScheduler` is the driver that sleeps until that
time, awaits one run, and recomputes from the wall clock so drift never
accumulates.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Optional, Sequence

logger = logging.getLogger(__name__)


def next_fire_time(now: datetime, offsets: Sequence[int]) -> datetime:
    """Return the next candle close strictly after *now*.

    Picks the smallest offset greater than ``now.minute``; when none is
    left this hour, wraps to the smallest offset of the next hour.
    Seconds and microseconds are zeroed.

    Args:
        now: Current wall-clock time (naive or aware).
        offsets: Minute offsets within the hour, each in ``0..59``.

    Raises:
        ValueError: If *offsets* is empty or out of range.
    """
    minutes = sorted(set(offsets))
    if not minutes:
        raise ValueError("at least one minute offset is required")
    if minutes[0] < 0 or minutes[-1] > 59:
        raise ValueError(f"minute offsets must be within 0..59: {minutes}")

    hour_start = now.replace(minute=0, second=0, microsecond=0)
    for minute in minutes:
        if minute > now.minute:
            return hour_start + timedelta(minutes=minute)
    return hour_start + timedelta(hours=1, minutes=minutes[0])


def seconds_until(target: datetime, now: datetime) -> float:
    return max(0.0, (target - now).total_seconds())


class CandleScheduler:
    """Runs a coroutine at every candle close, one run at a time.

    The next fire time is computed only after the previous run has
    returned, so runs never overlap.
    """

    def __init__(
        self,
        run_check: Callable[[], Awaitable[Any]],
        offsets: Sequence[int],
        run_on_start: bool = True,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.run_check = run_check
        self.offsets = sorted(set(offsets))
        self.run_on_start = run_on_start
        self.clock = clock
        self.runs_completed = 0
        self.next_run_at: Optional[datetime] = None
        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        """Stop after the current run (or immediately, if waiting)."""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    async def _run_once(self) -> None:
        try:
            await self.run_check()
        except Exception as e:
            # run_check is expected to swallow its own errors
            logger.error(f"Claim run raised unexpectedly: {e}", exc_info=True)
        self.runs_completed += 1

    async def run_forever(self) -> None:
        """Run immediately (if configured), then at every candle close."""
        logger.info(
            "Candle scheduler started (minutes: %s)",
            ", ".join(f":{m:02d}" for m in self.offsets),
        )
        if self.run_on_start and not self.stopped:
            await self._run_once()

        while not self.stopped:
            now = self.clock()
            self.next_run_at = next_fire_time(now, self.offsets)
            delay = seconds_until(self.next_run_at, now)
            logger.info(
                f"⏰ Next check scheduled at {self.next_run_at:%H:%M:%S} "
                f"(in {round(delay / 60)} minutes)"
            )

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                break  # Stop event set during sleep
            except asyncio.TimeoutError:
                pass

            await self._run_once()

        logger.info("Candle scheduler stopped.")
