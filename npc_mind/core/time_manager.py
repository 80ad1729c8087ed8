"""Tick timing helpers."""

from __future__ import annotations

import time


def now_ms() -> int:
    """Wall-clock milliseconds, the unit used by observations and goals."""

    return int(time.time() * 1000)


class TimeManager:
    """Manage the game tick cadence (20 ticks per second by default)."""

    def __init__(self, tick_rate: float = 20.0) -> None:
        self.tick_rate: float = tick_rate
        self.tick_counter: int = 0
        self._last_tick: float = time.perf_counter()

    @property
    def tick_interval(self) -> float:
        return 1.0 / self.tick_rate

    def ticks_for(self, seconds: float) -> int:
        """Number of whole ticks covering ``seconds`` at the current rate."""

        return max(1, int(round(seconds * self.tick_rate)))

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------
    def sleep_until_next_tick(self) -> None:
        """Block until the next tick should occur."""

        target = self._last_tick + self.tick_interval
        now = time.perf_counter()
        remaining = target - now
        if remaining > 0:
            time.sleep(remaining)
            self._last_tick = target
        else:
            # We're behind schedule; start from current time
            self._last_tick = now
        self.tick_counter += 1


__all__ = ["TimeManager", "now_ms"]
