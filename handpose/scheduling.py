"""Frame-boundary scheduling for the continuous inference loop."""

from __future__ import annotations

import asyncio
import time

DEFAULT_FPS = 60.0


class FrameClock:
    """Monotonic clock ticking at a fixed frame rate.

    Boundaries sit at integer multiples of ``interval`` on the monotonic
    clock, so every waiter in the process agrees on where a frame starts.
    """

    def __init__(self, fps: float = DEFAULT_FPS) -> None:
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self._fps = fps
        self._interval = 1.0 / fps

    @property
    def fps(self) -> float:
        return self._fps

    @property
    def interval(self) -> float:
        """Seconds between two frame boundaries."""
        return self._interval

    def until_next(self, now: float | None = None) -> float:
        """Seconds from ``now`` to the next frame boundary (never zero)."""
        now = time.monotonic() if now is None else now
        remaining = self._interval - (now % self._interval)
        return remaining if remaining > 0 else self._interval

    async def next_frame(self) -> None:
        await asyncio.sleep(self.until_next())


_default_clock = FrameClock()


async def next_frame(fps: float | None = None) -> None:
    """Wait for the start of the next rendering frame."""
    clock = _default_clock if fps is None else FrameClock(fps)
    await clock.next_frame()
