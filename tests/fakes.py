"""Stand-ins for the hand model, model loader and frame clock."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from handpose.options import HandposeOptions


class FakeModel:
    """Stand-in for the hand model that records every estimation call."""

    def __init__(self, result: Any = None, log: list[str] | None = None) -> None:
        self.result = [] if result is None else result
        self.calls: list[tuple[Any, bool | None]] = []
        self.error: Exception | None = None
        self.closed = False
        self._log = log

    async def estimate_hands(self, input: Any, flip_horizontal: bool | None = None) -> Any:
        self.calls.append((input, flip_horizontal))
        if self._log is not None:
            self._log.append("pass")
        if self.error is not None:
            raise self.error
        return self.result

    def close(self) -> None:
        self.closed = True


class FakeLoader:
    """Async model loader returning a fixed model and recording its configs."""

    def __init__(self, model: FakeModel, error: Exception | None = None) -> None:
        self.model = model
        self.error = error
        self.configs: list[HandposeOptions] = []

    async def __call__(self, config: HandposeOptions) -> FakeModel:
        self.configs.append(config)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.model


class FrameCounter:
    """Frame-boundary stub that counts boundaries and yields once."""

    def __init__(self, log: list[str] | None = None) -> None:
        self.count = 0
        self._log = log

    async def __call__(self) -> None:
        self.count += 1
        if self._log is not None:
            self._log.append("frame")
        await asyncio.sleep(0)


async def wait_until(predicate: Callable[[], bool], spins: int = 1000) -> None:
    """Yield to the event loop until ``predicate()`` holds."""
    for _ in range(spins):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")
