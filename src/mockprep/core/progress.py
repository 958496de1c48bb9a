from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")

PROGRESS_CEILING = 90.0
MAX_STEP = 20.0


class SimulatedProgress:
    """Cosmetic upload progress.

    The storage client reports no byte counts, so the percentage only creeps
    toward 90 on a timer while the upload is in flight. It snaps to 100 on
    success and back to 0 on failure. It says nothing about bytes sent.
    """

    def __init__(self, interval_sec: float = 0.2, rng: random.Random | None = None):
        self.interval_sec = interval_sec
        self.value = 0.0
        self._rng = rng or random.Random()

    def tick(self) -> float:
        if self.value < PROGRESS_CEILING:
            self.value = min(self.value + self._rng.random() * MAX_STEP, PROGRESS_CEILING)
        return self.value

    async def _run_ticker(self) -> None:
        while self.value < PROGRESS_CEILING:
            await asyncio.sleep(self.interval_sec)
            self.tick()

    @staticmethod
    async def _stop(ticker: asyncio.Task[None]) -> None:
        ticker.cancel()
        try:
            await ticker
        except asyncio.CancelledError:
            pass

    async def track(self, operation: Awaitable[T]) -> T:
        self.value = 0.0
        ticker = asyncio.create_task(self._run_ticker())
        try:
            result = await operation
        except BaseException:
            await self._stop(ticker)
            self.value = 0.0
            raise
        await self._stop(ticker)
        self.value = 100.0
        return result
