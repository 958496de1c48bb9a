import asyncio
import random

import pytest

from mockprep.core.progress import PROGRESS_CEILING, SimulatedProgress


def test_ticks_never_pass_the_ceiling() -> None:
    progress = SimulatedProgress(rng=random.Random(7))
    for _ in range(100):
        progress.tick()
    assert progress.value == PROGRESS_CEILING


def test_progress_snaps_to_full_on_success() -> None:
    progress = SimulatedProgress(interval_sec=0.001, rng=random.Random(1))

    async def slow_upload() -> str:
        await asyncio.sleep(0.02)
        assert 0 < progress.value <= PROGRESS_CEILING
        return "stored"

    assert asyncio.run(progress.track(slow_upload())) == "stored"
    assert progress.value == 100.0


def test_progress_resets_on_failure() -> None:
    progress = SimulatedProgress(interval_sec=0.001)

    async def failing_upload() -> None:
        await asyncio.sleep(0.01)
        raise RuntimeError("network down")

    with pytest.raises(RuntimeError):
        asyncio.run(progress.track(failing_upload()))
    assert progress.value == 0.0
