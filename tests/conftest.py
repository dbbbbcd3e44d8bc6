from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from chunkwise.work import WorkPlan


async def settle(seconds: float = 0.05) -> None:
    """Let the loop run every queued callback, timers included."""
    await asyncio.sleep(seconds)


class Recorder:
    """Shared order log for callbacks and chunks."""

    def __init__(self) -> None:
        self.events: list[str] = []

    def mark(self, label: str) -> Callable[[], None]:
        return lambda: self.events.append(label)

    def count(self, label: str) -> int:
        return self.events.count(label)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def counting_plan(recorder: Recorder) -> Callable[[int], WorkPlan]:
    """Plans whose chunks log "chunk" instead of busy waiting."""

    def make(num_chunks: int) -> WorkPlan:
        return WorkPlan(num_chunks=num_chunks, do_work=recorder.mark("chunk"))

    return make
