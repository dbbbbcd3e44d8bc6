"""Busy work and chunk planning.

busy_wait() is the only place in chunkwise that truly blocks: it spins on
the clock without sleeping or yielding, so the event loop is starved for
the whole duration. plan() slices a long busy wait into equal chunks that
the schedulers can interleave with other pending work.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial


def busy_wait(duration_ms: float) -> None:
    """Block the calling thread for at least ``duration_ms`` milliseconds."""
    if duration_ms <= 0:
        return
    end = time.perf_counter() + duration_ms / 1000
    while time.perf_counter() < end:
        pass


@dataclass(frozen=True, slots=True)
class WorkPlan:
    """A number of equal chunks and the operation that performs one of them.

    Attributes:
        num_chunks: How many times do_work must run.
        do_work: Performs exactly one chunk of blocking work.
    """

    num_chunks: int
    do_work: Callable[[], None]

    def __post_init__(self) -> None:
        # Counting down from anything else never lands exactly on zero.
        if (
            not isinstance(self.num_chunks, int)
            or isinstance(self.num_chunks, bool)
            or self.num_chunks < 0
        ):
            raise ValueError(
                f"num_chunks must be a non-negative int, got {self.num_chunks!r}"
            )


def plan(total_duration_ms: float, chunk_duration_ms: float) -> WorkPlan:
    """Split ``total_duration_ms`` of busy work into chunks of ``chunk_duration_ms``.

    The chunk count is rounded up, so a total that is not an exact multiple
    of the chunk size still finishes with whole chunks. Negative totals
    plan no work at all.

    Raises:
        ValueError: If chunk_duration_ms is not positive.
    """
    if chunk_duration_ms <= 0:
        raise ValueError(f"chunk_duration_ms must be positive, got {chunk_duration_ms}")

    num_chunks = max(0, math.ceil(total_duration_ms / chunk_duration_ms))
    return WorkPlan(num_chunks=num_chunks, do_work=partial(busy_wait, chunk_duration_ms))
