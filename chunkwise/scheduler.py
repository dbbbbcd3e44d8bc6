"""Chunked schedulers: interleave a WorkPlan with the rest of the event loop.

Two strategies drive a WorkPlan to completion:

- RecursiveRun runs one chunk, then yields; the next chunk is only
  scheduled from inside the yielded continuation. Other work queued ahead
  of the primitive's ordering class gets a turn between any two chunks.
- IterativeRun enqueues every chunk up front in one synchronous burst and
  counts them down; the primitive's queue alone decides how they
  interleave with other work.

Both expose a single completion signal, an ``asyncio.Future[None]`` that
resolves once the last chunk has run (or fails with the exception raised by
a chunk, which aborts the run).

Example:
    from chunkwise.work import plan
    from chunkwise.yielding import IMMEDIATE

    await split_recursive(plan(500, 10), IMMEDIATE)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from loguru import logger

from chunkwise.work import WorkPlan
from chunkwise.yielding import MICROTASK, YieldPrimitive


@dataclass(frozen=True, slots=True)
class Pending:
    """Chunks still to run."""

    remaining: int


@dataclass(frozen=True, slots=True)
class Done:
    """Every chunk has run."""

    pass


type RunState = Pending | Done


class _Run:
    def __init__(self, plan: WorkPlan, yield_: YieldPrimitive) -> None:
        self._plan = plan
        self._yield = yield_
        self._failed = False
        self._log = logger.bind(component="scheduler", primitive=yield_.name)
        self.state: RunState = Pending(plan.num_chunks)
        self.chunks_done = 0
        self.done: asyncio.Future[None] = asyncio.get_running_loop().create_future()

    def _work(self) -> bool:
        try:
            self._plan.do_work()
        except Exception as e:
            self._failed = True
            self._log.error("Chunk {n} failed, aborting run: {err}", n=self.chunks_done + 1, err=e)
            # The caller may have stopped waiting; the chunks themselves never stop early.
            if not self.done.done():
                self.done.set_exception(e)
            return False
        self.chunks_done += 1
        return True

    def _complete(self) -> None:
        self.state = Done()
        self._log.debug("Run finished after {n} chunks", n=self.chunks_done)
        if not self.done.done():
            self.done.set_result(None)


class RecursiveRun(_Run):
    """Run a chunk, yield, and schedule the next chunk from the continuation."""

    def __init__(self, plan: WorkPlan, yield_: YieldPrimitive = MICROTASK) -> None:
        super().__init__(plan, yield_)

    def start(self) -> asyncio.Future[None]:
        self._step(self.state)
        return self.done

    def _step(self, state: RunState) -> None:
        self.state = state
        match state:
            case Pending(remaining=n) if n > 0:
                if self._work():
                    self._yield.schedule(lambda: self._step(Pending(n - 1)))
            case _:
                self._complete()


class IterativeRun(_Run):
    """Enqueue every chunk at once and count them down."""

    def __init__(self, plan: WorkPlan, yield_: YieldPrimitive) -> None:
        super().__init__(plan, yield_)
        self._remaining = plan.num_chunks

    def start(self) -> asyncio.Future[None]:
        if self._remaining == 0:
            self._complete()
            return self.done

        for _ in range(self._remaining):
            self._yield.schedule(self._chunk)
        self._log.debug("Enqueued {n} chunks", n=self._remaining)
        return self.done

    def _chunk(self) -> None:
        if self._failed or not self._work():
            return
        # Single-threaded: the decrement and the check cannot interleave.
        self._remaining -= 1
        if self._remaining == 0:
            self._complete()
        else:
            self.state = Pending(self._remaining)


def split_recursive(
    plan: WorkPlan, yield_: YieldPrimitive = MICROTASK
) -> asyncio.Future[None]:
    """Drive ``plan`` one chunk at a time, yielding through ``yield_`` in between."""
    return RecursiveRun(plan, yield_).start()


def split_iterative(plan: WorkPlan, yield_: YieldPrimitive) -> asyncio.Future[None]:
    """Enqueue every chunk of ``plan`` through ``yield_`` before any of them runs."""
    return IterativeRun(plan, yield_).start()
