"""Phased task queues layered over an asyncio event loop.

asyncio only has one FIFO ready queue and a timer heap. PhasedRuntime adds
the ordering classes a cooperative scheduler needs to pick its yield point:

- microtask: drained right after the callback that queued it returns,
  before anything else gets a turn.
- next tick: drained after microtasks; microtasks are drained again after
  every tick.
- immediate: run by a check pump scheduled with ``loop.call_soon``. The
  pump runs the immediates queued when it starts; anything queued while it
  runs waits for the next pump, behind callbacks that became ready in
  between (I/O included).
- timer: one ``loop.call_at`` handle armed for the earliest deadline. It
  runs every due timer in deadline order. Zero delays are clamped to
  MIN_TIMER_DELAY_MS.

Within a class, callbacks run in the order they were queued.

Example:
    runtime = PhasedRuntime.current()
    runtime.set_timeout(lambda: print("4"))
    runtime.set_immediate(lambda: print("3"))
    runtime.next_tick(lambda: print("2"))
    runtime.queue_microtask(lambda: print("1"))
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
import weakref
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger

from chunkwise.constants import MIN_TIMER_DELAY_MS

type Callback = Callable[[], object]

_runtimes: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, PhasedRuntime] = (
    weakref.WeakKeyDictionary()
)


@dataclass(order=True, slots=True)
class _Timer:
    when: float
    seq: int
    callback: Callback = field(compare=False)


class PhasedRuntime:
    """Microtask, next-tick, immediate and timer queues for one event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        # Weak, so the registry entry dies with its loop.
        self._loop_ref = weakref.ref(loop)
        self._microtasks: deque[Callback] = deque()
        self._ticks: deque[Callback] = deque()
        self._immediates: deque[Callback] = deque()
        self._timers: list[_Timer] = []
        self._seq = itertools.count()
        self._pump_handle: asyncio.Handle | None = None
        self._timer_handle: asyncio.TimerHandle | None = None
        self._depth = 0
        self._clock_resolution = time.get_clock_info("monotonic").resolution
        self._log = logger.bind(component="runtime")

    @classmethod
    def current(cls) -> PhasedRuntime:
        """Return the runtime bound to the running loop, creating it on first use.

        Raises:
            RuntimeError: If called outside a running event loop.
        """
        loop = asyncio.get_running_loop()
        runtime = _runtimes.get(loop)
        if runtime is None:
            runtime = cls(loop)
            _runtimes[loop] = runtime
        return runtime

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def _loop(self) -> asyncio.AbstractEventLoop:
        loop = self._loop_ref()
        if loop is None:
            raise RuntimeError("Event loop is gone")
        return loop

    @property
    def pending(self) -> int:
        """Number of callbacks waiting in any queue."""
        return (
            len(self._microtasks) + len(self._ticks) + len(self._immediates) + len(self._timers)
        )

    # ─── Scheduling ──────────────────────────────────────────────────

    def queue_microtask(self, callback: Callback) -> None:
        self._microtasks.append(callback)
        self._ensure_drain()

    def next_tick(self, callback: Callback) -> None:
        self._ticks.append(callback)
        self._ensure_drain()

    def set_immediate(self, callback: Callback) -> None:
        self._immediates.append(callback)
        self._arm_pump()

    def set_timeout(self, callback: Callback, delay_ms: float = 0) -> None:
        delay = max(delay_ms, MIN_TIMER_DELAY_MS) / 1000
        timer = _Timer(self._loop.time() + delay, next(self._seq), callback)
        heapq.heappush(self._timers, timer)
        self._arm_timer()

    def close(self) -> None:
        """Drop every queued callback and cancel the loop handles."""
        if self._pump_handle is not None:
            self._pump_handle.cancel()
            self._pump_handle = None
        if self._timer_handle is not None:
            self._timer_handle.cancel()
            self._timer_handle = None
        dropped = self.pending
        self._microtasks.clear()
        self._ticks.clear()
        self._immediates.clear()
        self._timers.clear()
        if dropped:
            self._log.debug("Runtime closed, dropped {n} pending callbacks", n=dropped)
        loop = self._loop_ref()
        if loop is not None and _runtimes.get(loop) is self:
            del _runtimes[loop]

    # ─── Phases ──────────────────────────────────────────────────────

    def _ensure_drain(self) -> None:
        # Inside a runtime callback the drain after it returns picks these up.
        if self._depth == 0:
            self._arm_pump()

    def _arm_pump(self) -> None:
        if self._pump_handle is None:
            self._pump_handle = self._loop.call_soon(self._pump)

    def _pump(self) -> None:
        try:
            self._drain()
            for _ in range(len(self._immediates)):
                self._invoke(self._immediates.popleft())
        finally:
            self._pump_handle = None
        if self._immediates or self._microtasks or self._ticks:
            self._arm_pump()

    def _arm_timer(self) -> None:
        if not self._timers:
            return
        when = self._timers[0].when
        if self._timer_handle is not None:
            if self._timer_handle.when() <= when:
                return
            self._timer_handle.cancel()
        self._timer_handle = self._loop.call_at(when, self._run_timers)

    def _run_timers(self) -> None:
        self._timer_handle = None
        now = self._loop.time() + self._clock_resolution
        try:
            while self._timers and self._timers[0].when <= now:
                self._invoke(heapq.heappop(self._timers).callback)
        finally:
            self._arm_timer()

    def _invoke(self, callback: Callback) -> None:
        self._call(callback)
        self._drain()

    def _drain(self) -> None:
        while True:
            while self._microtasks:
                self._call(self._microtasks.popleft())
            if not self._ticks:
                return
            self._call(self._ticks.popleft())

    def _call(self, callback: Callback) -> None:
        self._depth += 1
        try:
            callback()
        except (SystemExit, KeyboardInterrupt):
            raise
        except BaseException as exc:
            self._loop.call_exception_handler(
                {
                    "message": f"Exception in runtime callback {callback!r}",
                    "exception": exc,
                }
            )
        finally:
            self._depth -= 1


def queue_microtask(callback: Callback) -> None:
    PhasedRuntime.current().queue_microtask(callback)


def next_tick(callback: Callback) -> None:
    PhasedRuntime.current().next_tick(callback)


def set_immediate(callback: Callback) -> None:
    PhasedRuntime.current().set_immediate(callback)


def set_timeout(callback: Callback, delay_ms: float = 0) -> None:
    PhasedRuntime.current().set_timeout(callback, delay_ms)
