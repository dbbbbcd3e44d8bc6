"""Yield primitives: where a continuation re-enters the event loop.

Each primitive hands a continuation to one ordering class of the running
loop's PhasedRuntime and returns at once; the continuation never runs
inside the schedule() call. Listed from the earliest class to the latest:

    MICROTASK  -> re-entered as soon as the current callback returns
    NEXT_TICK  -> after pending microtasks, before I/O and timers
    IMMEDIATE  -> in the check pump, after callbacks already ready
    TIMEOUT    -> in the timer phase, clamped to a 1ms minimum delay

Primitives carry no state, so the module-level instances are shared freely.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from chunkwise.runtime import Callback, PhasedRuntime


@runtime_checkable
class YieldPrimitive(Protocol):
    @property
    def name(self) -> str: ...

    def schedule(self, continuation: Callback) -> None: ...


@dataclass(frozen=True, slots=True)
class RuntimeYield:
    """A yield primitive backed by one of the PhasedRuntime queues.

    Attributes:
        name: Short name of the ordering class.
        priority: Lower values run first when classes compete.
        enqueue: Unbound PhasedRuntime method that accepts the continuation.
    """

    name: str
    priority: int
    enqueue: Callable[[PhasedRuntime, Callback], None]

    def schedule(self, continuation: Callback) -> None:
        self.enqueue(PhasedRuntime.current(), continuation)


MICROTASK = RuntimeYield("microtask", 0, PhasedRuntime.queue_microtask)
NEXT_TICK = RuntimeYield("next-tick", 1, PhasedRuntime.next_tick)
IMMEDIATE = RuntimeYield("immediate", 2, PhasedRuntime.set_immediate)
TIMEOUT = RuntimeYield("timeout", 3, PhasedRuntime.set_timeout)

PRIMITIVES: dict[str, RuntimeYield] = {
    p.name: p for p in (MICROTASK, NEXT_TICK, IMMEDIATE, TIMEOUT)
}