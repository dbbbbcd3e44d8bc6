"""Demo dispatcher: map a mode name to a way of doing long blocking work.

Each strategy takes a total duration in milliseconds and returns the
completion signal of the work it started:

    busy-wait                   block the loop for the whole duration
    busy-wait-async             same, wrapped in a coroutine (still blocks)
    recursive-split-async       chunk + microtask continuation
    recursive-split-promise     chunk + microtask continuation
    recursive-split-next-tick   chunk + next-tick continuation
    recursive-split-immediate   chunk + immediate continuation
    recursive-split-timeout     chunk + zero-delay timer continuation
    iterative-split-immediate   every chunk enqueued up front as immediates
    iterative-split-timeout     every chunk enqueued up front as timers

The two microtask modes exist under both of their historical names; they
share one scheduler.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Callable
from typing import Literal

from loguru import logger

from chunkwise.constants import CHUNK_DURATION_MS, DEFAULT_STRATEGY
from chunkwise.exceptions import InvalidInputError, UnknownStrategyError
from chunkwise.scheduler import split_iterative, split_recursive
from chunkwise.work import busy_wait, plan
from chunkwise.yielding import IMMEDIATE, MICROTASK, NEXT_TICK, TIMEOUT, YieldPrimitive

type StrategyName = Literal[
    "busy-wait",
    "busy-wait-async",
    "recursive-split-async",
    "recursive-split-promise",
    "recursive-split-next-tick",
    "recursive-split-immediate",
    "recursive-split-timeout",
    "iterative-split-immediate",
    "iterative-split-timeout",
]

type Strategy = Callable[[float], asyncio.Future[None]]

log = logger.bind(component="dispatcher")


def _resolved() -> asyncio.Future[None]:
    future = asyncio.get_running_loop().create_future()
    future.set_result(None)
    return future


def _busy_wait(total_ms: float) -> asyncio.Future[None]:
    busy_wait(total_ms)
    return _resolved()


def _busy_wait_async(total_ms: float) -> asyncio.Future[None]:
    async def work() -> None:
        busy_wait(total_ms)

    return asyncio.ensure_future(work())


def _recursive(yield_: YieldPrimitive) -> Strategy:
    def strategy(total_ms: float) -> asyncio.Future[None]:
        return split_recursive(plan(total_ms, CHUNK_DURATION_MS), yield_)

    return strategy


def _iterative(yield_: YieldPrimitive) -> Strategy:
    def strategy(total_ms: float) -> asyncio.Future[None]:
        return split_iterative(plan(total_ms, CHUNK_DURATION_MS), yield_)

    return strategy


STRATEGIES: dict[str, Strategy] = {
    "busy-wait": _busy_wait,
    "busy-wait-async": _busy_wait_async,
    "recursive-split-async": _recursive(MICROTASK),
    "recursive-split-promise": _recursive(MICROTASK),
    "recursive-split-next-tick": _recursive(NEXT_TICK),
    "recursive-split-immediate": _recursive(IMMEDIATE),
    "recursive-split-timeout": _recursive(TIMEOUT),
    "iterative-split-immediate": _iterative(IMMEDIATE),
    "iterative-split-timeout": _iterative(TIMEOUT),
}


def parse_duration(raw: str | None) -> float:
    """Parse a duration query value in milliseconds.

    A missing or empty value means no work at all.

    Raises:
        InvalidInputError: If the value is not a finite, non-negative number.
    """
    if raw is None or not raw.strip():
        return 0.0
    try:
        duration = float(raw)
    except ValueError:
        raise InvalidInputError(f"invalid duration {raw!r}") from None
    if not math.isfinite(duration) or duration < 0:
        raise InvalidInputError(f"invalid duration {raw!r}")
    return duration


def dispatch(
    total_ms: float | None, strategy: StrategyName | str = DEFAULT_STRATEGY
) -> asyncio.Future[None]:
    """Start ``total_ms`` of busy work with the named strategy.

    Returns the completion signal. A zero or missing duration resolves at
    once without touching any strategy.

    Raises:
        UnknownStrategyError: If ``strategy`` is not in STRATEGIES.
        InvalidInputError: If ``total_ms`` is negative, NaN or infinite.
    """
    run = STRATEGIES.get(strategy)
    if run is None:
        raise UnknownStrategyError(strategy)

    if total_ms is not None and (not math.isfinite(total_ms) or total_ms < 0):
        raise InvalidInputError(f"invalid duration {total_ms!r}")

    if not total_ms:
        return _resolved()

    log.debug("Dispatching {ms}ms with {strategy}", ms=total_ms, strategy=strategy)
    return run(total_ms)
