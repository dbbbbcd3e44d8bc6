from __future__ import annotations

import pytest

from chunkwise.yielding import (
    IMMEDIATE,
    MICROTASK,
    NEXT_TICK,
    PRIMITIVES,
    TIMEOUT,
    YieldPrimitive,
)
from tests.conftest import settle

pytestmark = [pytest.mark.timeout(10)]


def test_primitives_satisfy_protocol():
    for primitive in PRIMITIVES.values():
        assert isinstance(primitive, YieldPrimitive)


def test_names():
    assert list(PRIMITIVES) == ["microtask", "next-tick", "immediate", "timeout"]


@pytest.mark.asyncio
async def test_schedule_never_runs_synchronously(recorder):
    for primitive in PRIMITIVES.values():
        primitive.schedule(recorder.mark(primitive.name))
    assert recorder.events == []

    await settle()
    assert sorted(recorder.events) == sorted(PRIMITIVES)


@pytest.mark.asyncio
async def test_higher_priority_class_runs_first(recorder):
    # Scheduled lowest-priority first so queue order alone would be wrong.
    for primitive in (TIMEOUT, IMMEDIATE, NEXT_TICK, MICROTASK):
        primitive.schedule(recorder.mark(primitive.name))

    await settle()
    expected = sorted(PRIMITIVES.values(), key=lambda p: p.priority)
    assert recorder.events == [p.name for p in expected]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("first", "second"),
    [
        (MICROTASK, NEXT_TICK),
        (NEXT_TICK, IMMEDIATE),
        (IMMEDIATE, TIMEOUT),
        (MICROTASK, TIMEOUT),
    ],
)
async def test_pairwise_ordering(recorder, first, second):
    second.schedule(recorder.mark("second"))
    first.schedule(recorder.mark("first"))

    await settle()
    assert recorder.events == ["first", "second"]
