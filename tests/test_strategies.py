from __future__ import annotations

import asyncio

import pytest

from chunkwise import strategies, work
from chunkwise.exceptions import InvalidInputError, UnknownStrategyError
from chunkwise.runtime import PhasedRuntime
from chunkwise.strategies import STRATEGIES, dispatch, parse_duration
from tests.conftest import settle

pytestmark = [pytest.mark.timeout(10)]

SPLIT_STRATEGIES = [name for name in STRATEGIES if "split" in name]


@pytest.fixture
def waits(monkeypatch) -> list[float]:
    """Record busy waits instead of burning CPU."""
    calls: list[float] = []
    monkeypatch.setattr(work, "busy_wait", calls.append)
    monkeypatch.setattr(strategies, "busy_wait", calls.append)
    return calls


def test_registry_names():
    assert list(STRATEGIES) == [
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


class TestParseDuration:
    @pytest.mark.parametrize("raw", [None, "", "  "])
    def test_missing_means_zero(self, raw):
        assert parse_duration(raw) == 0

    @pytest.mark.parametrize(("raw", "expected"), [("50", 50.0), ("12.5", 12.5), ("0", 0.0)])
    def test_numbers(self, raw, expected):
        assert parse_duration(raw) == expected

    @pytest.mark.parametrize("raw", ["abc", "-5", "nan", "inf", "10ms"])
    def test_invalid(self, raw):
        with pytest.raises(InvalidInputError, match="invalid duration"):
            parse_duration(raw)


class TestDispatch:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("duration", [0, None])
    async def test_zero_duration_short_circuits(self, monkeypatch, duration):
        touched: list[float] = []
        monkeypatch.setitem(STRATEGIES, "recursive-split-timeout", touched.append)

        done = dispatch(duration, "recursive-split-timeout")

        assert done.done()
        assert touched == []

    @pytest.mark.asyncio
    async def test_unknown_strategy_rejected(self, waits):
        with pytest.raises(UnknownStrategyError, match="unknown mode nope"):
            dispatch(50, "nope")
        assert waits == []

    @pytest.mark.asyncio
    async def test_unknown_strategy_rejected_even_without_work(self):
        with pytest.raises(UnknownStrategyError):
            dispatch(0, "nope")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("duration", [float("inf"), float("nan"), -5])
    @pytest.mark.parametrize("name", ["busy-wait", "recursive-split-immediate"])
    async def test_unusable_duration_rejected(self, waits, duration, name):
        with pytest.raises(InvalidInputError, match="invalid duration"):
            dispatch(duration, name)
        assert waits == []

    @pytest.mark.asyncio
    async def test_default_is_busy_wait(self, waits):
        await dispatch(30)
        assert waits == [30]

    @pytest.mark.asyncio
    async def test_busy_wait_completes_before_returning(self, waits):
        done = dispatch(40, "busy-wait")

        assert waits == [40]
        assert done.done()

    @pytest.mark.asyncio
    async def test_busy_wait_async_still_blocks_in_one_piece(self, waits):
        done = dispatch(40, "busy-wait-async")
        assert waits == []

        await done
        assert waits == [40]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", SPLIT_STRATEGIES)
    async def test_split_strategies_run_one_chunk_per_ten_ms(self, waits, name):
        await dispatch(50, name)
        assert waits == [10] * 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", SPLIT_STRATEGIES)
    async def test_partial_chunk_rounds_up(self, waits, name):
        await dispatch(25, name)
        assert waits == [10] * 3

    @pytest.mark.asyncio
    async def test_recursive_timeout_lets_queued_work_run_first(self, recorder, monkeypatch):
        monkeypatch.setattr(work, "busy_wait", lambda _ms: recorder.events.append("chunk"))
        asyncio.get_running_loop().call_soon(recorder.mark("other"))

        done = dispatch(50, "recursive-split-timeout")
        done.add_done_callback(lambda _: recorder.events.append("done"))
        await done
        await asyncio.sleep(0)

        assert recorder.count("chunk") == 5
        assert recorder.events[-1] == "done"
        assert recorder.events.index("other") < recorder.events.index("done")

    @pytest.mark.asyncio
    async def test_iterative_immediate_enqueues_all_chunks_up_front(self, waits):
        done = dispatch(30, "iterative-split-immediate")

        assert waits == []
        assert PhasedRuntime.current().pending == 3

        await done
        assert waits == [10] * 3
        assert PhasedRuntime.current().pending == 0

    @pytest.mark.asyncio
    async def test_chunks_really_block(self):
        loop = asyncio.get_running_loop()
        start = loop.time()
        await dispatch(30, "recursive-split-immediate")
        await settle(0)
        assert loop.time() - start >= 0.03
