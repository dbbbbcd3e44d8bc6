from __future__ import annotations

import pytest
from loguru import logger

from chunkwise.logging import LogConfig, setup_logging, teardown_logging
from chunkwise.profiler import ProfilerSession
from tests.test_profiler import FakeBackend


@pytest.mark.asyncio
async def test_file_sink_captures_component_logs(tmp_path):
    log_file = tmp_path / "chunkwise.log"
    handler_ids = setup_logging(LogConfig(console=False, file=str(log_file)))
    try:
        session = ProfilerSession(FakeBackend)
        await session.start()
        await session.stop()
    finally:
        teardown_logging(handler_ids)

    text = log_file.read_text()
    assert "| profiler |" in text
    assert "Profiler enabled" in text
    assert "Profiler disabled" in text


def test_unbound_records_fall_back_to_module_name(tmp_path):
    log_file = tmp_path / "chunkwise.log"
    handler_ids = setup_logging(LogConfig(console=False, file=str(log_file)))
    try:
        logger.patch(lambda r: r.update(name="chunkwise.work")).info("plain")
        logger.patch(lambda r: r.update(name="elsewhere")).info("foreign")
    finally:
        teardown_logging(handler_ids)

    text = log_file.read_text()
    assert "| work |" in text
    assert "plain" in text
    assert "foreign" not in text


def test_setup_leaves_no_global_extra(tmp_path):
    seen: list[dict] = []
    sink_id = logger.add(lambda m: seen.append(dict(m.record["extra"])))
    handler_ids = setup_logging(LogConfig(console=False, file=str(tmp_path / "x.log")))
    try:
        logger.info("from a host application")
    finally:
        teardown_logging(handler_ids)
        logger.remove(sink_id)

    assert seen == [{}]


def test_handlers_removed_on_teardown():
    handler_ids = setup_logging(LogConfig(console=True))
    assert len(handler_ids) == 1
    teardown_logging(handler_ids)


@pytest.mark.asyncio
async def test_disabled_by_default(tmp_path, capsys):
    session = ProfilerSession(FakeBackend)
    await session.start()
    await session.stop()

    assert "Profiler" not in capsys.readouterr().err
