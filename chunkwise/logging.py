"""Logging for chunkwise.

Every module logs through loguru with a ``component`` bound, e.g.
``logger.bind(component="scheduler")``. Output stays off until the server
enables it: the package is disabled by default, and setup_logging() adds
sinks that only accept chunkwise records.

Example:
    handler_ids = setup_logging(LogConfig(level="DEBUG", file="chunkwise.log"))
    try:
        ...
    finally:
        teardown_logging(handler_ids)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Literal

from loguru import logger

logger.disable("chunkwise")

type LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

LOG_LEVELS: tuple[LogLevel, ...] = ("DEBUG", "INFO", "WARNING", "ERROR")

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[component]} | {name}:{line} - {message}"
)


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Which sinks the server logs to.

    Attributes:
        level: Minimum level for the console sink. The file sink keeps DEBUG.
        file: Optional log file path.
        console: Whether to log to stderr.
    """

    level: LogLevel = "INFO"
    file: str | None = None
    console: bool = True


def _chunkwise_only(record: dict[str, Any]) -> bool:
    if not record["name"].startswith("chunkwise"):
        return False
    # Records logged without a bound component fall back to their module.
    record["extra"].setdefault("component", record["name"].rpartition(".")[2])
    return True


def setup_logging(config: LogConfig) -> list[int]:
    """Enable chunkwise logging and return the ids of the sinks added."""
    logger.enable("chunkwise")
    handler_ids: list[int] = []

    if config.console:
        handler_ids.append(
            logger.add(
                sys.stderr,
                level=config.level,
                format=CONSOLE_FORMAT,
                colorize=True,
                filter=_chunkwise_only,
            )
        )

    if config.file:
        handler_ids.append(
            logger.add(
                config.file,
                level="DEBUG",
                format=FILE_FORMAT,
                diagnose=False,
                filter=_chunkwise_only,
            )
        )

    return handler_ids


def teardown_logging(handler_ids: list[int]) -> None:
    """Remove the sinks added by setup_logging() and disable chunkwise again."""
    for hid in handler_ids:
        logger.remove(hid)
    logger.disable("chunkwise")
