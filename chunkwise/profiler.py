"""CPU profiler session with a strict start/stop discipline.

A ProfilerSession owns at most one backend at a time:

    start(): no session -> enable -> start sampling     (else ProfilerStateError)
    stop():  session    -> stop (capture) -> disable -> no session
                                                        (else ProfilerStateError)

The session reference is taken before the backend is enabled and only
dropped once the backend has been disabled successfully. Failures of the
backend itself surface as ProfilerError.

The default backend wraps cProfile, which sees every callback on the event
loop thread, and turns the capture into a plain ProfileArtifact.
"""

from __future__ import annotations

import cProfile
import pstats
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any, Protocol

from loguru import logger

from chunkwise.exceptions import ProfilerError, ProfilerStateError

log = logger.bind(component="profiler")


@dataclass(frozen=True, slots=True)
class FunctionStats:
    file: str
    line: int
    function: str
    calls: int
    primitive_calls: int
    total_time: float
    cumulative_time: float


@dataclass(frozen=True, slots=True)
class ProfileArtifact:
    """A captured profile. Times are in seconds."""

    started_at: float
    stopped_at: float
    total_calls: int
    total_time: float
    functions: tuple[FunctionStats, ...]

    @classmethod
    def from_stats(
        cls, stats: pstats.Stats, started_at: float, stopped_at: float
    ) -> ProfileArtifact:
        rows = [
            FunctionStats(
                file=file,
                line=line,
                function=function,
                calls=nc,
                primitive_calls=cc,
                total_time=tt,
                cumulative_time=ct,
            )
            for (file, line, function), (cc, nc, tt, ct, _callers) in stats.stats.items()  # type: ignore[attr-defined]
        ]
        rows.sort(key=lambda r: r.cumulative_time, reverse=True)
        return cls(
            started_at=started_at,
            stopped_at=stopped_at,
            total_calls=stats.total_calls,  # type: ignore[attr-defined]
            total_time=stats.total_tt,  # type: ignore[attr-defined]
            functions=tuple(rows),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProfileArtifact:
        return cls(
            started_at=data["started_at"],
            stopped_at=data["stopped_at"],
            total_calls=data["total_calls"],
            total_time=data["total_time"],
            functions=tuple(FunctionStats(**f) for f in data["functions"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ProfilingBackend(Protocol):
    async def enable(self) -> None: ...
    async def start(self) -> None: ...
    async def stop(self) -> ProfileArtifact: ...
    async def disable(self) -> None: ...


class CProfileBackend:
    """Profiling backend on top of ``cProfile.Profile``."""

    def __init__(self) -> None:
        self._profile: cProfile.Profile | None = None
        self._started_at = 0.0

    async def enable(self) -> None:
        self._profile = cProfile.Profile()

    async def start(self) -> None:
        if self._profile is None:
            raise RuntimeError("profiler is not enabled")
        # Raises ValueError when another profiler already owns the interpreter.
        self._profile.enable()
        self._started_at = time.time()

    async def stop(self) -> ProfileArtifact:
        if self._profile is None:
            raise RuntimeError("profiler is not enabled")
        self._profile.disable()
        stopped_at = time.time()
        stats = pstats.Stats(self._profile)
        return ProfileArtifact.from_stats(stats, self._started_at, stopped_at)

    async def disable(self) -> None:
        self._profile = None


class ProfilerSession:
    """Single in-flight profiling session over a pluggable backend.

    Args:
        backend_factory: Builds a fresh backend for every session.
    """

    def __init__(self, backend_factory: Callable[[], ProfilingBackend] = CProfileBackend) -> None:
        self._backend_factory = backend_factory
        self._backend: ProfilingBackend | None = None

    @property
    def running(self) -> bool:
        return self._backend is not None

    async def start(self) -> None:
        if self._backend is not None:
            raise ProfilerStateError("Session already connected")

        backend = self._backend_factory()
        self._backend = backend

        try:
            await backend.enable()
        except Exception as e:
            await self._release_after_failure(backend)
            raise ProfilerError(f"Could not enable profiler: {e}") from e
        log.info("Profiler enabled")

        try:
            await backend.start()
        except Exception as e:
            await self._release_after_failure(backend)
            raise ProfilerError(f"Could not start profiler: {e}") from e
        log.info("Profiler started")

    async def stop(self) -> ProfileArtifact:
        backend = self._backend
        if backend is None:
            raise ProfilerStateError("Profiler not connected")

        try:
            profile = await backend.stop()
        except Exception as e:
            raise ProfilerError(f"Could not stop profiler: {e}") from e
        log.info("Profiler stopped")

        try:
            await backend.disable()
        except Exception as e:
            raise ProfilerError(f"Could not disable profiler: {e}") from e
        log.info("Profiler disabled")
        self._backend = None

        return profile

    async def _release_after_failure(self, backend: ProfilingBackend) -> None:
        try:
            await backend.disable()
        except Exception as e:
            log.warning("Could not disable profiler after failed start: {err}", err=e)
            return
        self._backend = None
