"""chunkwise - keep a single-threaded event loop responsive during long blocking work.

Example:

    from chunkwise import IMMEDIATE, plan, split_recursive

    async def handler():
        # 500ms of blocking work, in 10ms chunks, yielding between chunks
        await split_recursive(plan(500, 10), IMMEDIATE)
"""

# Busy work and planning
from chunkwise.work import WorkPlan, busy_wait, plan

# Phased runtime and yield primitives
from chunkwise.runtime import (
    PhasedRuntime,
    next_tick,
    queue_microtask,
    set_immediate,
    set_timeout,
)
from chunkwise.yielding import (
    IMMEDIATE,
    MICROTASK,
    NEXT_TICK,
    PRIMITIVES,
    TIMEOUT,
    RuntimeYield,
    YieldPrimitive,
)

# Schedulers
from chunkwise.scheduler import (
    Done,
    IterativeRun,
    Pending,
    RecursiveRun,
    RunState,
    split_iterative,
    split_recursive,
)

# Dispatcher
from chunkwise.strategies import STRATEGIES, dispatch, parse_duration

# Profiling
from chunkwise.profiler import (
    CProfileBackend,
    FunctionStats,
    ProfileArtifact,
    ProfilerSession,
    ProfilingBackend,
)

# Errors
from chunkwise.exceptions import (
    ChunkwiseError,
    ConfigurationError,
    InvalidInputError,
    ProfilerError,
    ProfilerStateError,
    UnknownStrategyError,
)

# Logging
from chunkwise.logging import LogConfig

__all__ = [
    "WorkPlan",
    "busy_wait",
    "plan",
    "PhasedRuntime",
    "next_tick",
    "queue_microtask",
    "set_immediate",
    "set_timeout",
    "IMMEDIATE",
    "MICROTASK",
    "NEXT_TICK",
    "PRIMITIVES",
    "TIMEOUT",
    "RuntimeYield",
    "YieldPrimitive",
    "Done",
    "IterativeRun",
    "Pending",
    "RecursiveRun",
    "RunState",
    "split_iterative",
    "split_recursive",
    "STRATEGIES",
    "dispatch",
    "parse_duration",
    "CProfileBackend",
    "FunctionStats",
    "ProfileArtifact",
    "ProfilerSession",
    "ProfilingBackend",
    "ChunkwiseError",
    "ConfigurationError",
    "InvalidInputError",
    "ProfilerError",
    "ProfilerStateError",
    "UnknownStrategyError",
    "LogConfig",
]
