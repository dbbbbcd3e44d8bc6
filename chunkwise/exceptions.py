"""Custom exception hierarchy for chunkwise.

All chunkwise-specific exceptions inherit from ChunkwiseError, enabling
callers to catch every chunkwise failure with a single except clause.
"""

from __future__ import annotations


class ChunkwiseError(Exception):
    """Base exception for all chunkwise errors."""


class InvalidInputError(ChunkwiseError):
    """Raised for a malformed duration or any other rejected request input."""


class UnknownStrategyError(InvalidInputError):
    """Raised when a strategy name is not part of the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"unknown mode {name}")


class ProfilerStateError(ChunkwiseError):
    """Raised when start/stop is called in the wrong profiler session state."""


class ProfilerError(ChunkwiseError):
    """Raised when the underlying profiling facility rejects a command."""


class ConfigurationError(ChunkwiseError):
    """Raised for invalid configuration or missing required settings."""
