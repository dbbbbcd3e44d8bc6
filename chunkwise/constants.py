"""Shared constants for chunkwise."""

from __future__ import annotations

# Every split strategy slices its work into chunks of this size.
CHUNK_DURATION_MS = 10

# Zero-delay timers are clamped to this, like most event-driven runtimes do.
MIN_TIMER_DELAY_MS = 1

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3003
DEFAULT_ADMIN_PORT = 3004

DEFAULT_STRATEGY = "busy-wait"
