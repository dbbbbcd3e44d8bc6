"""HTTP surface for the chunking demo.

Two aiohttp applications share one event loop:

- the demo app serves ``GET /?duration=<ms>&mode=<strategy>`` and answers
  once the chosen strategy reports completion, so concurrent requests show
  how well each strategy keeps the loop responsive;
- the admin app wraps a ProfilerSession in ``POST /startProfiler`` and
  ``POST /stopProfiler``.
"""

from __future__ import annotations

import asyncio
import json
import tempfile
import time
from pathlib import Path

from aiohttp import web
from loguru import logger

from chunkwise.config import Settings
from chunkwise.constants import DEFAULT_STRATEGY
from chunkwise.exceptions import InvalidInputError, ProfilerStateError
from chunkwise.profiler import ProfileArtifact, ProfilerSession
from chunkwise.runtime import PhasedRuntime
from chunkwise.strategies import dispatch, parse_duration

log = logger.bind(component="server")

PROFILER_KEY = web.AppKey("profiler", ProfilerSession)
PROFILE_DIR_KEY = web.AppKey("profile_dir", Path)
TIMERS_KEY = web.AppKey("timers", set)


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


# ─── Demo app ────────────────────────────────────────────────────────


def create_app() -> web.Application:
    async def index(request: web.Request) -> web.Response:
        mode = request.query.get("mode") or DEFAULT_STRATEGY
        try:
            total_ms = parse_duration(request.query.get("duration"))
            done = dispatch(total_ms, mode)
        except InvalidInputError as e:
            log.error("Rejected request: {err}", err=e)
            return _error(str(e), 400)

        try:
            await done
        except Exception as e:
            log.exception("Mode {mode} failed: {err}", mode=mode, err=e)
            return _error("unknown error", 500)

        return web.Response(text="Hello World")

    async def health(_request: web.Request) -> web.Response:
        return web.json_response({"status": "ready"})

    async def close_runtime(_app: web.Application) -> None:
        PhasedRuntime.current().close()

    app = web.Application()
    app.router.add_get("/", index)
    app.router.add_get("/health", health)
    app.on_cleanup.append(close_runtime)
    return app


# ─── Admin app ───────────────────────────────────────────────────────


def _parse_seconds(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        raise InvalidInputError("invalid duration") from None


def write_profile(profile: ProfileArtifact, directory: Path) -> Path:
    """Write ``profile`` as JSON and return the file path."""
    out_file = directory / f"profile-{int(time.time() * 1000)}.json"
    out_file.write_text(json.dumps(profile.to_dict()))
    return out_file.resolve()


def create_admin_app(
    session: ProfilerSession | None = None, profile_dir: Path | None = None
) -> web.Application:
    """Build the profiler control app.

    Args:
        session: Profiler session handle. A fresh one is created if omitted.
        profile_dir: Where timed profiles are written. Defaults to the temp dir.
    """

    async def stop_later(app: web.Application) -> None:
        try:
            profile = await app[PROFILER_KEY].stop()
        except Exception as e:
            log.error("Could not stop profiler: {err}", err=e)
            return
        out_file = write_profile(profile, app[PROFILE_DIR_KEY])
        log.info("CPU profile written to: {path}", path=out_file)

    async def start_profiler(request: web.Request) -> web.Response:
        app = request.app
        try:
            duration = _parse_seconds(request.query.get("duration"))
        except InvalidInputError as e:
            return _error(str(e), 400)

        try:
            await app[PROFILER_KEY].start()
        except ProfilerStateError as e:
            log.error("Could not start profiler: {err}", err=e)
            return _error(str(e), 409)
        except Exception as e:
            log.error("Could not start profiler: {err}", err=e)
            return _error(str(e) or "unknown error", 500)

        if duration and duration > 0:
            timers = app[TIMERS_KEY]
            loop = asyncio.get_running_loop()

            def fire() -> None:
                timers.discard(handle)
                task = loop.create_task(stop_later(app))
                timers.add(task)
                task.add_done_callback(timers.discard)

            handle = loop.call_later(duration, fire)
            timers.add(handle)

        return web.Response(text="CPU profiler started")

    async def stop_profiler(request: web.Request) -> web.Response:
        try:
            profile = await request.app[PROFILER_KEY].stop()
        except ProfilerStateError as e:
            log.error("Could not stop profiler: {err}", err=e)
            return _error(str(e), 409)
        except Exception as e:
            log.error("Could not stop profiler: {err}", err=e)
            return _error(str(e) or "unknown error", 500)

        # The auto-stop belonged to the session that just ended.
        timers = request.app[TIMERS_KEY]
        for handle in [t for t in timers if isinstance(t, asyncio.TimerHandle)]:
            handle.cancel()
            timers.discard(handle)
        return web.json_response(profile.to_dict())

    async def cancel_timers(app: web.Application) -> None:
        for timer in app[TIMERS_KEY]:
            timer.cancel()
        app[TIMERS_KEY].clear()

    app = web.Application()
    app[PROFILER_KEY] = session or ProfilerSession()
    app[PROFILE_DIR_KEY] = profile_dir or Path(tempfile.gettempdir())
    app[TIMERS_KEY] = set()
    app.router.add_post("/startProfiler", start_profiler)
    app.router.add_post("/stopProfiler", stop_profiler)
    app.on_cleanup.append(cancel_timers)
    return app


# ─── Entry point ─────────────────────────────────────────────────────


async def main(settings: Settings) -> None:
    server = settings.server
    runners: list[web.AppRunner] = []
    try:
        for app, port in (
            (create_admin_app(), server.admin_port),
            (create_app(), server.port),
        ):
            runner = web.AppRunner(app)
            runners.append(runner)
            await runner.setup()
            site = web.TCPSite(runner, server.host, port)
            await site.start()

        log.info("Admin Server is listening on http://{host}:{port}", host=server.host, port=server.admin_port)
        log.info("Server is listening on http://{host}:{port}", host=server.host, port=server.port)
        await asyncio.Event().wait()
    finally:
        for runner in reversed(runners):
            await runner.cleanup()
