"""Command line entry point.

    chunkwise serve [--host H] [--port P] [--admin-port P] [--config FILE] [--log-level L]
    chunkwise report PROFILE.json [--limit N]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table
from rich.text import Text

from chunkwise.config import load_settings, with_overrides
from chunkwise.exceptions import ConfigurationError
from chunkwise.logging import LOG_LEVELS, setup_logging, teardown_logging
from chunkwise.profiler import ProfileArtifact
from chunkwise.server import main


def render_profile(profile: ProfileArtifact, limit: int = 25) -> Table:
    duration = profile.stopped_at - profile.started_at
    table = Table(
        title=f"{profile.total_calls} calls in {profile.total_time:.3f}s "
        f"(captured over {duration:.1f}s)",
        title_style="bold",
        padding=(0, 1),
    )
    table.add_column("function")
    table.add_column("location", style="bright_black")
    table.add_column("calls", justify="right")
    table.add_column("tottime", justify="right")
    table.add_column("cumtime", justify="right", style="cyan")

    for row in profile.functions[:limit]:
        calls = str(row.calls)
        if row.primitive_calls != row.calls:
            calls = f"{row.calls}/{row.primitive_calls}"
        table.add_row(
            Text(row.function),
            f"{row.file}:{row.line}",
            calls,
            f"{row.total_time:.4f}",
            f"{row.cumulative_time:.4f}",
        )
    return table


def _serve(args: argparse.Namespace) -> int:
    try:
        settings = load_settings(config_file=args.config)
    except ConfigurationError as e:
        print(f"chunkwise: {e}", file=sys.stderr)
        return 2

    settings = with_overrides(
        settings,
        host=args.host,
        port=args.port,
        admin_port=args.admin_port,
        log_level=args.log_level,
    )
    handler_ids = setup_logging(settings.logging)
    try:
        asyncio.run(main(settings))
    except KeyboardInterrupt:
        pass
    finally:
        teardown_logging(handler_ids)
    return 0


def _report(args: argparse.Namespace) -> int:
    console = Console()
    try:
        data = json.loads(args.profile.read_text())
        profile = ProfileArtifact.from_dict(data)
    except (OSError, ValueError, KeyError, TypeError) as e:
        console.print(f"[red]Could not read profile {args.profile}: {e}[/red]")
        return 1
    console.print(render_profile(profile, args.limit))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chunkwise",
        description="Cooperative chunking demo server and profile viewer",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the demo and admin servers")
    serve.add_argument("--host", type=str, default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--admin-port", type=int, default=None)
    serve.add_argument("--config", type=Path, default=None, help="Extra TOML config file")
    serve.add_argument("--log-level", choices=LOG_LEVELS, default=None)
    serve.set_defaults(func=_serve)

    report = sub.add_parser("report", help="Render a saved CPU profile")
    report.add_argument("profile", type=Path)
    report.add_argument("--limit", type=int, default=25)
    report.set_defaults(func=_report)

    return parser


def cli(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(cli())
