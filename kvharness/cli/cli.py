#!/usr/bin/env python3
"""
kvharness CLI - run a lifecycle smoke check against the server under test.

Usage:
    kvharness smoke
    kvharness smoke --config etc/kvharness.yaml --log-level debug
    kvharness --help
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TextIO

from rich.console import Console
from rich.table import Table

import kvharness
from kvharness.config import load_config
from kvharness.exceptions import HarnessError
from kvharness.testing import ServerHarness

if TYPE_CHECKING:
    import redis.asyncio as aioredis

    from kvharness.config import HarnessConfig

# Key written by the smoke check
SMOKE_KEY = "kvharness:smoke"


@dataclass
class CheckResult:
    """Result of a single smoke check step."""

    name: str
    passed: bool
    message: str


def _should_use_color() -> bool:
    # Respect NO_COLOR environment variable (https://no-color.org/)
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return sys.stdout.isatty()


async def _smoke_body(client: aioredis.Redis, results: list[CheckResult]) -> None:
    """Exercise the server once it is up; each step appends its result."""
    results.append(CheckResult("start", True, "started"))

    pong = await client.ping()
    results.append(CheckResult("PING", bool(pong), "PONG" if pong else repr(pong)))

    value = f"smoke-{time.time_ns()}"
    await client.set(SMOKE_KEY, value)
    got = await client.get(SMOKE_KEY)
    results.append(
        CheckResult("SET/GET", got == value, f"{got!r}" if got != value else "round trip")
    )


async def run_smoke(config: HarnessConfig) -> list[CheckResult]:
    """
    Run one full start/stop cycle and collect the step results.

    Failures are reported as failed steps rather than raised.
    """
    results: list[CheckResult] = []
    harness = ServerHarness(config)
    try:
        await harness.with_server(lambda client: _smoke_body(client, results))
    except HarnessError as e:
        results.append(CheckResult("lifecycle", False, str(e)))
    except Exception as e:
        results.append(CheckResult("lifecycle", False, f"{type(e).__name__}: {e}"))
    else:
        results.append(CheckResult("stop", True, "stopped"))
    return results


def _render(results: list[CheckResult], config: HarnessConfig, stream: TextIO) -> None:
    console = Console(file=stream, no_color=not _should_use_color(), highlight=False)
    table = Table(title=f"kvharness smoke ({config.server.host}:{config.server.port})")
    table.add_column("Step", style="bold")
    table.add_column("Result")
    table.add_column("Detail")
    for r in results:
        status = "[green]PASS[/green]" if r.passed else "[red bold]FAIL[/red bold]"
        table.add_row(r.name, status, r.message)
    console.print(table)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kvharness",
        description="Lifecycle harness for the key-value server under test",
    )
    parser.add_argument(
        "-v", "--version", action="version", version=f"kvharness {kvharness.__version__}"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    smoke = sub.add_parser(
        "smoke", help="Start the server, run PING and SET/GET, stop it"
    )
    smoke.add_argument(
        "--config",
        default=None,
        help="Configuration file (default: $KVHARNESS_CONFIG, else built-in defaults)",
    )
    smoke.add_argument(
        "--log-level",
        default=None,
        help="Log level override (trace, debug, info, warning, error, false)",
    )
    return parser


def _load(args: argparse.Namespace) -> HarnessConfig:
    config = load_config(args.config)
    if args.log_level is not None:
        data: dict[str, Any] = config.to_dict()
        data["logging"]["level"] = args.log_level
        config = type(config).from_dict(data)
    return config


def main(argv: list[str] | None = None, stream: TextIO | None = None) -> int:
    """Main entry point for the kvharness CLI."""
    args = _build_parser().parse_args(argv)
    out = stream if stream is not None else sys.stdout

    try:
        config = _load(args)
    except HarnessError as e:
        print(f"kvharness: {e}", file=sys.stderr)
        return 1

    results = asyncio.run(run_smoke(config))
    _render(results, config, out)
    return 0 if all(r.passed for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
