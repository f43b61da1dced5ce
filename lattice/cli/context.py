"""CLI helpers — bridge sync typer commands to the async runtime."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Coroutine

from lattice.config import settings
from lattice.runtime import LatticeRuntime


def build_runtime() -> LatticeRuntime:
    return LatticeRuntime(settings=settings)


def run_async(coro: Coroutine) -> Any:
    """Run an async coroutine from sync CLI code."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        # Called from inside a running loop (e.g. a notebook host)
        import concurrent.futures
        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()
    return asyncio.run(coro)


def load_snapshot(path: Path) -> list[Any]:
    """Read a JSON snapshot: a list of records or ``{"records": [...]}``."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("records", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a list of records")
    return data


def write_snapshot(path: Path, records: list[Any]) -> None:
    path.write_text(json.dumps(records, indent=2, default=str) + "\n", encoding="utf-8")
