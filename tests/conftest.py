"""Shared test fixtures — a controllable clock and ready-made runtimes."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from lattice.config import Heuristics, LatticeSettings
from lattice.kernel.agent import Agent
from lattice.records import Snapshot
from lattice.runtime import LatticeRuntime
from lattice.scans.base import ScanContext
from lattice.types import AgentType

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def days_ago():
    def _days_ago(days: float) -> str:
        return (NOW - timedelta(days=days)).isoformat()
    return _days_ago


@pytest.fixture
def runtime(clock):
    return LatticeRuntime(settings=LatticeSettings(), clock=clock)


@pytest.fixture
def scan_ctx():
    return ScanContext(now=NOW, heuristics=Heuristics())


@pytest.fixture
def make_agent():
    def _factory(kind: AgentType | str) -> Agent:
        return Agent(type=AgentType(kind), interval_ms=60_000)
    return _factory


@pytest.fixture
def ingest():
    def _ingest(raw: list[dict]):
        return Snapshot.ingest(raw).records
    return _ingest
