"""Scheduler — the tick job and the heartbeat that drives it.

A tick walks every agent in registration order and runs the ones that are
active and due. Failures are contained per agent: a broken run only moves
that agent into ``skipped``.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any, Awaitable, Callable

import structlog
from pydantic import BaseModel, Field

from lattice.exceptions import LatticeError
from lattice.kernel.agent import Agent
from lattice.records import Record, Snapshot
from lattice.types import AgentId, utcnow

if TYPE_CHECKING:
    from lattice.runtime import LatticeRuntime

logger = structlog.get_logger()

RecordSource = Callable[[], Iterable[Mapping[str, Any]] | Awaitable[Iterable[Mapping[str, Any]]]]


class TickReport(BaseModel):
    """Outcome of one scheduling pass."""

    ran: list[AgentId] = Field(default_factory=list)
    skipped: list[AgentId] = Field(default_factory=list)
    frozen: bool = False
    started_at: datetime = Field(default_factory=utcnow)

    @property
    def ran_count(self) -> int:
        return len(self.ran)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


class TickScheduler:
    """Decides which agents are due and runs them.

    With ``max_concurrent_scans == 1`` agents run one after another. With
    more, due agents run concurrently (scan math in worker threads) under a
    semaphore, all reading one copy of the records taken at tick start, so
    their findings do not depend on thread timing. The report still lists
    agents in registration order.
    """

    def __init__(self, runtime: LatticeRuntime, max_concurrent_scans: int = 1) -> None:
        self._runtime = runtime
        self._max_concurrent = max(1, max_concurrent_scans)
        self._semaphore: asyncio.Semaphore | None = None

    async def tick(self, records: Iterable[Mapping[str, Any]] | Snapshot) -> TickReport:
        runtime = self._runtime
        if runtime.frozen:
            report = TickReport(skipped=runtime.registry.ids(), frozen=True)
            logger.info("tick_frozen", skipped=report.skipped_count)
            return report

        snapshot = Snapshot.ingest(records)
        now = runtime.now()
        agents = runtime.registry.agents()

        if self._max_concurrent == 1:
            outcomes = [await self._evaluate(agent, snapshot, now) for agent in agents]
        else:
            # Every concurrent scan reads the tick-start state; repairs go to the live snapshot
            view = snapshot.detached()
            outcomes = await asyncio.gather(
                *(self._evaluate_bounded(agent, snapshot, now, view) for agent in agents)
            )

        report = TickReport(started_at=now)
        for agent, ran in zip(agents, outcomes):
            (report.ran if ran else report.skipped).append(agent.agent_id)

        logger.info(
            "tick_completed",
            ran=report.ran_count,
            skipped=report.skipped_count,
            records=len(snapshot),
        )
        await runtime.events.emit("tick.completed", {
            "ran": report.ran,
            "skipped": report.skipped,
        }, source="scheduler")
        return report

    async def _evaluate_bounded(
        self, agent: Agent, snapshot: Snapshot, now: datetime, view: list[Record],
    ) -> bool:
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._max_concurrent)
        async with self._semaphore:
            return await self._evaluate(agent, snapshot, now, view)

    async def _evaluate(
        self,
        agent: Agent,
        snapshot: Snapshot,
        now: datetime,
        view: list[Record] | None = None,
    ) -> bool:
        """True if the agent ran; False if it was skipped for any reason."""
        if not agent.is_active or not agent.is_due(now):
            return False
        try:
            await self._runtime.execute(
                agent.agent_id, snapshot, offload=view is not None, scan_records=view,
            )
        except LatticeError as e:
            logger.info("agent_skipped", agent_id=agent.agent_id, reason=e.code)
            return False
        except Exception as e:
            logger.error("agent_run_failed", agent_id=agent.agent_id, error=str(e))
            await self._runtime.events.emit("agent.failed", {
                "agent_id": agent.agent_id,
                "error": str(e),
            }, source="scheduler")
            return False
        return True


class HeartbeatDaemon:
    """Background task that ticks the scheduler on a fixed interval.

    Each beat pulls a fresh snapshot from ``record_source`` (sync or async).
    A failed beat is logged; the loop keeps going.
    """

    def __init__(
        self,
        scheduler: TickScheduler,
        record_source: RecordSource,
        interval_seconds: float = 60,
        history_limit: int = 50,
    ) -> None:
        self._scheduler = scheduler
        self._source = record_source
        self._interval = interval_seconds
        self._history_limit = history_limit
        self._history: list[TickReport] = []
        self._running = False
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop(), name="lattice-heartbeat")
        logger.info("heartbeat_started", interval_seconds=self._interval)

    async def stop(self) -> None:
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("heartbeat_stopped")

    async def run_once(self) -> TickReport:
        records = self._source()
        if inspect.isawaitable(records):
            records = await records
        report = await self._scheduler.tick(records)
        self._history.append(report)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit:]
        return report

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def history(self) -> list[TickReport]:
        return list(self._history)

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.error("heartbeat_failed", error=str(e))
            try:
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break
