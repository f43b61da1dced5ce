"""Lattice Runtime — the owned context every operation runs against.

Everything that would otherwise be process-wide state lives here: the
agent registry, the findings histories, the repair engine, the event bus
and the global freeze flag. Create as many runtimes as you need; they
share nothing.

Methods raise ``LatticeError`` subclasses. ``lattice.api`` turns those
into result values for hosts that want a non-raising boundary.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Callable

from pydantic import BaseModel, Field

from lattice.config import LatticeSettings
from lattice.events.bus import EventBus
from lattice.exceptions import AgentNotActiveError, AgentsFrozenError
from lattice.findings import Finding, FindingsStore
from lattice.kernel.agent import Agent, AgentConfig
from lattice.kernel.registry import AgentRegistry
from lattice.kernel.scheduler import TickReport, TickScheduler
from lattice.metrics import AgentMetrics, compute_metrics
from lattice.records import Record, Snapshot
from lattice.repair import RepairEngine
from lattice.scans.base import ScanContext
from lattice.scans.engine import run_scan
from lattice.types import AgentId, AgentStatus, AgentType, utcnow

_logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
RecordsInput = Iterable[Mapping[str, Any] | Record] | Snapshot


class RunReport(BaseModel):
    """Outcome of one agent run."""

    agent_id: AgentId
    findings: list[Finding] = Field(default_factory=list)
    repaired: int = 0
    skipped: int = 0  # malformed records, bad timestamps, items scans could not use
    faults: int = 0   # items that failed unexpectedly

    @property
    def count(self) -> int:
        return len(self.findings)


class LatticeRuntime:
    """Central registry and scheduler for lattice maintenance agents."""

    def __init__(
        self,
        settings: LatticeSettings | None = None,
        event_bus: EventBus | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.settings = settings or LatticeSettings()
        self.events = event_bus or EventBus()
        self.findings = FindingsStore(self.settings)
        self.registry = AgentRegistry(self.settings, self.findings)
        self.repairs = RepairEngine()
        self.scheduler = TickScheduler(self, self.settings.max_concurrent_scans)
        self._clock = clock
        self._frozen = False

    def now(self) -> datetime:
        return self._clock()

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ── lifecycle ────────────────────────────────────────────────

    async def create_agent(
        self,
        agent_type: AgentType | str,
        config: AgentConfig | Mapping[str, Any] | None = None,
    ) -> Agent:
        agent = await self.registry.create(agent_type, config)
        _logger.info("Created %s agent %s (territory=%s)",
                     agent.type.value, agent.agent_id, agent.territory)
        await self.events.emit("agent.created", {
            "agent_id": agent.agent_id,
            "type": agent.type.value,
            "territory": agent.territory,
        }, source="runtime")
        return agent.snapshot()

    async def pause_agent(self, agent_id: AgentId) -> Agent:
        agent = await self.registry.set_status(agent_id, AgentStatus.PAUSED)
        await self.events.emit("agent.paused", {"agent_id": agent_id}, source="runtime")
        return agent.snapshot()

    async def resume_agent(self, agent_id: AgentId) -> Agent:
        agent = await self.registry.set_status(agent_id, AgentStatus.ACTIVE)
        await self.events.emit("agent.resumed", {"agent_id": agent_id}, source="runtime")
        return agent.snapshot()

    async def destroy_agent(self, agent_id: AgentId) -> None:
        await self.registry.destroy(agent_id)
        _logger.info("Destroyed agent %s", agent_id)
        await self.events.emit("agent.destroyed", {"agent_id": agent_id}, source="runtime")

    def get_agent(self, agent_id: AgentId) -> Agent:
        return self.registry.get(agent_id).snapshot()

    def list_agents(self) -> list[Agent]:
        return [a.snapshot() for a in self.registry.agents()]

    # ── running ──────────────────────────────────────────────────

    async def run_agent(self, agent_id: AgentId, records: RecordsInput) -> RunReport:
        """Run one agent now, regardless of its interval."""
        return await self.execute(agent_id, Snapshot.ingest(records))

    async def execute(
        self,
        agent_id: AgentId,
        snapshot: Snapshot,
        offload: bool = False,
        scan_records: list[Record] | None = None,
    ) -> RunReport:
        """Scan, record, repair and count.

        ``offload`` runs the scan in a worker thread. ``scan_records`` is the
        view the scan reads (a detached copy when scans run beside repairs);
        repairs always land on ``snapshot``.
        """
        agent = self.registry.get(agent_id)
        if not agent.is_active:
            raise AgentNotActiveError(f"Agent {agent_id} is paused")
        if self._frozen:
            raise AgentsFrozenError("All agents are frozen")

        records = snapshot.records if scan_records is None else scan_records
        ctx = ScanContext(now=self.now(), heuristics=self.settings.heuristics)
        if offload:
            found = await asyncio.to_thread(run_scan, agent, records, ctx)
        else:
            found = run_scan(agent, records, ctx)

        self.findings.record(agent_id, found)

        report = RunReport(
            agent_id=agent_id,
            findings=found,
            skipped=ctx.skipped + snapshot.malformed + snapshot.invalid_timestamps,
            faults=ctx.faults,
        )
        for finding in found:
            if finding.repairable and await self.repairs.apply(finding, snapshot):
                agent.record_repair()
                report.repaired += 1
                await self.events.emit("finding.repaired", {
                    "agent_id": agent_id,
                    "finding_id": finding.finding_id,
                    "record_id": finding.record_id,
                    "repair_action": finding.repair_action,
                }, source="repair")

        agent.record_run(self.now(), len(found))
        _logger.debug("Agent %s found %d issue(s), repaired %d",
                      agent_id, report.count, report.repaired)
        await self.events.emit("agent.ran", {
            "agent_id": agent_id,
            "type": agent.type.value,
            "findings": report.count,
            "repaired": report.repaired,
            "faults": report.faults,
        }, source="runtime")
        return report

    async def agent_tick_job(self, records: RecordsInput) -> TickReport:
        return await self.scheduler.tick(records)

    # ── freeze ───────────────────────────────────────────────────

    async def freeze_all_agents(self) -> int:
        """Stop every agent from running until thawed. Returns the agent count."""
        self._frozen = True
        _logger.warning("All %d agents frozen", len(self.registry))
        await self.events.emit("lattice.frozen", {"agent_count": len(self.registry)},
                               source="runtime")
        return len(self.registry)

    async def thaw_all_agents(self) -> int:
        self._frozen = False
        _logger.info("All %d agents thawed", len(self.registry))
        await self.events.emit("lattice.thawed", {"agent_count": len(self.registry)},
                               source="runtime")
        return len(self.registry)

    # ── queries ──────────────────────────────────────────────────

    def get_agent_findings(
        self, agent_id: AgentId, limit: int | None = None,
    ) -> tuple[list[Finding], int]:
        return self.findings.for_agent(agent_id, limit)

    def get_all_findings(
        self, agent_type: AgentType | str | None = None, limit: int | None = None,
    ) -> tuple[list[Finding], int]:
        return self.findings.all(agent_type, limit)

    def get_agent_metrics(self) -> AgentMetrics:
        return compute_metrics(
            self.registry.agents(), self._frozen, self.findings.global_count,
        )
