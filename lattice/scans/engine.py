"""Scan Engine — routes an agent to its algorithm over its territory."""

from __future__ import annotations

from lattice.findings import Finding
from lattice.kernel.agent import Agent
from lattice.records import Record
from lattice.scans.base import ScanContext, ScanFn, in_territory
from lattice.scans.debate import scan_debate_simulator
from lattice.scans.freshness import scan_freshness
from lattice.scans.hypothesis import scan_hypothesis_tester
from lattice.scans.integrity import scan_integrity
from lattice.scans.patrol import scan_patrol
from lattice.scans.synthesis import scan_synthesis
from lattice.types import AgentType

SCANS: dict[AgentType, ScanFn] = {
    AgentType.PATROL: scan_patrol,
    AgentType.INTEGRITY: scan_integrity,
    AgentType.HYPOTHESIS_TESTER: scan_hypothesis_tester,
    AgentType.DEBATE_SIMULATOR: scan_debate_simulator,
    AgentType.FRESHNESS: scan_freshness,
    AgentType.SYNTHESIS: scan_synthesis,
}


def run_scan(agent: Agent, records: list[Record], ctx: ScanContext) -> list[Finding]:
    """Run the agent's algorithm over the records in its territory."""
    scan = SCANS[agent.type]
    return scan(in_territory(records, agent.territory), agent, ctx)
