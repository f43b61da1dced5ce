"""Metrics — on-demand rollups over agents and findings."""

from __future__ import annotations

from pydantic import BaseModel, Field

from lattice.kernel.agent import Agent


class TypeMetrics(BaseModel):
    count: int = 0
    total_runs: int = 0
    total_findings: int = 0
    total_repairs: int = 0


class AgentMetrics(BaseModel):
    agent_count: int = 0
    global_frozen: bool = False
    total_runs: int = 0
    total_findings: int = 0
    total_repairs: int = 0
    global_findings_count: int = 0
    by_type: dict[str, TypeMetrics] = Field(default_factory=dict)


def compute_metrics(
    agents: list[Agent], frozen: bool, global_findings_count: int,
) -> AgentMetrics:
    """Sum the agents' own counters; the capped finding history is not consulted."""
    metrics = AgentMetrics(
        agent_count=len(agents),
        global_frozen=frozen,
        global_findings_count=global_findings_count,
    )
    for agent in agents:
        bucket = metrics.by_type.setdefault(agent.type.value, TypeMetrics())
        bucket.count += 1
        bucket.total_runs += agent.run_count
        bucket.total_findings += agent.findings_count
        bucket.total_repairs += agent.repairs_count
        metrics.total_runs += agent.run_count
        metrics.total_findings += agent.findings_count
        metrics.total_repairs += agent.repairs_count
    return metrics
