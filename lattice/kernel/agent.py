"""The Agent — a scheduled maintainer of one slice of the lattice."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from lattice.types import (
    AgentId, AgentStatus, AgentType, WILDCARD_TERRITORY, new_id, utcnow,
)


class AgentConfig(BaseModel):
    """Optional overrides accepted by ``create_agent``."""

    territory: str = WILDCARD_TERRITORY
    interval_ms: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class Agent(BaseModel):
    """One registered agent and its lifetime counters.

    Counters only ever go up. Status only toggles between active and
    paused; destroying an agent removes it from the registry.
    """

    agent_id: AgentId = Field(default_factory=lambda: new_id("agent"))
    type: AgentType
    territory: str = WILDCARD_TERRITORY
    interval_ms: int
    status: AgentStatus = AgentStatus.ACTIVE
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    last_run_at: datetime | None = None
    run_count: int = 0
    findings_count: int = 0
    repairs_count: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == AgentStatus.ACTIVE

    def is_due(self, now: datetime) -> bool:
        """Never-run agents are always due."""
        if self.last_run_at is None:
            return True
        elapsed_ms = (now - self.last_run_at).total_seconds() * 1000
        return elapsed_ms >= self.interval_ms

    def record_run(self, finished_at: datetime, findings: int) -> None:
        self.last_run_at = finished_at
        self.run_count += 1
        self.findings_count += findings

    def record_repair(self) -> None:
        self.repairs_count += 1

    def snapshot(self) -> Agent:
        return self.model_copy(deep=True)
