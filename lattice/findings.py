"""Findings — what agents report, and the bounded history that keeps them.

Two histories are kept:
- per agent: the newest ``max_agent_findings`` entries, oldest dropped first
- global: grows to ``max_global_findings`` then is cut back to the newest
  ``global_findings_trim_to`` in one batch

Both are lossy by design. Lifetime totals live on the agents themselves.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from lattice.config import LatticeSettings
from lattice.exceptions import AgentNotFoundError
from lattice.types import AgentId, AgentType, FindingId, RecordId, Severity, new_id, utcnow


class Finding(BaseModel):
    """An issue surfaced by a scan."""

    finding_id: FindingId = Field(default_factory=lambda: new_id("finding"))
    agent_id: AgentId
    agent_type: AgentType
    record_id: RecordId | None = None
    record_title: str | None = None
    finding_type: str
    severity: Severity
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    auto_repair: bool = False
    repaired: bool = False
    repair_action: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)

    @property
    def repairable(self) -> bool:
        return self.severity == Severity.LOW and self.auto_repair


class FindingsStore:
    """Per-agent and global capped finding histories."""

    def __init__(self, settings: LatticeSettings) -> None:
        self._per_agent_limit = settings.max_agent_findings
        self._global_limit = settings.max_global_findings
        self._global_trim_to = settings.global_findings_trim_to
        self._default_limit = settings.default_findings_limit
        self._query_cap = settings.max_query_findings
        self._by_agent: dict[AgentId, list[Finding]] = {}
        self._all: list[Finding] = []

    def open(self, agent_id: AgentId) -> None:
        self._by_agent.setdefault(agent_id, [])

    def drop(self, agent_id: AgentId) -> None:
        self._by_agent.pop(agent_id, None)

    def record(self, agent_id: AgentId, findings: list[Finding]) -> None:
        """Append a run's findings to both histories and enforce the caps."""
        if not findings:
            return
        history = self._by_agent.get(agent_id)
        if history is not None:  # agent may have been destroyed mid-run
            history.extend(findings)
            if len(history) > self._per_agent_limit:
                self._by_agent[agent_id] = history[-self._per_agent_limit:]

        self._all.extend(findings)
        if len(self._all) > self._global_limit:
            self._all = self._all[-self._global_trim_to:]

    def for_agent(self, agent_id: AgentId, limit: int | None = None) -> tuple[list[Finding], int]:
        """Newest ``limit`` findings of one agent, oldest first, and the retained total."""
        history = self._by_agent.get(agent_id)
        if history is None:
            raise AgentNotFoundError(f"No agent with id {agent_id}")
        n = _clamp_limit(limit, self._default_limit, self._per_agent_limit)
        return history[-n:], len(history)

    def all(
        self, agent_type: AgentType | str | None = None, limit: int | None = None,
    ) -> tuple[list[Finding], int]:
        """Newest global findings, optionally of one agent type, oldest first."""
        if agent_type:
            filtered = [f for f in self._all if f.agent_type == agent_type]
        else:
            filtered = self._all
        n = _clamp_limit(limit, self._default_limit, self._query_cap)
        return filtered[-n:], len(filtered)

    @property
    def global_count(self) -> int:
        return len(self._all)


def _clamp_limit(limit: int | None, default: int, cap: int) -> int:
    if limit is None:
        limit = default
    return min(max(1, limit), cap)
