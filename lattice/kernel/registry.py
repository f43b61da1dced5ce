"""Agent Registry — the process table of the lattice.

Every agent that exists is tracked here, in registration order. The
registry owns agent lifecycle; the findings store owns their history, and
destruction removes both under the same lock.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping

from pydantic import ValidationError

from lattice.config import LatticeSettings
from lattice.exceptions import (
    AgentNotFoundError, InvalidAgentConfigError, InvalidAgentTypeError,
)
from lattice.findings import FindingsStore
from lattice.kernel.agent import Agent, AgentConfig
from lattice.types import AgentId, AgentStatus, AgentType


def parse_agent_type(value: Any) -> AgentType:
    try:
        return AgentType(value)
    except ValueError:
        raise InvalidAgentTypeError(f"Unknown agent type: {value!r}") from None


class AgentRegistry:
    """Creates, pauses, resumes and destroys agents."""

    def __init__(self, settings: LatticeSettings, findings: FindingsStore) -> None:
        self._settings = settings
        self._findings = findings
        self._agents: dict[AgentId, Agent] = {}
        self._lock = asyncio.Lock()

    async def create(
        self,
        agent_type: AgentType | str,
        config: AgentConfig | Mapping[str, Any] | None = None,
    ) -> Agent:
        kind = parse_agent_type(agent_type)
        if config is None:
            config = AgentConfig()
        elif not isinstance(config, AgentConfig):
            try:
                config = AgentConfig.model_validate(dict(config))
            except ValidationError as e:
                raise InvalidAgentConfigError(str(e)) from e
        if config.interval_ms is not None and config.interval_ms <= 0:
            raise InvalidAgentConfigError(
                f"interval_ms must be positive, got {config.interval_ms}"
            )

        agent = Agent(
            type=kind,
            territory=config.territory or "*",
            interval_ms=config.interval_ms or self._settings.default_interval_ms(kind),
            metadata=dict(config.metadata),
        )
        async with self._lock:
            self._agents[agent.agent_id] = agent
            self._findings.open(agent.agent_id)
        return agent

    async def set_status(self, agent_id: AgentId, status: AgentStatus) -> Agent:
        """Toggle status. Setting the current status again is a no-op."""
        async with self._lock:
            agent = self._get(agent_id)
            agent.status = status
            return agent

    async def destroy(self, agent_id: AgentId) -> None:
        async with self._lock:
            self._get(agent_id)
            del self._agents[agent_id]
            self._findings.drop(agent_id)

    def get(self, agent_id: AgentId) -> Agent:
        """The live agent object. Callers outside the kernel get ``snapshot()``s."""
        return self._get(agent_id)

    def agents(self) -> list[Agent]:
        return list(self._agents.values())

    def ids(self) -> list[AgentId]:
        return list(self._agents)

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents

    def _get(self, agent_id: AgentId) -> Agent:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise AgentNotFoundError(f"No agent with id {agent_id}")
        return agent
