"""Tests for agent lifecycle through the runtime's registry."""

import pytest

from lattice.exceptions import (
    AgentNotFoundError, InvalidAgentConfigError, InvalidAgentTypeError,
)
from lattice.types import AgentStatus, AgentType


@pytest.mark.asyncio
async def test_create_each_type(runtime):
    ids = set()
    for kind in AgentType:
        agent = await runtime.create_agent(kind.value)
        assert agent.type == kind
        assert agent.status == AgentStatus.ACTIVE
        assert agent.interval_ms == runtime.settings.default_interval_ms(kind)
        ids.add(agent.agent_id)

    assert len(ids) == 6
    assert [a.agent_id for a in runtime.list_agents()] == [
        a.agent_id for a in runtime.registry.agents()
    ]


@pytest.mark.asyncio
async def test_default_intervals(runtime):
    patrol = await runtime.create_agent("patrol")
    freshness = await runtime.create_agent("freshness")
    assert patrol.interval_ms == 5 * 60 * 1000
    assert freshness.interval_ms == 60 * 60 * 1000


@pytest.mark.asyncio
async def test_invalid_type_registers_nothing(runtime):
    with pytest.raises(InvalidAgentTypeError):
        await runtime.create_agent("janitor")
    assert runtime.list_agents() == []


@pytest.mark.asyncio
async def test_config_overrides(runtime):
    agent = await runtime.create_agent("integrity", {
        "territory": "biology",
        "interval_ms": 1234,
        "metadata": {"owner": "ops"},
    })
    assert agent.territory == "biology"
    assert agent.interval_ms == 1234
    assert agent.metadata == {"owner": "ops"}


@pytest.mark.asyncio
async def test_non_positive_interval_is_rejected(runtime):
    with pytest.raises(InvalidAgentConfigError):
        await runtime.create_agent("patrol", {"interval_ms": -5})
    assert runtime.list_agents() == []


@pytest.mark.asyncio
async def test_pause_is_idempotent(runtime):
    agent = await runtime.create_agent("patrol")

    first = await runtime.pause_agent(agent.agent_id)
    second = await runtime.pause_agent(agent.agent_id)

    assert first.status == AgentStatus.PAUSED
    assert second.status == AgentStatus.PAUSED
    resumed = await runtime.resume_agent(agent.agent_id)
    assert resumed.status == AgentStatus.ACTIVE


@pytest.mark.asyncio
async def test_unknown_agent_operations_fail(runtime):
    with pytest.raises(AgentNotFoundError):
        await runtime.pause_agent("nope")
    with pytest.raises(AgentNotFoundError):
        await runtime.resume_agent("nope")
    with pytest.raises(AgentNotFoundError):
        await runtime.destroy_agent("nope")
    with pytest.raises(AgentNotFoundError):
        runtime.get_agent("nope")


@pytest.mark.asyncio
async def test_destroy_removes_agent_and_findings(runtime, days_ago):
    agent = await runtime.create_agent("patrol")
    await runtime.run_agent(agent.agent_id, [{"id": "a", "authority": 0.1}])
    findings, total = runtime.get_agent_findings(agent.agent_id)
    assert total == 1

    await runtime.destroy_agent(agent.agent_id)

    assert runtime.list_agents() == []
    with pytest.raises(AgentNotFoundError):
        runtime.get_agent_findings(agent.agent_id)


@pytest.mark.asyncio
async def test_get_agent_returns_a_copy(runtime):
    agent = await runtime.create_agent("patrol")
    view = runtime.get_agent(agent.agent_id)
    view.run_count = 42
    assert runtime.get_agent(agent.agent_id).run_count == 0
