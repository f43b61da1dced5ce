"""Tests for agent metrics."""

import pytest


@pytest.mark.asyncio
async def test_empty_runtime_metrics(runtime):
    metrics = runtime.get_agent_metrics()
    assert metrics.agent_count == 0
    assert metrics.global_frozen is False
    assert metrics.by_type == {}


@pytest.mark.asyncio
async def test_metrics_roll_up_by_type(runtime):
    p1 = await runtime.create_agent("patrol")
    p2 = await runtime.create_agent("patrol")
    integrity = await runtime.create_agent("integrity")

    await runtime.run_agent(p1.agent_id, [{"id": "a", "parentId": "gone"}])
    await runtime.run_agent(p2.agent_id, [{"id": "a", "authority": 0.1}])
    await runtime.run_agent(integrity.agent_id, [{"id": "b", "references": ["x"]}])
    await runtime.freeze_all_agents()

    metrics = runtime.get_agent_metrics()

    assert metrics.agent_count == 3
    assert metrics.global_frozen is True
    assert metrics.total_runs == 3
    assert metrics.total_findings == 3
    assert metrics.total_repairs == 2
    assert metrics.global_findings_count == 3
    assert metrics.by_type["patrol"].count == 2
    assert metrics.by_type["patrol"].total_findings == 2
    assert metrics.by_type["patrol"].total_repairs == 1
    assert metrics.by_type["integrity"].total_repairs == 1


@pytest.mark.asyncio
async def test_lifetime_counts_survive_history_caps(runtime):
    agent = await runtime.create_agent("integrity")
    refs = [f"missing{i}" for i in range(120)]
    await runtime.run_agent(agent.agent_id, [{"id": "a", "references": refs}])

    metrics = runtime.get_agent_metrics()
    _, retained = runtime.get_agent_findings(agent.agent_id)

    assert metrics.total_findings == 120
    assert retained == 100
