"""Tests for the tick scheduler and heartbeat daemon."""

import asyncio

import pytest

from lattice.config import LatticeSettings
from lattice.events.bus import Event
from lattice.kernel.scheduler import HeartbeatDaemon
from lattice.runtime import LatticeRuntime
from lattice.scans import engine
from lattice.types import AgentType


@pytest.mark.asyncio
async def test_never_run_agents_run_on_first_tick(runtime):
    a = await runtime.create_agent("patrol")
    b = await runtime.create_agent("freshness")

    report = await runtime.agent_tick_job([])

    assert report.ran == [a.agent_id, b.agent_id]
    assert report.skipped == []
    assert report.frozen is False


@pytest.mark.asyncio
async def test_agent_not_due_is_skipped_until_interval_passes(runtime, clock):
    agent = await runtime.create_agent("patrol", {"interval_ms": 60_000})
    await runtime.agent_tick_job([])

    clock.advance(seconds=30)
    report = await runtime.agent_tick_job([])
    assert report.skipped == [agent.agent_id]

    clock.advance(seconds=30)
    report = await runtime.agent_tick_job([])
    assert report.ran == [agent.agent_id]
    assert runtime.get_agent(agent.agent_id).run_count == 2


@pytest.mark.asyncio
async def test_paused_agent_is_skipped(runtime):
    active = await runtime.create_agent("patrol")
    paused = await runtime.create_agent("integrity")
    await runtime.pause_agent(paused.agent_id)

    report = await runtime.agent_tick_job([])

    assert report.ran == [active.agent_id]
    assert report.skipped == [paused.agent_id]


@pytest.mark.asyncio
async def test_frozen_tick_skips_everyone(runtime):
    ids = [(await runtime.create_agent(kind)).agent_id for kind in ("patrol", "synthesis")]
    await runtime.freeze_all_agents()

    report = await runtime.agent_tick_job([{"id": "a"}])

    assert report.frozen is True
    assert report.ran == []
    assert report.skipped == ids
    assert all(runtime.get_agent(i).run_count == 0 for i in ids)


@pytest.mark.asyncio
async def test_failing_agent_does_not_stop_the_tick(runtime, monkeypatch):
    failures = []

    async def on_failed(event: Event):
        failures.append(event)

    def boom(records, agent, ctx):
        raise RuntimeError("scan exploded")

    monkeypatch.setitem(engine.SCANS, AgentType.PATROL, boom)
    runtime.events.subscribe("agent.failed", on_failed)
    broken = await runtime.create_agent("patrol")
    healthy = await runtime.create_agent("integrity")

    report = await runtime.agent_tick_job([{"id": "a", "crossRefs": ["ghost"]}])

    assert report.skipped == [broken.agent_id]
    assert report.ran == [healthy.agent_id]
    assert len(failures) == 1
    assert failures[0].data["agent_id"] == broken.agent_id
    assert runtime.get_agent(broken.agent_id).run_count == 0
    assert runtime.get_agent(healthy.agent_id).repairs_count == 1


@pytest.mark.asyncio
async def test_freeze_during_tick_skips_remaining_agents(runtime):
    first = await runtime.create_agent("patrol")
    second = await runtime.create_agent("freshness")

    async def freeze_after_first(event: Event):
        await runtime.freeze_all_agents()

    runtime.events.subscribe("agent.ran", freeze_after_first)
    report = await runtime.agent_tick_job([])

    assert report.ran == [first.agent_id]
    assert report.skipped == [second.agent_id]
    assert runtime.get_agent(second.agent_id).run_count == 0


@pytest.mark.asyncio
async def test_concurrent_agents_do_not_lose_repairs(clock):
    runtime = LatticeRuntime(settings=LatticeSettings(max_concurrent_scans=3), clock=clock)
    a = await runtime.create_agent("integrity")
    b = await runtime.create_agent("integrity")
    raw = [{"id": "P", "crossRefs": ["Q", "R"]}]

    report = await runtime.agent_tick_job(raw)

    assert report.ran == [a.agent_id, b.agent_id]
    # both scans read the tick-start records, so both see Q and R
    assert runtime.get_agent(a.agent_id).findings_count == 2
    assert runtime.get_agent(b.agent_id).findings_count == 2
    metrics = runtime.get_agent_metrics()
    assert metrics.total_repairs == 2
    assert raw[0]["crossRefs"] == []
    assert runtime.repairs.locked_records == 0


@pytest.mark.asyncio
async def test_tick_completed_event(runtime):
    seen = []

    async def handler(event: Event):
        seen.append(event)

    runtime.events.subscribe("tick.completed", handler)
    agent = await runtime.create_agent("patrol")
    await runtime.agent_tick_job([])

    assert len(seen) == 1
    assert seen[0].data["ran"] == [agent.agent_id]


# ── HeartbeatDaemon ────────────────────────────────────────────

@pytest.mark.asyncio
async def test_heartbeat_run_once_with_sync_source(runtime):
    await runtime.create_agent("patrol")
    daemon = HeartbeatDaemon(runtime.scheduler, lambda: [{"id": "a", "authority": 0.1}])

    report = await daemon.run_once()

    assert report.ran_count == 1
    assert len(daemon.history) == 1
    assert runtime.get_agent_metrics().total_findings == 1


@pytest.mark.asyncio
async def test_heartbeat_run_once_with_async_source(runtime):
    await runtime.create_agent("patrol")

    async def source():
        return [{"id": "a", "parentId": "gone"}]

    daemon = HeartbeatDaemon(runtime.scheduler, source)
    report = await daemon.run_once()

    assert report.ran_count == 1
    assert runtime.get_agent_metrics().total_repairs == 1


@pytest.mark.asyncio
async def test_heartbeat_history_is_bounded(runtime):
    daemon = HeartbeatDaemon(runtime.scheduler, lambda: [], history_limit=2)
    for _ in range(5):
        await daemon.run_once()
    assert len(daemon.history) == 2


@pytest.mark.asyncio
async def test_heartbeat_start_stop(runtime):
    daemon = HeartbeatDaemon(runtime.scheduler, lambda: [], interval_seconds=3600)
    assert not daemon.is_running

    await daemon.start()
    assert daemon.is_running
    await daemon.start()  # idempotent
    await asyncio.sleep(0.01)

    await daemon.stop()
    assert not daemon.is_running
    assert len(daemon.history) == 1
