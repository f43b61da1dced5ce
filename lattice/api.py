"""Public boundary — every lattice operation as a non-raising call.

Hosts that embed the lattice (schedulers, web handlers, other
subsystems) get a ``Result`` back from every operation. Expected failures
carry their stable error code (``agent_not_found``, ``agents_frozen``,
...). Anything unexpected is logged with its traceback and reported as
``internal_error`` so it stays distinguishable from ordinary failures.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, Mapping

from pydantic import BaseModel, ConfigDict

from lattice.exceptions import LatticeError
from lattice.kernel.agent import AgentConfig
from lattice.runtime import LatticeRuntime, RecordsInput
from lattice.types import AgentId, AgentType

_logger = logging.getLogger(__name__)


class Result(BaseModel):
    """Outcome of an API call. Payload fields ride along as extras."""

    model_config = ConfigDict(extra="allow")

    ok: bool = True
    error: str | None = None
    detail: str = ""

    @classmethod
    def success(cls, **payload: Any) -> Result:
        return cls(ok=True, **payload)

    @classmethod
    def fail(cls, error: str, detail: str = "") -> Result:
        return cls(ok=False, error=error, detail=detail)


def _boundary(fn: Callable[..., Awaitable[Result]]) -> Callable[..., Awaitable[Result]]:
    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> Result:
        try:
            return await fn(*args, **kwargs)
        except LatticeError as e:
            return Result.fail(e.code, str(e))
        except Exception as e:
            _logger.exception("Lattice API error in %s: %s", fn.__name__, e)
            return Result.fail("internal_error", str(e))
    return wrapper


class LatticeAPI:
    """Result-returning facade over a ``LatticeRuntime``."""

    def __init__(self, runtime: LatticeRuntime | None = None) -> None:
        self.runtime = runtime or LatticeRuntime()

    @_boundary
    async def create_agent(
        self,
        agent_type: AgentType | str,
        config: AgentConfig | Mapping[str, Any] | None = None,
    ) -> Result:
        agent = await self.runtime.create_agent(agent_type, config)
        return Result.success(agent=agent)

    @_boundary
    async def run_agent(self, agent_id: AgentId, records: RecordsInput) -> Result:
        report = await self.runtime.run_agent(agent_id, records)
        return Result.success(
            findings=report.findings,
            count=report.count,
            repaired=report.repaired,
            skipped=report.skipped,
            faults=report.faults,
        )

    @_boundary
    async def pause_agent(self, agent_id: AgentId) -> Result:
        agent = await self.runtime.pause_agent(agent_id)
        return Result.success(agent_id=agent_id, status=agent.status)

    @_boundary
    async def resume_agent(self, agent_id: AgentId) -> Result:
        agent = await self.runtime.resume_agent(agent_id)
        return Result.success(agent_id=agent_id, status=agent.status)

    @_boundary
    async def destroy_agent(self, agent_id: AgentId) -> Result:
        await self.runtime.destroy_agent(agent_id)
        return Result.success(agent_id=agent_id, destroyed=True)

    @_boundary
    async def get_agent(self, agent_id: AgentId) -> Result:
        return Result.success(agent=self.runtime.get_agent(agent_id))

    @_boundary
    async def list_agents(self) -> Result:
        agents = self.runtime.list_agents()
        return Result.success(agents=agents, count=len(agents))

    @_boundary
    async def agent_tick_job(self, records: RecordsInput) -> Result:
        report = await self.runtime.agent_tick_job(records)
        return Result.success(
            ran=report.ran,
            skipped=report.skipped,
            ran_count=report.ran_count,
            skipped_count=report.skipped_count,
            frozen=report.frozen,
        )

    @_boundary
    async def get_agent_findings(self, agent_id: AgentId, limit: int | None = None) -> Result:
        findings, total = self.runtime.get_agent_findings(agent_id, limit)
        return Result.success(findings=findings, total=total)

    @_boundary
    async def get_all_findings(
        self, agent_type: AgentType | str | None = None, limit: int | None = None,
    ) -> Result:
        findings, total = self.runtime.get_all_findings(agent_type, limit)
        return Result.success(findings=findings, total=total)

    @_boundary
    async def freeze_all_agents(self) -> Result:
        count = await self.runtime.freeze_all_agents()
        return Result.success(frozen=True, agent_count=count)

    @_boundary
    async def thaw_all_agents(self) -> Result:
        count = await self.runtime.thaw_all_agents()
        return Result.success(frozen=False, agent_count=count)

    @_boundary
    async def get_agent_metrics(self) -> Result:
        return Result.success(metrics=self.runtime.get_agent_metrics())
