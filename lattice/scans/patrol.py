"""Patrol — sweeps for decay, broken lineage and orphaned contradictions.

- older than 30 days with authority < 0.5 → ``stale_low_authority``
- parent id not in the lattice → ``broken_lineage`` (auto-repair)
- contradiction target not in the lattice → ``orphaned_contradiction``
"""

from __future__ import annotations

from lattice.findings import Finding
from lattice.kernel.agent import Agent
from lattice.records import Record
from lattice.scans.base import (
    ScanContext, describe_age, first_number, make_finding, rounded_age,
)
from lattice.types import Severity


def scan_patrol(records: list[Record], agent: Agent, ctx: ScanContext) -> list[Finding]:
    h = ctx.heuristics
    results: list[Finding] = []
    known = {r.id for r in records}

    for record in records:
        with ctx.isolate(f"record {record.id}"):
            age = record.age_days(ctx.now)
            authority = first_number(record.authority, record.coherence, default=0.5)

            if age > h.stale_age_days and authority < h.low_authority:
                results.append(make_finding(
                    agent, record, "stale_low_authority", Severity.MEDIUM,
                    f"Record is {describe_age(age)} with authority {authority:.2f}",
                    {"age": rounded_age(age), "authority": authority},
                    now=ctx.now,
                ))

            if record.parent_id and record.parent_id not in known:
                results.append(make_finding(
                    agent, record, "broken_lineage", Severity.LOW,
                    f"Parent record {record.parent_id} not found in lattice",
                    {"parent_id": record.parent_id},
                    auto_repair=True,
                    now=ctx.now,
                ))

            missing = [cid for cid in record.contradicts if cid not in known]
            if missing:
                results.append(make_finding(
                    agent, record, "orphaned_contradiction", Severity.MEDIUM,
                    f"Record references {len(missing)} missing contradiction target(s)",
                    {"missing_targets": missing},
                    now=ctx.now,
                ))

    return results
