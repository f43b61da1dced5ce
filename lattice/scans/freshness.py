"""Freshness — flags aging records in fast-moving domains.

Timeless knowledge (math, physics, ...) never decays. Temporal domains
(politics, economics, ...) go stale after 90 days.
"""

from __future__ import annotations

from collections.abc import Iterable

from lattice.findings import Finding
from lattice.kernel.agent import Agent
from lattice.records import Record
from lattice.scans.base import ScanContext, describe_age, make_finding, rounded_age
from lattice.types import Severity


def matched_domain(record: Record, domains: Iterable[str]) -> str | None:
    """First domain named by the record's tags or contained in its domain."""
    domain = (record.domain or "").lower()
    for candidate in domains:
        if candidate in record.tags or candidate in domain:
            return candidate
    return None


def scan_freshness(records: list[Record], agent: Agent, ctx: ScanContext) -> list[Finding]:
    h = ctx.heuristics
    results: list[Finding] = []

    for record in records:
        with ctx.isolate(f"record {record.id}"):
            if matched_domain(record, h.timeless_domains):
                continue
            temporal = matched_domain(record, h.temporal_domains)
            if temporal is None:
                continue

            age = record.age_days(ctx.now)
            if age > h.temporal_decay_days:
                results.append(make_finding(
                    agent, record, "temporal_decay", Severity.MEDIUM,
                    f"Record in temporal domain \"{temporal}\" is {describe_age(age)}; "
                    "may be outdated",
                    {"age": rounded_age(age), "domain": temporal},
                    now=ctx.now,
                ))

    return results
