"""Integrity — verifies lineage chains, cross-references and authority scores."""

from __future__ import annotations

from lattice.config import Heuristics
from lattice.findings import Finding
from lattice.kernel.agent import Agent
from lattice.records import Record
from lattice.scans.base import ScanContext, clamp01, make_finding
from lattice.types import RecordId, Severity


def expected_authority(
    record: Record, by_id: dict[RecordId, Record], age: float, h: Heuristics,
) -> float:
    """Authority a record should carry given its evidence, links, coherence and age."""
    score = h.authority_base
    score += min(h.evidence_cap, record.evidence_count * h.evidence_weight)

    valid_refs = sum(1 for ref in record.references if ref in by_id)
    score += min(h.reference_cap, valid_refs * h.reference_weight)

    if record.coherence is not None:
        score += (record.coherence - 0.5) * h.coherence_weight

    if age > h.aging_days:
        score -= h.aging_penalty
    if age > h.old_age_days:
        score -= h.old_age_penalty

    return clamp01(score)


def scan_integrity(records: list[Record], agent: Agent, ctx: ScanContext) -> list[Finding]:
    h = ctx.heuristics
    results: list[Finding] = []
    by_id: dict[RecordId, Record] = {}
    for record in records:
        by_id.setdefault(record.id, record)

    for record in records:
        with ctx.isolate(f"record {record.id}"):
            # Lineage chain, bounded and cycle-safe
            current = record
            seen = {record.id}
            depth = 0
            while depth < h.lineage_max_depth and current.parent_id:
                parent = by_id.get(current.parent_id)
                if parent is None:
                    results.append(make_finding(
                        agent, record, "lineage_chain_broken", Severity.MEDIUM,
                        f"Lineage chain breaks at depth {depth + 1}, missing {current.parent_id}",
                        {"broken_at": current.parent_id, "depth": depth + 1},
                        now=ctx.now,
                    ))
                    break
                if parent.id in seen:
                    break
                seen.add(parent.id)
                current = parent
                depth += 1

            for ref_id in record.references:
                if ref_id not in by_id:
                    results.append(make_finding(
                        agent, record, "broken_cross_reference", Severity.LOW,
                        f"Cross-reference to {ref_id} not found",
                        {"reference_id": ref_id},
                        auto_repair=True,
                        now=ctx.now,
                    ))

            if record.authority is not None:
                expected = expected_authority(record, by_id, record.age_days(ctx.now), h)
                drift = abs(record.authority - expected)
                if drift > h.authority_drift_threshold:
                    results.append(make_finding(
                        agent, record, "authority_drift", Severity.MEDIUM,
                        f"Authority {record.authority:.2f} deviates from expected "
                        f"{expected:.2f} (drift: {drift:.2f})",
                        {"current": record.authority, "expected": expected, "drift": drift},
                        now=ctx.now,
                    ))

    return results
