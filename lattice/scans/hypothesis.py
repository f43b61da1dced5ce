"""Hypothesis tester — weighs attached evidence against stated confidence."""

from __future__ import annotations

from lattice.findings import Finding
from lattice.kernel.agent import Agent
from lattice.records import Record
from lattice.scans.base import (
    ScanContext, clamp01, describe_age, first_number, make_finding, rounded_age,
)
from lattice.types import Severity

HYPOTHESIS = "hypothesis"


def is_hypothesis(record: Record) -> bool:
    return record.kind == HYPOTHESIS or HYPOTHESIS in record.tags


def scan_hypothesis_tester(
    records: list[Record], agent: Agent, ctx: ScanContext,
) -> list[Finding]:
    h = ctx.heuristics
    results: list[Finding] = []

    for record in records:
        if not is_hypothesis(record):
            continue
        with ctx.isolate(f"hypothesis {record.id}"):
            confidence = first_number(record.confidence, record.coherence, default=0.5)
            evidence = record.evidence_count
            age = record.age_days(ctx.now)

            if confidence > h.unsupported_confidence and evidence == 0:
                results.append(make_finding(
                    agent, record, "unsupported_hypothesis", Severity.MEDIUM,
                    f"Hypothesis has confidence {confidence:.2f} but no evidence attached",
                    {"confidence": confidence, "evidence_count": evidence},
                    now=ctx.now,
                ))

            if (
                age > h.stale_hypothesis_days
                and evidence == 0
                and confidence < h.stale_hypothesis_confidence
            ):
                days = rounded_age(age)
                results.append(make_finding(
                    agent, record, "stale_hypothesis", Severity.LOW,
                    f"Hypothesis is {describe_age(age)} with no evidence; candidate for rejection",
                    {"age": days, "confidence": confidence},
                    now=ctx.now,
                ))

            if evidence > 0:
                strength = min(1.0, evidence * h.evidence_strength_step)
                recommended = clamp01(h.recommended_base + strength * h.recommended_weight)
                if abs(confidence - recommended) > h.confidence_gap:
                    action = "promote" if recommended > confidence else "demote"
                    results.append(make_finding(
                        agent, record, f"hypothesis_{action}", Severity.LOW,
                        f"Evidence suggests confidence should be ~{recommended:.2f} "
                        f"(currently {confidence:.2f})",
                        {
                            "current_confidence": confidence,
                            "recommended_confidence": recommended,
                            "evidence_count": evidence,
                            "action": action,
                        },
                        now=ctx.now,
                    ))

    return results
