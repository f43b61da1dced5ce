"""Debate simulator — pits records that share a tag against each other.

Tension is high when both sides are confident, and higher still when
they disagree. When neither side clearly wins, a synthesis is proposed.
"""

from __future__ import annotations

from dataclasses import dataclass

from lattice.config import Heuristics
from lattice.findings import Finding
from lattice.kernel.agent import Agent
from lattice.records import Record
from lattice.scans.base import ScanContext, clamp01, first_number, make_finding
from lattice.types import RecordId, Severity


@dataclass
class DebateOutcome:
    tension: float
    score_a: float
    score_b: float
    margin: float
    winner_id: RecordId
    synthesis_candidate: bool

    @property
    def synthesis_reason(self) -> str | None:
        if not self.synthesis_candidate:
            return None
        return (
            f"Both records have comparable strength (margin {self.margin:.2f}); "
            "a synthesis may yield a stronger combined record"
        )


def _strength(confidence: float, evidence: int, authority: float, h: Heuristics) -> float:
    return (
        confidence * h.score_confidence_weight
        + min(1.0, evidence * h.evidence_strength_step) * h.score_evidence_weight
        + authority * h.score_authority_weight
    )


def simulate_debate(a: Record, b: Record, h: Heuristics) -> DebateOutcome:
    conf_a = first_number(a.confidence, a.coherence, default=0.5)
    conf_b = first_number(b.confidence, b.coherence, default=0.5)
    auth_a = first_number(a.authority, default=0.5)
    auth_b = first_number(b.authority, default=0.5)

    tension = clamp01(
        abs(conf_a - conf_b) * h.tension_gap_weight
        + (conf_a + conf_b) * h.tension_sum_weight
    )
    score_a = _strength(conf_a, a.evidence_count, auth_a, h)
    score_b = _strength(conf_b, b.evidence_count, auth_b, h)
    margin = abs(score_a - score_b)

    return DebateOutcome(
        tension=tension,
        score_a=score_a,
        score_b=score_b,
        margin=margin,
        winner_id=a.id if score_a >= score_b else b.id,
        synthesis_candidate=margin < h.synthesis_margin and tension > h.synthesis_tension_low,
    )


def pair_key(a: Record, b: Record) -> tuple[RecordId, RecordId]:
    return (a.id, b.id) if a.id <= b.id else (b.id, a.id)


def scan_debate_simulator(
    records: list[Record], agent: Agent, ctx: ScanContext,
) -> list[Finding]:
    h = ctx.heuristics
    results: list[Finding] = []

    by_tag: dict[str, list[Record]] = {}
    for record in records:
        for tag in record.tags:
            by_tag.setdefault(tag, []).append(record)

    debated: set[tuple[RecordId, RecordId]] = set()

    for tag, members in by_tag.items():
        if len(members) < 2:
            continue
        limited = members[:h.debate_max_per_tag]

        for i, a in enumerate(limited):
            for b in limited[i + 1:]:
                key = pair_key(a, b)
                if key in debated:
                    continue
                debated.add(key)

                with ctx.isolate(f"pair {key[0]}:{key[1]}"):
                    outcome = simulate_debate(a, b, h)

                    if outcome.tension > h.tension_report:
                        results.append(make_finding(
                            agent, a, "debate_tension", Severity.LOW,
                            f"Tension {outcome.tension:.2f} between records "
                            f"{a.id} and {b.id} on \"{tag}\"",
                            {
                                "opponent_id": b.id,
                                "tag": tag,
                                "tension": outcome.tension,
                                "winner_id": outcome.winner_id,
                                "synthesis": outcome.synthesis_reason,
                            },
                            now=ctx.now,
                        ))

                    if (
                        h.synthesis_tension_low < outcome.tension < h.synthesis_tension_high
                        and outcome.synthesis_candidate
                    ):
                        results.append(make_finding(
                            agent, a, "synthesis_proposal", Severity.LOW,
                            f"Records {a.id} and {b.id} may benefit from synthesis on \"{tag}\"",
                            {
                                "record_a": a.id,
                                "record_b": b.id,
                                "tag": tag,
                                "synthesis_reason": outcome.synthesis_reason,
                            },
                            now=ctx.now,
                        ))

    return results
