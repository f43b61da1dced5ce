"""Synthesis — looks for analogies between domains and proposes bridges.

Records are clustered by domain. For each pair of clusters, records that
share tags (other than the domain names themselves) are candidate
analogies, scored by Jaccard similarity of their tag sets.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from lattice.config import Heuristics
from lattice.findings import Finding
from lattice.kernel.agent import Agent
from lattice.records import Record
from lattice.scans.base import ScanContext, make_finding
from lattice.types import Severity

GENERAL_DOMAIN = "general"


@dataclass
class Analogy:
    a: Record
    b: Record
    similarity: float
    shared_tags: list[str] = field(default_factory=list)


def cluster_key(record: Record) -> str:
    return record.domain or (record.tags[0] if record.tags else GENERAL_DOMAIN)


def tag_similarity(
    tags_a: list[str], tags_b: list[str], exclude: tuple[str, ...] = (),
) -> tuple[float, list[str]]:
    """Shared tags over the tag union, unrounded. Symmetric, always within [0, 1]."""
    set_a, set_b = set(tags_a), set(tags_b)
    shared = [t for t in dict.fromkeys(tags_a) if t in set_b and t not in exclude]
    if not shared:
        return 0.0, []
    union = set_a | set_b
    return len(shared) / max(1, len(union)), shared


def find_analogies(
    records_a: list[Record],
    records_b: list[Record],
    domain_a: str,
    domain_b: str,
    ctx: ScanContext,
) -> list[Analogy]:
    h: Heuristics = ctx.heuristics
    analogies: list[Analogy] = []

    for a in records_a[:h.max_cluster_sample]:
        for b in records_b[:h.max_cluster_sample]:
            with ctx.isolate(f"pair {a.id}:{b.id}"):
                similarity, shared = tag_similarity(a.tags, b.tags, (domain_a, domain_b))
                if shared and similarity > h.min_similarity:
                    analogies.append(Analogy(a, b, round(similarity, 3), shared))

    analogies.sort(key=lambda an: an.similarity, reverse=True)
    return analogies[:h.max_analogies]


def scan_synthesis(records: list[Record], agent: Agent, ctx: ScanContext) -> list[Finding]:
    h = ctx.heuristics
    results: list[Finding] = []

    clusters: dict[str, list[Record]] = {}
    for record in records:
        clusters.setdefault(cluster_key(record), []).append(record)

    domains = list(clusters)[:h.max_domain_clusters]
    if len(domains) < 2:
        return results

    for i, domain_a in enumerate(domains):
        for domain_b in domains[i + 1:]:
            members_a = clusters[domain_a]
            members_b = clusters[domain_b]
            analogies = find_analogies(members_a, members_b, domain_a, domain_b, ctx)

            for analogy in analogies:
                results.append(make_finding(
                    agent, analogy.a, "cross_domain_analogy", Severity.LOW,
                    f"Potential analogy between \"{domain_a}\" record {analogy.a.id} "
                    f"and \"{domain_b}\" record {analogy.b.id}",
                    {
                        "domain_a": domain_a,
                        "domain_b": domain_b,
                        "record_a": analogy.a.id,
                        "record_b": analogy.b.id,
                        "similarity": analogy.similarity,
                        "shared_tags": analogy.shared_tags,
                    },
                    now=ctx.now,
                ))

            if (
                analogies
                and len(members_a) > h.bridge_min_cluster_size
                and len(members_b) > h.bridge_min_cluster_size
            ):
                results.append(make_finding(
                    agent, members_a[0], "bridge_dtu_proposal", Severity.LOW,
                    f"Domains \"{domain_a}\" ({len(members_a)} records) and "
                    f"\"{domain_b}\" ({len(members_b)} records) may benefit from a bridge record",
                    {
                        "domain_a": domain_a,
                        "domain_b": domain_b,
                        "analogy_count": len(analogies),
                        "size_a": len(members_a),
                        "size_b": len(members_b),
                    },
                    now=ctx.now,
                ))

    return results
