"""Global configuration — loaded from environment variables."""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from lattice.types import AgentType

_MINUTE_MS = 60 * 1000


class Heuristics(BaseModel):
    """Scoring weights and thresholds used by the scan algorithms.

    These are tunable heuristics, not derived constants. Override them
    per runtime or through ``LATTICE_HEURISTICS__<FIELD>``.
    """

    # patrol
    stale_age_days: float = 30
    low_authority: float = 0.5

    # integrity
    lineage_max_depth: int = 10
    authority_base: float = 0.5
    evidence_weight: float = 0.05
    evidence_cap: float = 0.2
    reference_weight: float = 0.03
    reference_cap: float = 0.15
    coherence_weight: float = 0.15
    aging_days: float = 60
    aging_penalty: float = 0.05
    old_age_days: float = 180
    old_age_penalty: float = 0.1
    authority_drift_threshold: float = 0.3

    # hypothesis_tester
    unsupported_confidence: float = 0.7
    stale_hypothesis_days: float = 14
    stale_hypothesis_confidence: float = 0.5
    evidence_strength_step: float = 0.2
    recommended_base: float = 0.3
    recommended_weight: float = 0.5
    confidence_gap: float = 0.25

    # debate_simulator
    debate_max_per_tag: int = 20
    tension_gap_weight: float = 0.4
    tension_sum_weight: float = 0.3
    score_confidence_weight: float = 0.3
    score_evidence_weight: float = 0.4
    score_authority_weight: float = 0.3
    synthesis_margin: float = 0.2
    tension_report: float = 0.5
    synthesis_tension_low: float = 0.3
    synthesis_tension_high: float = 0.8

    # freshness
    temporal_decay_days: float = 90
    timeless_domains: tuple[str, ...] = (
        "math", "physics", "mathematics", "logic", "geometry",
    )
    temporal_domains: tuple[str, ...] = (
        "politics", "economics", "technology", "current_events",
    )

    # synthesis
    max_domain_clusters: int = 10
    max_cluster_sample: int = 15
    min_similarity: float = 0.15
    max_analogies: int = 5
    bridge_min_cluster_size: int = 3


class LatticeSettings(BaseSettings):
    log_level: str = "INFO"

    # Default scan intervals per agent type
    patrol_interval_ms: int = 5 * _MINUTE_MS
    integrity_interval_ms: int = 10 * _MINUTE_MS
    hypothesis_tester_interval_ms: int = 15 * _MINUTE_MS
    debate_simulator_interval_ms: int = 30 * _MINUTE_MS
    freshness_interval_ms: int = 60 * _MINUTE_MS
    synthesis_interval_ms: int = 30 * _MINUTE_MS

    # Findings history capacity
    max_agent_findings: int = 100
    max_global_findings: int = 1000
    global_findings_trim_to: int = 500
    default_findings_limit: int = 50
    max_query_findings: int = 500

    # Scheduling
    max_concurrent_scans: int = 1  # 1 = run due agents one after another
    heartbeat_interval_seconds: float = 60
    heartbeat_history_limit: int = 50

    heuristics: Heuristics = Field(default_factory=Heuristics)

    model_config = {"env_prefix": "LATTICE_", "env_nested_delimiter": "__"}

    def default_interval_ms(self, agent_type: AgentType) -> int:
        return getattr(self, f"{agent_type.value}_interval_ms")


settings = LatticeSettings()
