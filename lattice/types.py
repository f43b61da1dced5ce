"""Core types shared across all lattice subsystems."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TypeAlias

# ── ID Types ──────────────────────────────────────────────────────────────────

AgentId: TypeAlias = str
FindingId: TypeAlias = str
RecordId: TypeAlias = str


def new_id(prefix: str = "") -> str:
    token = uuid.uuid4().hex[:12]
    return f"{prefix}_{token}" if prefix else token


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Agent Kinds ──────────────────────────────────────────────────────────────


class AgentType(str, Enum):
    PATROL = "patrol"
    INTEGRITY = "integrity"
    HYPOTHESIS_TESTER = "hypothesis_tester"
    DEBATE_SIMULATOR = "debate_simulator"
    FRESHNESS = "freshness"
    SYNTHESIS = "synthesis"


class AgentStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"


# ── Findings ─────────────────────────────────────────────────────────────────


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


WILDCARD_TERRITORY = "*"
