"""Scan plumbing shared by all six algorithms.

A scan maps ``(records, agent, ctx) -> findings``. It only reads records;
repairs happen afterwards, in the repair engine.
"""

from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterator

from lattice.config import Heuristics
from lattice.exceptions import MalformedRecordError
from lattice.findings import Finding
from lattice.kernel.agent import Agent
from lattice.records import Record
from lattice.types import Severity, WILDCARD_TERRITORY

_logger = logging.getLogger(__name__)

ScanFn = Callable[[list[Record], Agent, "ScanContext"], list[Finding]]


@dataclass
class ScanContext:
    """Per-run inputs and fault tallies for one scan."""

    now: datetime
    heuristics: Heuristics
    skipped: int = 0  # items with missing or unusable data
    faults: int = 0   # items that raised something unexpected

    @contextmanager
    def isolate(self, item: str) -> Iterator[None]:
        """Contain a failure to the one record or pair being examined."""
        try:
            yield
        except MalformedRecordError as e:
            self.skipped += 1
            _logger.debug("Skipped %s: %s", item, e)
        except Exception:
            self.faults += 1
            _logger.exception("Scan failed on %s", item)


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def rounded_age(age: float) -> int | None:
    """Whole days, or None for records with no usable timestamp."""
    return None if math.isinf(age) or math.isnan(age) else round(age)


def describe_age(age: float) -> str:
    if math.isnan(age):
        return "of unknown age"
    days = rounded_age(age)
    return "undated" if days is None else f"{days} days old"


def first_number(*values: float | None, default: float) -> float:
    for v in values:
        if v is not None:
            return v
    return default


def matches_territory(record: Record, territory: str) -> bool:
    if territory == WILDCARD_TERRITORY:
        return True
    return territory in record.tags or record.domain == territory or record.scope == territory


def in_territory(records: list[Record], territory: str) -> list[Record]:
    if territory == WILDCARD_TERRITORY:
        return list(records)
    return [r for r in records if matches_territory(r, territory)]


def make_finding(
    agent: Agent,
    record: Record,
    finding_type: str,
    severity: Severity,
    message: str,
    data: dict[str, Any] | None = None,
    auto_repair: bool = False,
    now: datetime | None = None,
) -> Finding:
    finding = Finding(
        agent_id=agent.agent_id,
        agent_type=agent.type,
        record_id=record.id,
        record_title=record.title,
        finding_type=finding_type,
        severity=severity,
        message=message,
        data=data or {},
        auto_repair=auto_repair,
    )
    if now is not None:
        finding.timestamp = now
    return finding
