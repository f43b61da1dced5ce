"""Records — the knowledge units (DTUs) that make up the lattice.

The record store hands us loosely-shaped mappings. Field names vary by
producer (``parentId`` vs ``lineage.parentId`` vs ``derivedFrom``,
``references`` vs ``crossRefs``, ``createdAt`` vs ``created_at``), so every
raw record is normalized exactly once into a canonical ``Record``. Scans
only ever read the canonical form.

The canonical record keeps a handle on the caller's mapping and remembers
which alias held each writable field, so repairs land back in the
caller's data in place.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr

from lattice.exceptions import MalformedRecordError
from lattice.types import RecordId

_logger = logging.getLogger(__name__)

_DAY_SECONDS = 60 * 60 * 24

# Raw aliases, in precedence order
PARENT_FIELDS = ("parentId", "lineage.parentId", "derivedFrom")
REFERENCE_FIELDS = ("references", "crossRefs")
CREATED_FIELDS = ("createdAt", "created_at", "timestamp")


class Record(BaseModel):
    """Canonical view of one knowledge unit."""

    id: RecordId
    title: str | None = None
    kind: str | None = None
    tags: list[str] = Field(default_factory=list)
    domain: str | None = None
    scope: str | None = None
    created_at: datetime | None = None
    timestamp_invalid: bool = False
    authority: float | None = None
    confidence: float | None = None
    coherence: float | None = None
    evidence: list[Any] = Field(default_factory=list)
    references: list[RecordId] = Field(default_factory=list)
    parent_id: RecordId | None = None
    contradicts: list[RecordId] = Field(default_factory=list)

    _source: dict[str, Any] | None = PrivateAttr(default=None)
    _references_field: str | None = PrivateAttr(default=None)

    @property
    def source(self) -> dict[str, Any] | None:
        """The raw mapping this record was normalized from, if any."""
        return self._source

    @property
    def evidence_count(self) -> int:
        return len(self.evidence)

    def age_days(self, now: datetime) -> float:
        """Age relative to ``now``.

        Records with no timestamp are infinitely old. Records whose timestamp
        could not be parsed have no age at all (NaN), so every age threshold
        comparison on them is false.
        """
        if self.timestamp_invalid:
            return math.nan
        if self.created_at is None:
            return math.inf
        return (now - self.created_at).total_seconds() / _DAY_SECONDS

    # ── write-back (used by the repair engine only) ──────────────

    def clear_parent(self) -> bool:
        """Clear every parent alias that is set. Returns False if none was."""
        cleared = self.parent_id is not None
        self.parent_id = None
        src = self._source
        if src is not None:
            if src.get("parentId"):
                src["parentId"] = None
                cleared = True
            lineage = src.get("lineage")
            if isinstance(lineage, dict) and lineage.get("parentId"):
                lineage["parentId"] = None
                cleared = True
            if src.get("derivedFrom"):
                src["derivedFrom"] = None
                cleared = True
        return cleared

    def remove_reference(self, ref_id: RecordId) -> bool:
        """Drop one occurrence of ``ref_id`` from the reference list."""
        if ref_id not in self.references:
            return False
        self.references.remove(ref_id)
        if self._source is not None and self._references_field:
            raw_refs = self._source.get(self._references_field)
            if isinstance(raw_refs, list):
                for i, item in enumerate(raw_refs):
                    if _as_id(item) == ref_id:
                        del raw_refs[i]
                        break
        return True


# ── Normalization ────────────────────────────────────────────────────────────


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return float(value)


def _as_id(value: Any) -> RecordId | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, int):
        return str(value)
    return None


def _id_list(value: Any) -> list[RecordId]:
    if not isinstance(value, list):
        return []
    return [rid for rid in (_as_id(v) for v in value) if rid is not None]


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse ISO-8601 strings, datetimes, or epoch milliseconds to aware UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise MalformedRecordError(f"Unparseable timestamp {value!r}") from e
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise MalformedRecordError(f"Timestamp out of range: {value!r}") from e
    else:
        raise MalformedRecordError(f"Unsupported timestamp type {type(value).__name__}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def normalize_record(raw: Mapping[str, Any]) -> Record:
    """Build the canonical ``Record`` for one raw mapping."""
    if not isinstance(raw, Mapping):
        raise MalformedRecordError(f"Record must be a mapping, got {type(raw).__name__}")

    record_id = _as_id(raw.get("id"))
    if record_id is None:
        raise MalformedRecordError("Record has no usable id")

    tags = raw.get("tags")
    tags = [t for t in tags if isinstance(t, str)] if isinstance(tags, list) else []

    domain = _text(raw.get("domain"))
    if domain is None:
        machine = raw.get("machine")
        if isinstance(machine, Mapping):
            domain = _text(machine.get("domain"))

    created_at = None
    timestamp_invalid = False
    for name in CREATED_FIELDS:
        if raw.get(name):
            try:
                created_at = parse_timestamp(raw[name])
            except MalformedRecordError as e:
                timestamp_invalid = True
                _logger.warning("Record %s keeps no age: %s", record_id, e)
            break

    parent_id = _as_id(raw.get("parentId"))
    if parent_id is None:
        lineage = raw.get("lineage")
        if isinstance(lineage, Mapping):
            parent_id = _as_id(lineage.get("parentId"))
    if parent_id is None:
        parent_id = _as_id(raw.get("derivedFrom"))

    references_field = None
    for name in REFERENCE_FIELDS:
        if isinstance(raw.get(name), list):
            references_field = name
            break

    evidence = raw.get("evidence")

    record = Record(
        id=record_id,
        title=_text(raw.get("title")),
        kind=_text(raw.get("type")) or _text(raw.get("dtuType")),
        tags=tags,
        domain=domain,
        scope=_text(raw.get("scope")),
        created_at=created_at,
        timestamp_invalid=timestamp_invalid,
        authority=_number(raw.get("authority")),
        confidence=_number(raw.get("confidence")),
        coherence=_number(raw.get("coherence")),
        evidence=list(evidence) if isinstance(evidence, list) else [],
        references=_id_list(raw.get(references_field)) if references_field else [],
        parent_id=parent_id,
        contradicts=_id_list(raw.get("contradicts")),
    )
    if isinstance(raw, dict):
        record._source = raw
    record._references_field = references_field
    return record


class Snapshot:
    """An ingested, id-indexed view over one batch of records.

    Raw records that are not mappings or have no usable id are dropped
    with a warning; they never abort ingestion of the rest of the batch.
    Records with an unparseable timestamp are kept (their links stay valid)
    and counted in ``invalid_timestamps``. When two records share an id,
    lookups return the first one.
    """

    def __init__(self, records: list[Record], malformed: int = 0) -> None:
        self.records = records
        self.malformed = malformed
        self.invalid_timestamps = sum(1 for r in records if r.timestamp_invalid)
        self._by_id: dict[RecordId, Record] = {}
        for record in records:
            self._by_id.setdefault(record.id, record)

    @classmethod
    def ingest(cls, raw_records: Iterable[Mapping[str, Any] | Record] | Snapshot) -> Snapshot:
        if isinstance(raw_records, Snapshot):
            return raw_records
        records: list[Record] = []
        malformed = 0
        for raw in raw_records or []:
            if isinstance(raw, Record):
                records.append(raw)
                continue
            try:
                records.append(normalize_record(raw))
            except MalformedRecordError as e:
                malformed += 1
                _logger.warning("Skipping malformed record: %s", e)
        return cls(records, malformed)

    def detached(self) -> list[Record]:
        """Deep copies of the records, for scans that run beside repairs."""
        return [r.model_copy(deep=True) for r in self.records]

    def get(self, record_id: RecordId) -> Record | None:
        return self._by_id.get(record_id)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._by_id

    def __iter__(self):
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)
