"""Auto-Repair Engine — bounded, automatic fixes for low-severity findings.

Only two findings are repairable:

    broken_lineage          → clear the dangling parent reference
    broken_cross_reference  → drop the missing id from the reference list

Repairs write into the shared records (and through them, into the
caller's raw mappings). Writes to the same record are serialized with a
per-record lock so concurrently running agents cannot lose each other's
updates. A repair that cannot be applied leaves ``repaired=False`` and
never raises.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from lattice.exceptions import RepairError
from lattice.findings import Finding
from lattice.records import Record, Snapshot
from lattice.types import RecordId

_logger = logging.getLogger(__name__)

RepairFn = Callable[[Finding, Record], str]


def clear_broken_parent(finding: Finding, record: Record) -> str:
    if not record.clear_parent():
        raise RepairError(f"Record {record.id} has no parent reference to clear")
    return "cleared_broken_parent_reference"


def remove_broken_reference(finding: Finding, record: Record) -> str:
    ref_id = finding.data.get("reference_id")
    if not ref_id:
        raise RepairError("Finding does not name the broken reference")
    if not record.remove_reference(ref_id):
        raise RepairError(f"Record {record.id} no longer references {ref_id}")
    return "removed_broken_cross_reference"


REPAIRS: dict[str, RepairFn] = {
    "broken_lineage": clear_broken_parent,
    "broken_cross_reference": remove_broken_reference,
}


class RepairEngine:
    """Applies the repair table, one writer per record at a time."""

    def __init__(self) -> None:
        self._locks: dict[RecordId, asyncio.Lock] = {}
        self._holders: dict[RecordId, int] = {}

    async def apply(self, finding: Finding, snapshot: Snapshot) -> bool:
        """Try to repair ``finding`` against ``snapshot``. True on success."""
        if not finding.repairable:
            return False
        repair = REPAIRS.get(finding.finding_type)
        if repair is None or finding.record_id is None:
            return False

        record_id = finding.record_id
        lock = self._acquire_slot(record_id)
        try:
            async with lock:
                record = snapshot.get(record_id)
                if record is None:
                    _logger.debug("Repair skipped, record %s not in snapshot", record_id)
                    return False
                try:
                    action = repair(finding, record)
                except RepairError as e:
                    _logger.debug("Repair of %s skipped: %s", finding.finding_id, e)
                    return False
        finally:
            self._release_slot(record_id)

        finding.repaired = True
        finding.repair_action = action
        return True

    @property
    def locked_records(self) -> int:
        return len(self._locks)

    def _acquire_slot(self, record_id: RecordId) -> asyncio.Lock:
        lock = self._locks.get(record_id)
        if lock is None:
            lock = self._locks[record_id] = asyncio.Lock()
        self._holders[record_id] = self._holders.get(record_id, 0) + 1
        return lock

    def _release_slot(self, record_id: RecordId) -> None:
        remaining = self._holders[record_id] - 1
        if remaining:
            self._holders[record_id] = remaining
        else:
            del self._holders[record_id]
            del self._locks[record_id]
