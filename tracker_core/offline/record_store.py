# =============================================================================
# tracker_core/offline/record_store.py
# Unified Record Store Interface
# =============================================================================
"""
RecordStore - the single API the rest of the application writes against.

Two implementations exist (see platform.create_record_store):
- OfflineRecordStore: local SQLite + background sync to the remote store
- RemoteRecordStore: pass-through straight to the remote store

Callers never branch on which one is active.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from tracker_core.models import (
    BACReading,
    CarbEntry,
    CustomSymptom,
    Record,
    RecordKind,
    SessionEntry,
    SymptomEntry,
    record_type_for,
)
from tracker_core.offline.sync_engine import SweepResult

DEFAULT_LIST_LIMIT = 100


@dataclass
class SyncStatusReport:
    """Unsynced row count per kind; pending deletions are reported apart."""
    counts: Dict[RecordKind, int] = field(default_factory=lambda: {kind: 0 for kind in RecordKind})
    pending_deletions: int = 0

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def to_dict(self) -> Dict[str, Any]:
        status = {kind.table: count for kind, count in self.counts.items()}
        status["total"] = self.total
        status["pending_deletions"] = self.pending_deletions
        return status


class RecordStore(ABC):
    """
    Unified persistence interface for tracker records.

    Subclasses implement the generic primitives (``_save``, ``_select``);
    the typed methods below are shared.
    """

    mode = "base"

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the store; idempotent."""

    @abstractmethod
    async def close(self) -> None:
        """Release workers, connections and clients."""

    # =========================================================================
    # PRIMITIVES
    # =========================================================================

    @abstractmethod
    async def _save(self, record: Record) -> None:
        """Insert or replace a record by id."""

    @abstractmethod
    async def _select(
        self,
        kind: RecordKind,
        user_id: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Rows of a kind for a user, already ordered and limited."""

    @abstractmethod
    async def delete_custom_symptom(self, symptom_id: str) -> bool:
        """Delete a custom symptom; returns True if it existed."""

    @abstractmethod
    async def get_sync_status(self) -> SyncStatusReport:
        """Unsynced counts; never mutates state."""

    @abstractmethod
    async def sweep(self) -> SweepResult:
        """Push everything not yet synced."""

    async def sync_now(self) -> SweepResult:
        return await self.sweep()

    # =========================================================================
    # WRITES
    # =========================================================================

    async def save_bac_reading(self, reading: BACReading) -> None:
        await self._save(reading)

    async def save_symptom_entry(self, entry: SymptomEntry) -> None:
        await self._save(entry)

    async def save_carb_entry(self, entry: CarbEntry) -> None:
        await self._save(entry)

    async def save_session_entry(self, entry: SessionEntry) -> None:
        await self._save(entry)

    async def save_custom_symptom(self, symptom: CustomSymptom) -> None:
        await self._save(symptom)

    # =========================================================================
    # READS
    # =========================================================================

    async def _list(
        self,
        kind: RecordKind,
        user_id: str,
        limit: Optional[int],
        filters: Optional[Dict[str, Any]] = None,
        descending: bool = True,
    ) -> List[Record]:
        record_type = record_type_for(kind)
        rows = await self._select(
            kind,
            user_id,
            filters=filters,
            order_by=record_type.ORDER_BY,
            descending=descending,
            limit=limit,
        )
        return [record_type.from_row(row) for row in rows]

    async def get_bac_readings(self, user_id: str, limit: Optional[int] = DEFAULT_LIST_LIMIT) -> List[BACReading]:
        """Most recent first."""
        return await self._list(RecordKind.BAC_READING, user_id, limit)

    async def get_symptom_entries(self, user_id: str, limit: Optional[int] = DEFAULT_LIST_LIMIT) -> List[SymptomEntry]:
        return await self._list(RecordKind.SYMPTOM_ENTRY, user_id, limit)

    async def get_carb_entries(self, user_id: str, limit: Optional[int] = DEFAULT_LIST_LIMIT) -> List[CarbEntry]:
        return await self._list(RecordKind.CARB_ENTRY, user_id, limit)

    async def get_session_entries(self, user_id: str, limit: Optional[int] = DEFAULT_LIST_LIMIT) -> List[SessionEntry]:
        return await self._list(RecordKind.SESSION_ENTRY, user_id, limit)

    async def get_custom_symptom_list(
        self,
        user_id: str,
        limit: Optional[int] = DEFAULT_LIST_LIMIT,
    ) -> List[CustomSymptom]:
        """All custom symptoms, inactive included, newest first."""
        return await self._list(RecordKind.CUSTOM_SYMPTOM, user_id, limit)

    async def get_active_custom_symptoms(self, user_id: str) -> List[CustomSymptom]:
        """Active symptoms in creation order (assessment question order)."""
        return await self._list(
            RecordKind.CUSTOM_SYMPTOM,
            user_id,
            limit=None,
            filters={"is_active": True},
            descending=False,
        )

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    async def __aenter__(self) -> RecordStore:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
