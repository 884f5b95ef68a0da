# =============================================================================
# tracker_core/offline/offline_store.py
# Offline-First Record Store (SQLite + background sync)
# =============================================================================
"""
OfflineRecordStore - writes land in the local database first, always.

Data flow::

    save_*() -> LocalDatabase.upsert (synced=0)  -> returns to caller
             -> SyncEngine.enqueue                -> worker pushes later

A save never waits for the network and never fails because the remote
store is unreachable. Rows that could not be pushed stay unsynced until
the next sweep.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import logging

from tracker_core.models import Record, RecordKind
from tracker_core.offline.local_database import LocalDatabase
from tracker_core.offline.record_store import RecordStore, SyncStatusReport
from tracker_core.offline.remote_gateway import RemoteGateway
from tracker_core.offline.sync_engine import SweepResult, SyncEngine

logger = logging.getLogger(__name__)


class OfflineRecordStore(RecordStore):
    """
    Record store for disconnection-capable devices.

    Usage:
        store = OfflineRecordStore(LocalDatabase(path), InMemoryGateway())
        await store.initialize()
        await store.save_bac_reading(reading)
        status = await store.get_sync_status()
    """

    mode = "offline"

    def __init__(
        self,
        local_db: LocalDatabase,
        gateway: RemoteGateway,
        push_workers: int = SyncEngine.DEFAULT_WORKERS,
        push_queue_size: int = SyncEngine.DEFAULT_QUEUE_SIZE,
    ):
        self._local_db = local_db
        self._gateway = gateway
        self._sync_engine = SyncEngine(
            local_db,
            gateway,
            workers=push_workers,
            queue_size=push_queue_size,
        )

    @property
    def local_db(self) -> LocalDatabase:
        return self._local_db

    @property
    def sync_engine(self) -> SyncEngine:
        return self._sync_engine

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def initialize(self) -> None:
        """Open the database and start push workers."""
        await self._local_db.initialize()
        await self._sync_engine.start()

    async def close(self) -> None:
        await self._sync_engine.stop(drain=True)
        await self._local_db.close()
        await self._gateway.close()
        logger.info("Offline record store closed")

    # =========================================================================
    # PRIMITIVES
    # =========================================================================

    async def _save(self, record: Record) -> None:
        # Raises StorageError; the push is best-effort
        await self.initialize()
        await self._local_db.upsert(record.KIND, record.to_row())
        self._sync_engine.enqueue(record.KIND, record.id)

    async def _select(
        self,
        kind: RecordKind,
        user_id: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        conditions = dict(filters or {})
        conditions["user_id"] = user_id
        return await self._local_db.select(
            kind,
            conditions,
            order_by=order_by,
            descending=descending,
            limit=limit,
        )

    async def delete_custom_symptom(self, symptom_id: str) -> bool:
        """
        Delete locally and schedule the remote delete.

        Entries that answered this symptom are kept.
        """
        await self.initialize()
        existed = await self._local_db.delete(RecordKind.CUSTOM_SYMPTOM, symptom_id)
        self._sync_engine.enqueue_deletion(RecordKind.CUSTOM_SYMPTOM, symptom_id)
        return existed

    # =========================================================================
    # SYNC
    # =========================================================================

    async def get_sync_status(self) -> SyncStatusReport:
        counts = await self._local_db.count_unsynced()
        deletions = await self._local_db.pending_deletions()
        return SyncStatusReport(counts=counts, pending_deletions=len(deletions))

    async def sweep(self) -> SweepResult:
        return await self._sync_engine.sweep()

    async def wait_for_pushes(self) -> None:
        """Wait until every queued background push has been attempted."""
        await self._sync_engine.wait_idle()
