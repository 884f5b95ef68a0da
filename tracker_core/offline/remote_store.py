# =============================================================================
# tracker_core/offline/remote_store.py
# Pass-Through Record Store (remote only)
# =============================================================================
"""
RemoteRecordStore - for always-connected environments with no local copy.

Every write goes straight to the remote store and either lands there or
raises StorageError. Reads that fail are logged and return no rows.
Nothing is ever pending, so sync status is always zero.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import logging

from tracker_core.errors import StorageError, SyncError, error_boundary
from tracker_core.models import Record, RecordKind
from tracker_core.offline.record_store import RecordStore, SyncStatusReport
from tracker_core.offline.remote_gateway import RemoteGateway
from tracker_core.offline.sync_engine import SweepResult

logger = logging.getLogger(__name__)


class RemoteRecordStore(RecordStore):
    """Record store that talks to the remote gateway directly."""

    mode = "remote"

    def __init__(self, gateway: RemoteGateway):
        self._gateway = gateway

    async def initialize(self) -> None:
        logger.info(f"Remote record store using '{self._gateway.name}' gateway")

    async def close(self) -> None:
        await self._gateway.close()

    async def _save(self, record: Record) -> None:
        try:
            await self._gateway.upsert(record.KIND, record.to_remote())
        except SyncError as e:
            raise StorageError(
                f"Could not save {record.KIND.table}/{record.id}: {e.message}",
                table=record.KIND.table,
                operation="write",
            ) from e

    @error_boundary(default_return=[])
    async def _select(
        self,
        kind: RecordKind,
        user_id: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        rows = await self._gateway.select_by_user(
            kind,
            user_id,
            filters=filters,
            order_by=order_by,
            descending=descending,
            limit=limit,
        )
        # Anything read back from the remote store is synced by definition
        return [dict(row, synced=True) for row in rows]

    async def delete_custom_symptom(self, symptom_id: str) -> bool:
        try:
            await self._gateway.delete(RecordKind.CUSTOM_SYMPTOM, symptom_id)
        except SyncError as e:
            raise StorageError(
                f"Could not delete custom symptom {symptom_id}: {e.message}",
                table=RecordKind.CUSTOM_SYMPTOM.table,
                operation="delete",
            ) from e
        return True

    async def get_sync_status(self) -> SyncStatusReport:
        return SyncStatusReport()

    async def sweep(self) -> SweepResult:
        return SweepResult()
