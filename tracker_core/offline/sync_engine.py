# =============================================================================
# tracker_core/offline/sync_engine.py
# Push-Based Synchronization Engine
# =============================================================================
"""
SyncEngine - Moves unsynced local rows to the remote store.

Features:
- Write-through: every save enqueues a one-record push
- Bounded pool of worker tasks, each draining its own push queue
- Sweep: full scan of unsynced rows (startup and "sync now")
- Pending custom-symptom deletions retried by every sweep
- Sync status tracking and state-change callbacks

Every queued operation for one record goes to the same worker, so a
record's upsert and delete are applied remotely in the order they were
queued. Pushes are upserts keyed by id, so a write-triggered push racing a
sweep for the same record is harmless. A remote delete only clears its
pending-deletion marker when no upsert of that record is in flight.
Nothing here ever raises past push_one() or sweep(); failures are logged
and the row stays unsynced.
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from tracker_core.errors import StorageError, SyncError
from tracker_core.logging import LogContext
from tracker_core.models import RecordKind, decode_row
from tracker_core.offline.local_database import LocalDatabase
from tracker_core.offline.remote_gateway import RemoteGateway

logger = logging.getLogger(__name__)

PUSH_UPSERT = "upsert"
PUSH_DELETE = "delete"

# Outcomes of a single push
OUTCOME_SYNCED = "synced"
OUTCOME_MISSING = "missing"
OUTCOME_FAILED = "failed"


@dataclass
class SyncState:
    """Current sync state."""
    is_syncing: bool = False
    last_sweep: Optional[datetime] = None
    last_sweep_success: Optional[datetime] = None
    total_synced: int = 0
    failed_count: int = 0
    dropped_pushes: int = 0


@dataclass
class SweepResult:
    """Outcome of one sweep."""
    pushed: int = 0
    failed: int = 0
    deleted: int = 0
    skipped: int = 0  # rows deleted locally before their push

    @property
    def success(self) -> bool:
        return self.failed == 0


class SyncEngine:
    """
    Synchronization engine between the local database and the remote gateway.

    Usage:
        engine = SyncEngine(local_db, gateway, workers=2)
        await engine.start()                              # start push workers
        engine.enqueue(RecordKind.BAC_READING, reading.id)
        result = await engine.sweep()                     # "sync now"
        await engine.stop()
    """

    # Configuration
    DEFAULT_WORKERS = 2
    DEFAULT_QUEUE_SIZE = 1000

    def __init__(
        self,
        local_db: LocalDatabase,
        gateway: RemoteGateway,
        workers: int = DEFAULT_WORKERS,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        self._local_db = local_db
        self._gateway = gateway
        self._worker_count = max(1, workers)
        self._queue_size = max(1, queue_size)
        self._queues: List[asyncio.Queue] = []
        self._workers: List[asyncio.Task] = []
        self._in_flight: Dict[Tuple[RecordKind, str], int] = {}
        self._sweep_lock = asyncio.Lock()
        self._state = SyncState()
        self._callbacks: List[Callable[[SyncState], None]] = []

    @property
    def state(self) -> SyncState:
        """Get current sync state."""
        return self._state

    @property
    def is_running(self) -> bool:
        return bool(self._workers)

    @property
    def queued_pushes(self) -> int:
        return sum(queue.qsize() for queue in self._queues)

    # =========================================================================
    # WORKER LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Start the push worker tasks."""
        if self.is_running:
            return

        # The total bound is split evenly across the worker queues
        per_queue = max(1, self._queue_size // self._worker_count)
        self._queues = [asyncio.Queue(maxsize=per_queue) for _ in range(self._worker_count)]
        self._workers = [
            asyncio.create_task(self._worker(queue), name=f"sync-push-{n}")
            for n, queue in enumerate(self._queues)
        ]
        logger.info(f"Sync engine started with {self._worker_count} push workers")

    async def stop(self, drain: bool = True) -> None:
        """
        Stop the push workers.

        Args:
            drain: Wait for queued pushes to finish first
        """
        if not self.is_running:
            return

        if drain:
            await self.wait_idle()

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queues = []
        logger.info("Sync engine stopped")

    async def wait_idle(self) -> None:
        """Wait until every queued push has been attempted."""
        for queue in list(self._queues):
            await queue.join()

    async def _worker(self, queue: asyncio.Queue) -> None:
        while True:
            operation, kind, record_id = await queue.get()
            try:
                if operation == PUSH_DELETE:
                    await self.push_deletion(kind, record_id)
                else:
                    await self.push_one(kind, record_id)
            finally:
                queue.task_done()

    def _queue_for(self, kind: RecordKind, record_id: str) -> asyncio.Queue:
        return self._queues[hash((kind.table, record_id)) % len(self._queues)]

    def _enqueue(self, item: Tuple[str, RecordKind, str]) -> bool:
        _, kind, record_id = item
        if not self._queues:
            logger.warning(f"Push workers not running; {kind.table}/{record_id} left for next sweep")
            return False
        try:
            self._queue_for(kind, record_id).put_nowait(item)
        except asyncio.QueueFull:
            self._state.dropped_pushes += 1
            logger.warning(f"Push queue full; {kind.table}/{record_id} left for next sweep")
            return False
        return True

    def enqueue(self, kind: RecordKind, record_id: str) -> bool:
        """
        Schedule a background push of one record. Never blocks.

        Returns:
            True if queued, False if dropped (the next sweep retries it)
        """
        return self._enqueue((PUSH_UPSERT, kind, record_id))

    def enqueue_deletion(self, kind: RecordKind, record_id: str) -> bool:
        """Schedule a background remote delete. Never blocks."""
        return self._enqueue((PUSH_DELETE, kind, record_id))

    # =========================================================================
    # PUSH OPERATIONS
    # =========================================================================

    async def push_one(self, kind: RecordKind, record_id: str) -> bool:
        """
        Push a single row to the remote store.

        No-op if the row is missing or already synced. The synced flag is
        only set if the row was not rewritten while the push was in flight.

        Returns:
            True if the row is synced afterwards
        """
        return await self._push(kind, record_id) == OUTCOME_SYNCED

    async def _push(self, kind: RecordKind, record_id: str) -> str:
        key = (kind, record_id)
        self._in_flight[key] = self._in_flight.get(key, 0) + 1
        try:
            row = await self._local_db.get_row(kind, record_id)
            if row is None:
                logger.debug(f"Nothing to push for {kind.table}/{record_id}")
                return OUTCOME_MISSING
            if row["synced"]:
                return OUTCOME_SYNCED

            payload = decode_row(kind, row).to_remote()
            await self._gateway.upsert(kind, payload)

            if await self._local_db.mark_synced(kind, record_id, row):
                self._state.total_synced += 1
                logger.debug(f"Synced {kind.table}/{record_id}")
                return OUTCOME_SYNCED

            logger.debug(f"{kind.table}/{record_id} changed during push; left for next sweep")

        except SyncError as e:
            logger.info(f"Sync failed (offline?), will retry later: {e}")
        except StorageError as e:
            logger.error(f"Local read/write failed while pushing {kind.table}/{record_id}: {e}")
        except Exception as e:
            logger.error(f"Unexpected error pushing {kind.table}/{record_id}: {e}", exc_info=True)
        finally:
            self._in_flight[key] -= 1
            if not self._in_flight[key]:
                del self._in_flight[key]
        return OUTCOME_FAILED

    async def push_deletion(self, kind: RecordKind, record_id: str) -> bool:
        """
        Delete a row remotely and clear its pending-deletion marker.

        The marker is kept when an upsert of the same record is still in
        flight, since that upsert may land after the delete.

        Returns:
            True if the remote delete is final
        """
        try:
            await self._gateway.delete(kind, record_id)
            if self._in_flight.get((kind, record_id)):
                logger.info(f"Upsert of {kind.table}/{record_id} in flight; delete retried next sweep")
                return False
            await self._local_db.clear_pending_deletion(kind, record_id)
            logger.debug(f"Deleted {kind.table}/{record_id} remotely")
            return True
        except SyncError as e:
            logger.info(f"Remote delete failed (offline?), will retry later: {e}")
        except StorageError as e:
            logger.error(f"Could not clear pending deletion {kind.table}/{record_id}: {e}")
        except Exception as e:
            logger.error(f"Unexpected error deleting {kind.table}/{record_id}: {e}", exc_info=True)
        return False

    async def sweep(self) -> SweepResult:
        """
        Push every unsynced row of every kind, then retry pending deletions.

        Concurrent sweeps run one after the other. In-flight background
        pushes are not awaited; double pushes are idempotent. Rows deleted
        locally between listing and pushing are counted as skipped.

        Returns:
            SweepResult with push/failure counts
        """
        async with self._sweep_lock:
            result = SweepResult()
            self._state.is_syncing = True
            self._state.last_sweep = datetime.now(timezone.utc)
            self._notify_callbacks()

            try:
                with LogContext(logger, "Sweeping unsynced records"):
                    for kind in RecordKind:
                        try:
                            record_ids = await self._local_db.unsynced_ids(kind)
                        except StorageError as e:
                            logger.error(f"Cannot list unsynced {kind.table}: {e}")
                            result.failed += 1
                            continue

                        for record_id in record_ids:
                            outcome = await self._push(kind, record_id)
                            if outcome == OUTCOME_SYNCED:
                                result.pushed += 1
                            elif outcome == OUTCOME_MISSING:
                                result.skipped += 1
                            else:
                                result.failed += 1

                    try:
                        deletions = await self._local_db.pending_deletions()
                    except StorageError as e:
                        logger.error(f"Cannot list pending deletions: {e}")
                        deletions = []
                        result.failed += 1

                    for kind, record_id in deletions:
                        if await self.push_deletion(kind, record_id):
                            result.deleted += 1
                        else:
                            result.failed += 1

                self._state.failed_count = result.failed
                if result.success:
                    self._state.last_sweep_success = datetime.now(timezone.utc)
                logger.info(
                    f"Sweep complete: {result.pushed} pushed, {result.deleted} deleted, "
                    f"{result.skipped} skipped, {result.failed} failed"
                )
                return result

            finally:
                self._state.is_syncing = False
                self._notify_callbacks()

    # =========================================================================
    # CALLBACKS & STATUS
    # =========================================================================

    def register_callback(self, callback: Callable[[SyncState], None]) -> None:
        """Register a callback for sync state changes."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[SyncState], None]) -> None:
        """Remove a registered callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_callbacks(self) -> None:
        """Notify all registered callbacks."""
        for callback in self._callbacks:
            try:
                callback(self._state)
            except Exception as e:
                logger.error(f"Error in sync callback: {e}")

    def get_status_display(self) -> Dict[str, Any]:
        """Get sync engine status for UI display."""
        return {
            "is_syncing": self._state.is_syncing,
            "last_sweep": self._state.last_sweep.isoformat() if self._state.last_sweep else None,
            "last_success": (
                self._state.last_sweep_success.isoformat()
                if self._state.last_sweep_success else None
            ),
            "queued_pushes": self.queued_pushes,
            "failed_count": self._state.failed_count,
            "total_synced": self._state.total_synced,
            "dropped_pushes": self._state.dropped_pushes,
        }
