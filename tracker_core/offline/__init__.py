# =============================================================================
# tracker_core/offline/__init__.py
# Offline-First Persistence and Synchronization
# =============================================================================
"""
Offline-first persistence for the tracker.

Components:
- LocalDatabase: SQLite tables mirroring the remote schema, with synced flags
- RemoteGateway: Supabase (or in-memory) upsert/select/delete
- SyncEngine: write-through push queue plus full sweeps
- RecordStore: unified interface (OfflineRecordStore / RemoteRecordStore)
- create_record_store: picks one implementation from configuration
"""

from tracker_core.offline.local_database import LocalDatabase
from tracker_core.offline.remote_gateway import (
    RemoteGateway,
    SupabaseGateway,
    InMemoryGateway,
)
from tracker_core.offline.sync_engine import SyncEngine, SyncState, SweepResult
from tracker_core.offline.record_store import RecordStore, SyncStatusReport
from tracker_core.offline.offline_store import OfflineRecordStore
from tracker_core.offline.remote_store import RemoteRecordStore
from tracker_core.offline.platform import create_gateway, create_record_store

__all__ = [
    # Local database
    "LocalDatabase",
    # Remote gateway
    "RemoteGateway",
    "SupabaseGateway",
    "InMemoryGateway",
    # Sync engine
    "SyncEngine",
    "SyncState",
    "SweepResult",
    # Stores
    "RecordStore",
    "SyncStatusReport",
    "OfflineRecordStore",
    "RemoteRecordStore",
    # Platform selection
    "create_gateway",
    "create_record_store",
]
