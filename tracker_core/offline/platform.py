# =============================================================================
# tracker_core/offline/platform.py
# Platform Selector - picks the record store once per process
# =============================================================================

from __future__ import annotations
from typing import Optional
import logging

from tracker_core.config import TrackerConfig
from tracker_core.errors import ConfigurationError
from tracker_core.offline.local_database import LocalDatabase
from tracker_core.offline.offline_store import OfflineRecordStore
from tracker_core.offline.record_store import RecordStore
from tracker_core.offline.remote_gateway import InMemoryGateway, RemoteGateway, SupabaseGateway
from tracker_core.offline.remote_store import RemoteRecordStore

logger = logging.getLogger(__name__)


def create_gateway(config: TrackerConfig) -> RemoteGateway:
    """Build the remote gateway named by ``config.remote_provider``."""
    if config.remote_provider == "supabase":
        return SupabaseGateway(config.supabase_url, config.supabase_key)
    if config.remote_provider == "mock":
        logger.warning("No Supabase credentials configured; using in-memory remote store")
        return InMemoryGateway()
    raise ConfigurationError(
        f"Unknown remote provider '{config.remote_provider}'",
        config_key="remote_provider",
    )


def create_record_store(config: TrackerConfig, gateway: Optional[RemoteGateway] = None) -> RecordStore:
    """
    Wire exactly one RecordStore implementation.

    Args:
        config: Loaded configuration (``store_mode`` decides)
        gateway: Prebuilt gateway; built from config when omitted

    Returns:
        OfflineRecordStore or RemoteRecordStore (not yet initialized)
    """
    gateway = gateway or create_gateway(config)

    if config.store_mode == "offline":
        store = OfflineRecordStore(
            LocalDatabase(config.db_path),
            gateway,
            push_workers=config.push_workers,
            push_queue_size=config.push_queue_size,
        )
    elif config.store_mode == "remote":
        store = RemoteRecordStore(gateway)
    else:
        raise ConfigurationError(
            f"Unknown store mode '{config.store_mode}'",
            config_key="store_mode",
        )

    logger.info(f"Record store selected: {store.mode} (gateway: {gateway.name})")
    return store
