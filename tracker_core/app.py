# =============================================================================
# tracker_core/app.py
# Composition Root - owns the record store and the services around it
# =============================================================================
"""
TrackerApp - builds everything once and hands it to the presentation layer.

Usage:
------
    async with TrackerApp(load_config()) as app:
        await app.entries.record_bac_reading(user_id, "42")
        status = await app.get_sync_status()
"""

from __future__ import annotations
import asyncio
from typing import Optional
import logging

from tracker_core.config import TrackerConfig
from tracker_core.offline import RecordStore, SweepResult, SyncStatusReport, create_record_store
from tracker_core.services import EntryService, PreferencesStore, ReportService

logger = logging.getLogger(__name__)


class TrackerApp:
    """Holds the single RecordStore for the process and the services using it."""

    def __init__(self, config: Optional[TrackerConfig] = None, store: Optional[RecordStore] = None):
        """
        Args:
            config: Settings (defaults: offline store, mock gateway)
            store: Prebuilt store; selected from config when omitted
        """
        self.config = config or TrackerConfig()
        self.store = store or create_record_store(self.config)
        self.entries = EntryService(self.store)
        self.reports = ReportService(self.store)
        self.preferences = PreferencesStore(self.config.preferences_path)
        self._startup_sweep: Optional[asyncio.Task] = None
        self._started = False

    @property
    def startup_sweep(self) -> Optional[asyncio.Task]:
        return self._startup_sweep

    async def start(self) -> None:
        """
        Initialize the store and sweep leftovers from earlier runs in the
        background. Returns without waiting for the network.
        """
        if self._started:
            return

        await self.store.initialize()
        self.preferences.load()
        self._startup_sweep = asyncio.create_task(self.store.sweep(), name="startup-sweep")
        self._started = True
        logger.info(f"Tracker started ({self.store.mode} store)")

    async def sync_now(self) -> SweepResult:
        """Explicit "sync now": push everything not yet synced."""
        return await self.store.sync_now()

    async def get_sync_status(self) -> SyncStatusReport:
        return await self.store.get_sync_status()

    async def shutdown(self) -> None:
        """Finish the startup sweep, drain pushes and close the store."""
        if not self._started:
            return

        if self._startup_sweep is not None:
            await self._startup_sweep
            self._startup_sweep = None

        await self.store.close()
        self._started = False
        logger.info("Tracker shut down")

    async def __aenter__(self) -> TrackerApp:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()
