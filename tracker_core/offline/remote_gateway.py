# =============================================================================
# tracker_core/offline/remote_gateway.py
# Remote Store Gateway (Supabase + in-memory mock)
# =============================================================================
"""
RemoteGateway - the only operations the core needs from the shared store.

- upsert(kind, row): replace-or-insert by primary key, safe to retry
- select_by_user(kind, user_id, ...): read-only filtered query
- delete(kind, record_id): used for custom symptom deletion only

Failures are raised as SyncError; callers decide whether to swallow them.
"""

from __future__ import annotations
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

from tracker_core.errors import SyncError
from tracker_core.models import RecordKind

logger = logging.getLogger(__name__)


class RemoteGateway(ABC):
    """Interface to the remote multi-tenant store."""

    name = "remote"

    @abstractmethod
    async def upsert(self, kind: RecordKind, row: Dict[str, Any]) -> None:
        """Insert or replace a row by id. Raises SyncError on failure."""

    @abstractmethod
    async def select_by_user(
        self,
        kind: RecordKind,
        user_id: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Rows for a user matching equality filters. Raises SyncError on failure."""

    @abstractmethod
    async def delete(self, kind: RecordKind, record_id: str) -> None:
        """Delete a row by id; deleting a missing row succeeds."""

    async def close(self) -> None:
        """Release network resources."""


# =============================================================================
# SUPABASE
# =============================================================================

class SupabaseGateway(RemoteGateway):
    """
    Gateway backed by a Supabase project (async client).

    Usage:
        gateway = SupabaseGateway(url, key)
        await gateway.upsert(RecordKind.BAC_READING, reading.to_remote())
    """

    name = "supabase"

    # Table mappings between local and remote
    TABLE_MAPPING = {kind: kind.table for kind in RecordKind}

    def __init__(self, url: str, key: str, client: Any = None):
        """
        Args:
            url: Supabase project URL
            key: Supabase API key
            client: Pre-built AsyncClient (tests inject a mock here)
        """
        self.url = url
        self.key = key
        self._client = client
        self._client_lock: Optional[asyncio.Lock] = None

    async def _get_client(self):
        """Lazily create the async Supabase client."""
        if self._client is not None:
            return self._client

        if self._client_lock is None:
            self._client_lock = asyncio.Lock()

        async with self._client_lock:
            if self._client is None:
                from supabase import acreate_client
                try:
                    self._client = await acreate_client(self.url, self.key)
                except Exception as e:
                    raise SyncError(f"Could not create Supabase client: {e}") from e
                logger.info("Supabase client created")
        return self._client

    def _table(self, kind: RecordKind) -> str:
        return self.TABLE_MAPPING.get(kind, kind.table)

    async def upsert(self, kind: RecordKind, row: Dict[str, Any]) -> None:
        client = await self._get_client()
        table = self._table(kind)
        try:
            await client.table(table).upsert(row).execute()
        except Exception as e:
            raise SyncError(
                f"Supabase upsert failed: {e}",
                table=table,
                record_id=row.get("id"),
            ) from e

    async def select_by_user(
        self,
        kind: RecordKind,
        user_id: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        client = await self._get_client()
        table = self._table(kind)
        try:
            query = client.table(table).select("*").eq("user_id", user_id)

            for col, val in (filters or {}).items():
                query = query.eq(col, val)

            if order_by:
                query = query.order(order_by, desc=descending)

            if limit is not None:
                query = query.limit(limit)

            response = await query.execute()
        except Exception as e:
            raise SyncError(f"Supabase select failed: {e}", table=table) from e

        return list(response.data or [])

    async def delete(self, kind: RecordKind, record_id: str) -> None:
        client = await self._get_client()
        table = self._table(kind)
        try:
            await client.table(table).delete().eq("id", record_id).execute()
        except Exception as e:
            raise SyncError(
                f"Supabase delete failed: {e}",
                table=table,
                record_id=record_id,
            ) from e


# =============================================================================
# IN-MEMORY MOCK
# =============================================================================

class InMemoryGateway(RemoteGateway):
    """
    Process-local stand-in for the remote store.

    Used when no Supabase credentials are configured, and in tests.
    ``go_offline()`` makes every call fail with SyncError.
    """

    name = "mock"

    def __init__(self):
        self._tables: Dict[RecordKind, Dict[str, Dict[str, Any]]] = {kind: {} for kind in RecordKind}
        self.available = True
        self.upsert_count = 0

    def go_offline(self) -> None:
        self.available = False

    def go_online(self) -> None:
        self.available = True

    def rows(self, kind: RecordKind) -> List[Dict[str, Any]]:
        """Snapshot of every stored row of a kind."""
        return [dict(row) for row in self._tables[kind].values()]

    async def _round_trip(self, table: str, record_id: Optional[str] = None) -> None:
        await asyncio.sleep(0)
        if not self.available:
            raise SyncError("Remote store unreachable", table=table, record_id=record_id)

    async def upsert(self, kind: RecordKind, row: Dict[str, Any]) -> None:
        await self._round_trip(kind.table, row.get("id"))
        self._tables[kind][row["id"]] = dict(row)
        self.upsert_count += 1

    async def select_by_user(
        self,
        kind: RecordKind,
        user_id: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        await self._round_trip(kind.table)
        conditions = dict(filters or {})
        conditions["user_id"] = user_id
        rows = [
            dict(row) for row in self._tables[kind].values()
            if all(row.get(col) == val for col, val in conditions.items())
        ]
        if order_by:
            rows.sort(key=lambda row: row.get(order_by) or "", reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows

    async def delete(self, kind: RecordKind, record_id: str) -> None:
        await self._round_trip(kind.table, record_id)
        self._tables[kind].pop(record_id, None)
