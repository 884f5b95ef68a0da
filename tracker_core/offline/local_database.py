# =============================================================================
# tracker_core/offline/local_database.py
# Local SQLite Database for Offline Operations
# =============================================================================
"""
LocalDatabase - SQLite-based on-device store that mirrors the remote schema.

Features:
- Automatic schema creation (one table per record kind + user_id indexes)
- Insert-or-replace by id, every write resets ``synced`` to 0
- Conditional ``synced`` flip that only succeeds if the row is unchanged
- Pending deletion tombstones for custom symptoms
- Async API; all statements run on one dedicated thread, so statement
  execution is serialized without an explicit lock
"""

from __future__ import annotations
import asyncio
import functools
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import logging

from tracker_core.errors import StorageError
from tracker_core.models import RecordKind

logger = logging.getLogger(__name__)


def _without_flag(row: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in row.items() if key != "synced"}


class LocalDatabase:
    """
    Local SQLite database for offline record storage.

    Usage::

        db = LocalDatabase(":memory:")
        await db.initialize()
        await db.upsert(RecordKind.CARB_ENTRY, entry.to_row())
        rows = await db.select(RecordKind.CARB_ENTRY, {"user_id": "user-1"}, limit=10)
        await db.close()
    """

    # Default database location
    DEFAULT_DB_PATH = Path("local_data") / "medical_tracker.db"

    # Schema definitions matching the remote tables (plus the synced flag)
    SCHEMA = {
        RecordKind.BAC_READING: """
            CREATE TABLE IF NOT EXISTS bac_readings (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                value REAL NOT NULL,
                unit TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                source TEXT NOT NULL,
                device_id TEXT,
                synced INTEGER NOT NULL DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """,
        RecordKind.SYMPTOM_ENTRY: """
            CREATE TABLE IF NOT EXISTS symptom_entries (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                symptom_id TEXT NOT NULL,
                value TEXT,
                value_kind TEXT,
                severity TEXT,
                location TEXT,
                video_url TEXT,
                timestamp TEXT NOT NULL,
                synced INTEGER NOT NULL DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """,
        RecordKind.CARB_ENTRY: """
            CREATE TABLE IF NOT EXISTS carb_entries (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                amount REAL NOT NULL,
                timestamp TEXT NOT NULL,
                description TEXT,
                synced INTEGER NOT NULL DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """,
        RecordKind.SESSION_ENTRY: """
            CREATE TABLE IF NOT EXISTS session_entries (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                bac_reading_id TEXT,
                notes TEXT,
                timestamp TEXT NOT NULL,
                synced INTEGER NOT NULL DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """,
        RecordKind.CUSTOM_SYMPTOM: """
            CREATE TABLE IF NOT EXISTS custom_symptoms (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                type TEXT NOT NULL,
                options TEXT,
                video_prompt TEXT,
                description TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                synced INTEGER NOT NULL DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """,
    }

    PENDING_DELETIONS_SCHEMA = """
        CREATE TABLE IF NOT EXISTS pending_deletions (
            table_name TEXT NOT NULL,
            record_id TEXT NOT NULL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (table_name, record_id)
        )
    """

    INDEXES = [
        "CREATE INDEX IF NOT EXISTS idx_bac_user ON bac_readings(user_id)",
        "CREATE INDEX IF NOT EXISTS idx_symptom_user ON symptom_entries(user_id)",
        "CREATE INDEX IF NOT EXISTS idx_carb_user ON carb_entries(user_id)",
        "CREATE INDEX IF NOT EXISTS idx_session_user ON session_entries(user_id)",
        "CREATE INDEX IF NOT EXISTS idx_custom_symptoms_user ON custom_symptoms(user_id)",
    ]

    # Columns callers may filter or order by
    QUERYABLE_COLUMNS = {"user_id", "timestamp", "created_at", "is_active", "synced", "symptom_id"}

    def __init__(self, db_path: Optional[Union[Path, str]] = None):
        """
        Initialize local database (no I/O until initialize()).

        Args:
            db_path: Path to SQLite database file, or ":memory:"
        """
        self.db_path = str(db_path or self.DEFAULT_DB_PATH)
        self._conn: Optional[sqlite3.Connection] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._init_future: Optional[asyncio.Future] = None

    @property
    def is_initialized(self) -> bool:
        return self._conn is not None

    # =========================================================================
    # CONNECTION LIFECYCLE
    # =========================================================================

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="local-db")
        return self._executor

    async def _run(
        self,
        fn: Callable[..., Any],
        *args: Any,
        table: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> Any:
        """Run a blocking database call on the database thread."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._get_executor(), functools.partial(fn, *args))
        except (sqlite3.Error, OSError) as e:
            raise StorageError(
                f"Local database {operation or 'operation'} failed: {e}",
                table=table,
                operation=operation,
            ) from e

    @contextmanager
    def _transaction(self):
        """Commit on success, roll back on error (database thread only)."""
        conn = self._connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Database not initialized. Call initialize() first.")
        return self._conn

    def _open(self) -> None:
        if self.db_path != ":memory:":
            Path(self.db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            str(Path(self.db_path).expanduser()) if self.db_path != ":memory:" else ":memory:",
            check_same_thread=False,
        )
        try:
            conn.row_factory = sqlite3.Row
            if self.db_path != ":memory:":
                conn.execute("PRAGMA journal_mode=WAL")
            for kind, schema in self.SCHEMA.items():
                conn.execute(schema)
                logger.debug(f"Created/verified table: {kind.table}")
            conn.execute(self.PENDING_DELETIONS_SCHEMA)
            for index in self.INDEXES:
                conn.execute(index)
            conn.commit()
        except sqlite3.Error:
            conn.close()
            raise
        self._conn = conn

    async def initialize(self) -> None:
        """
        Open or create the database and ensure the schema exists.

        Idempotent and safe to call concurrently: later callers await the
        same open instead of starting another one.

        Raises:
            StorageError: If the database cannot be opened
        """
        if self._conn is not None:
            return

        if self._init_future is None:
            self._init_future = asyncio.ensure_future(self._run(self._open, operation="open"))
        future = self._init_future

        try:
            await asyncio.shield(future)
        except StorageError:
            if self._init_future is future:
                self._init_future = None
            raise

        logger.info(f"Local database initialized at: {self.db_path}")

    async def close(self) -> None:
        """Close the connection and stop the database thread."""
        if self._conn is not None:
            await self._run(self._close)
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self._init_future = None

    def _close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Local database closed")

    # =========================================================================
    # RECORD OPERATIONS
    # =========================================================================

    def _upsert(self, table: str, row: Dict[str, Any]) -> None:
        data = dict(row)
        data["synced"] = 0
        columns = ", ".join(data.keys())
        placeholders = ", ".join(["?" for _ in data])
        with self._transaction() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO {table} ({columns}) VALUES ({placeholders})",
                list(data.values()),
            )
            # Re-creating a deleted record cancels its remote deletion
            conn.execute(
                "DELETE FROM pending_deletions WHERE table_name = ? AND record_id = ?",
                [table, data["id"]],
            )

    async def upsert(self, kind: RecordKind, row: Dict[str, Any]) -> None:
        """
        Insert or fully replace a row by id, marking it unsynced.

        Raises:
            StorageError: If the write did not complete
        """
        await self.initialize()
        await self._run(self._upsert, kind.table, row, table=kind.table, operation="write")

    def _get_row(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        cursor = self._connection().execute(f"SELECT * FROM {table} WHERE id = ?", [record_id])
        row = cursor.fetchone()
        return dict(row) if row is not None else None

    async def get_row(self, kind: RecordKind, record_id: str) -> Optional[Dict[str, Any]]:
        """Get a row by id, or None."""
        await self.initialize()
        return await self._run(self._get_row, kind.table, record_id, table=kind.table, operation="read")

    def _select(
        self,
        table: str,
        filters: Dict[str, Any],
        order_by: Optional[str],
        descending: bool,
        limit: Optional[int],
    ) -> List[Dict[str, Any]]:
        query = f"SELECT * FROM {table}"
        params: List[Any] = []

        if filters:
            query += " WHERE " + " AND ".join(f"{column} = ?" for column in filters)
            params.extend(filters.values())

        if order_by:
            direction = "DESC" if descending else "ASC"
            query += f" ORDER BY {order_by} {direction}, rowid {direction}"

        if limit is not None:
            query += " LIMIT ?"
            params.append(int(limit))

        cursor = self._connection().execute(query, params)
        return [dict(row) for row in cursor.fetchall()]

    async def select(
        self,
        kind: RecordKind,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Select rows with equality filters.

        Args:
            kind: Record kind (table) to read
            filters: column -> value equality conditions
            order_by: Column to order by
            descending: Sort direction
            limit: Max rows

        Returns:
            List of row dicts (empty if nothing matches)
        """
        filters = filters or {}
        unknown = (set(filters) | ({order_by} if order_by else set())) - self.QUERYABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot query on columns: {sorted(unknown)}")

        await self.initialize()
        return await self._run(
            self._select, kind.table, filters, order_by, descending, limit,
            table=kind.table, operation="read",
        )

    # =========================================================================
    # SYNC FLAG MANAGEMENT
    # =========================================================================

    def _unsynced_ids(self, table: str) -> List[str]:
        cursor = self._connection().execute(
            f"SELECT id FROM {table} WHERE synced = 0 ORDER BY rowid"
        )
        return [row["id"] for row in cursor.fetchall()]

    async def unsynced_ids(self, kind: RecordKind) -> List[str]:
        """Ids of rows not yet accepted by the remote store, in insertion order."""
        await self.initialize()
        return await self._run(self._unsynced_ids, kind.table, table=kind.table, operation="read")

    def _mark_synced(self, table: str, record_id: str, pushed_row: Dict[str, Any]) -> bool:
        current = self._get_row(table, record_id)
        if current is None:
            return False
        # Compare content only; a racing push may already have set the flag
        if _without_flag(current) != _without_flag(pushed_row):
            return False
        with self._transaction() as conn:
            conn.execute(f"UPDATE {table} SET synced = 1 WHERE id = ?", [record_id])
        return True

    async def mark_synced(self, kind: RecordKind, record_id: str, pushed_row: Dict[str, Any]) -> bool:
        """
        Flip ``synced`` to 1, but only if the stored row still equals the
        row that was pushed. A newer local write keeps the row unsynced.

        Returns:
            True if the flag was set
        """
        await self.initialize()
        return await self._run(
            self._mark_synced, kind.table, record_id, pushed_row,
            table=kind.table, operation="mark_synced",
        )

    def _count_unsynced(self) -> Dict[RecordKind, int]:
        conn = self._connection()
        counts = {}
        for kind in RecordKind:
            row = conn.execute(
                f"SELECT COUNT(*) AS count FROM {kind.table} WHERE synced = 0"
            ).fetchone()
            counts[kind] = row["count"] if row else 0
        return counts

    async def count_unsynced(self) -> Dict[RecordKind, int]:
        """Unsynced row count per record kind."""
        await self.initialize()
        return await self._run(self._count_unsynced, operation="count")

    # =========================================================================
    # DELETIONS
    # =========================================================================

    def _delete_with_tombstone(self, table: str, record_id: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", [record_id])
            conn.execute(
                "INSERT OR REPLACE INTO pending_deletions (table_name, record_id, created_at) "
                "VALUES (?, ?, ?)",
                [table, record_id, datetime.now(timezone.utc).isoformat()],
            )
            return cursor.rowcount > 0

    async def delete(self, kind: RecordKind, record_id: str) -> bool:
        """
        Delete a row and remember that the remote copy must be deleted too.

        Returns:
            True if a local row existed
        """
        await self.initialize()
        return await self._run(
            self._delete_with_tombstone, kind.table, record_id,
            table=kind.table, operation="delete",
        )

    def _pending_deletions(self) -> List[Tuple[RecordKind, str]]:
        cursor = self._connection().execute(
            "SELECT table_name, record_id FROM pending_deletions ORDER BY created_at"
        )
        return [(RecordKind(row["table_name"]), row["record_id"]) for row in cursor.fetchall()]

    async def pending_deletions(self) -> List[Tuple[RecordKind, str]]:
        await self.initialize()
        return await self._run(self._pending_deletions, operation="read")

    def _clear_pending_deletion(self, table: str, record_id: str) -> None:
        with self._transaction() as conn:
            conn.execute(
                "DELETE FROM pending_deletions WHERE table_name = ? AND record_id = ?",
                [table, record_id],
            )

    async def clear_pending_deletion(self, kind: RecordKind, record_id: str) -> None:
        await self.initialize()
        await self._run(
            self._clear_pending_deletion, kind.table, record_id,
            table="pending_deletions", operation="write",
        )
