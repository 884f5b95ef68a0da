# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from tracker_core.errors import SyncError
from tracker_core.models import (
    BACReading,
    BACUnit,
    CarbEntry,
    CustomSymptom,
    RecordKind,
    SymptomEntry,
    SymptomType,
    new_record_id,
)
from tracker_core.offline import (
    InMemoryGateway,
    LocalDatabase,
    OfflineRecordStore,
    RemoteGateway,
    RemoteRecordStore,
)


BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def iso_at(minutes: int) -> str:
    """ISO timestamp ``minutes`` after BASE_TIME."""
    return (BASE_TIME + timedelta(minutes=minutes)).isoformat()


# =============================================================================
# GATEWAYS
# =============================================================================

class FailingGateway(RemoteGateway):
    """Remote store that is never reachable."""

    name = "failing"

    def __init__(self):
        self.calls = 0

    async def upsert(self, kind: RecordKind, row: Dict[str, Any]) -> None:
        self.calls += 1
        raise SyncError("network down", table=kind.table, record_id=row.get("id"))

    async def select_by_user(self, kind, user_id, filters=None, order_by=None,
                             descending=False, limit=None) -> List[Dict[str, Any]]:
        self.calls += 1
        raise SyncError("network down", table=kind.table)

    async def delete(self, kind: RecordKind, record_id: str) -> None:
        self.calls += 1
        raise SyncError("network down", table=kind.table, record_id=record_id)


class SlowUpsertGateway(InMemoryGateway):
    """In-memory remote store whose upserts take a while to land."""

    def __init__(self, delay: float = 0.05):
        super().__init__()
        self.delay = delay

    async def upsert(self, kind: RecordKind, row: Dict[str, Any]) -> None:
        await asyncio.sleep(self.delay)
        await super().upsert(kind, row)


@pytest.fixture
def gateway():
    """In-memory remote store that accepts everything"""
    return InMemoryGateway()


@pytest.fixture
def failing_gateway():
    """Remote store that rejects every call"""
    return FailingGateway()


@pytest.fixture
def slow_gateway():
    """Remote store with 50ms upserts"""
    return SlowUpsertGateway()


# =============================================================================
# STORES
# =============================================================================

@pytest.fixture
def db_path(tmp_path):
    """Fresh SQLite file per test"""
    return tmp_path / "local_data" / "tracker.db"


@pytest.fixture
def local_db(db_path):
    return LocalDatabase(db_path)


@pytest.fixture
def offline_store(db_path, gateway):
    """Offline store over an always-available remote (not yet initialized)"""
    return OfflineRecordStore(LocalDatabase(db_path), gateway)


@pytest.fixture
def disconnected_store(db_path, failing_gateway):
    """Offline store whose remote is unreachable (not yet initialized)"""
    return OfflineRecordStore(LocalDatabase(db_path), failing_gateway)


@pytest.fixture
def remote_store(gateway):
    return RemoteRecordStore(gateway)


# =============================================================================
# RECORD FACTORIES
# =============================================================================

@pytest.fixture
def make_reading():
    """Factory for BAC readings at BASE_TIME + minutes"""
    def _make(value: float = 40.0, minutes: int = 0, user_id: str = "user-1",
              unit: BACUnit = BACUnit.MG_DL, record_id: Optional[str] = None) -> BACReading:
        return BACReading(
            id=record_id or new_record_id(),
            user_id=user_id,
            value=value,
            unit=unit,
            timestamp=iso_at(minutes),
        )
    return _make


@pytest.fixture
def make_symptom():
    """Factory for custom symptoms created at BASE_TIME + minutes"""
    def _make(name: str = "Headache", minutes: int = 0, user_id: str = "user-1",
              is_active: bool = True, options: Optional[List[str]] = None) -> CustomSymptom:
        return CustomSymptom(
            id=new_record_id(),
            user_id=user_id,
            name=name,
            type=SymptomType.BOOLEAN,
            description=f"Do you have {name.lower()}?",
            options=options,
            is_active=is_active,
            created_at=iso_at(minutes),
            updated_at=iso_at(minutes),
        )
    return _make


@pytest.fixture
def make_entry():
    """Factory for symptom entries"""
    def _make(symptom_id: str = "symptom-1", value: Any = True, minutes: int = 0,
              user_id: str = "user-1") -> SymptomEntry:
        return SymptomEntry(
            id=new_record_id(),
            user_id=user_id,
            symptom_id=symptom_id,
            value=value,
            timestamp=iso_at(minutes),
        )
    return _make


@pytest.fixture
def make_carb():
    def _make(amount: float = 30.0, minutes: int = 0, user_id: str = "user-1") -> CarbEntry:
        return CarbEntry(
            id=new_record_id(),
            user_id=user_id,
            amount=amount,
            timestamp=iso_at(minutes),
            description="toast",
        )
    return _make
