# =============================================================================
# tests/unit/test_offline_store.py
# Unit Tests for OfflineRecordStore
# =============================================================================

import asyncio
import pytest

from tracker_core.errors import StorageError
from tracker_core.models import RecordKind, SessionEntry, SymptomValue
from tracker_core.offline import LocalDatabase, OfflineRecordStore


class TestSaveAndRead:
    """Test typed saves and reads"""

    def test_save_returns_before_remote_push(self, disconnected_store, make_reading):
        """Saving succeeds with the remote unreachable"""
        reading = make_reading(value=12.0)

        async def scenario():
            async with disconnected_store:
                await disconnected_store.save_bac_reading(reading)
                return await disconnected_store.get_bac_readings("user-1")

        readings = asyncio.run(scenario())
        assert [r.id for r in readings] == [reading.id]
        assert readings[0].synced is False

    def test_write_through_push_marks_synced(self, offline_store, gateway, make_carb):
        entry = make_carb()

        async def scenario():
            async with offline_store:
                await offline_store.save_carb_entry(entry)
                await offline_store.wait_for_pushes()
                return await offline_store.get_carb_entries("user-1")

        entries = asyncio.run(scenario())
        assert entries[0].synced is True
        assert [row["id"] for row in gateway.rows(RecordKind.CARB_ENTRY)] == [entry.id]

    def test_symptom_entry_keeps_value_kind(self, offline_store, make_entry):
        entry = make_entry(value="3")

        async def scenario():
            async with offline_store:
                await offline_store.save_symptom_entry(entry)
                return await offline_store.get_symptom_entries("user-1")

        entries = asyncio.run(scenario())
        assert entries[0].value == SymptomValue.text("3")

    def test_session_entries_round_trip(self, offline_store):
        entry = SessionEntry(id="s-1", user_id="user-1", notes="after dinner")

        async def scenario():
            async with offline_store:
                await offline_store.save_session_entry(entry)
                return await offline_store.get_session_entries("user-1")

        entries = asyncio.run(scenario())
        assert entries[0].notes == "after dinner"

    def test_unknown_user_gets_empty_list(self, offline_store):
        async def scenario():
            async with offline_store:
                return await offline_store.get_bac_readings("nobody")

        assert asyncio.run(scenario()) == []

    def test_save_without_initialize_still_pushes(self, offline_store, gateway, make_reading):
        """The first save starts the push workers"""
        reading = make_reading()

        async def scenario():
            await offline_store.save_bac_reading(reading)
            running = offline_store.sync_engine.is_running
            await offline_store.wait_for_pushes()
            await offline_store.close()
            return running

        assert asyncio.run(scenario()) is True
        assert [row["id"] for row in gateway.rows(RecordKind.BAC_READING)] == [reading.id]

    def test_write_failure_raises_storage_error(self, tmp_path, gateway, make_reading):
        store = OfflineRecordStore(LocalDatabase(tmp_path), gateway)

        async def scenario():
            try:
                await store.save_bac_reading(make_reading())
            finally:
                await store.close()

        with pytest.raises(StorageError):
            asyncio.run(scenario())


class TestCustomSymptoms:
    """Test custom symptom listing and deletion"""

    def test_list_includes_inactive_newest_first(self, offline_store, make_symptom):
        old = make_symptom("Nausea", minutes=0)
        hidden = make_symptom("Dizziness", minutes=1, is_active=False)

        async def scenario():
            async with offline_store:
                await offline_store.save_custom_symptom(old)
                await offline_store.save_custom_symptom(hidden)
                return await offline_store.get_custom_symptom_list("user-1")

        symptoms = asyncio.run(scenario())
        assert [s.name for s in symptoms] == ["Dizziness", "Nausea"]

    def test_delete_keeps_answers_and_reaches_remote(self, offline_store, gateway, make_symptom, make_entry):
        symptom = make_symptom()

        async def scenario():
            async with offline_store:
                await offline_store.save_custom_symptom(symptom)
                await offline_store.save_symptom_entry(make_entry(symptom_id=symptom.id))
                await offline_store.wait_for_pushes()
                deleted = await offline_store.delete_custom_symptom(symptom.id)
                await offline_store.wait_for_pushes()
                remaining = await offline_store.get_custom_symptom_list("user-1")
                answers = await offline_store.get_symptom_entries("user-1")
                status = await offline_store.get_sync_status()
                return deleted, remaining, answers, status

        deleted, remaining, answers, status = asyncio.run(scenario())
        assert deleted is True
        assert remaining == []
        assert len(answers) == 1
        assert status.pending_deletions == 0
        assert gateway.rows(RecordKind.CUSTOM_SYMPTOM) == []

    def test_delete_during_slow_push_stays_deleted(self, db_path, slow_gateway, make_symptom):
        """A delete queued behind a slow upsert of the same symptom wins"""
        store = OfflineRecordStore(LocalDatabase(db_path), slow_gateway)
        symptom = make_symptom()

        async def scenario():
            async with store:
                await store.save_custom_symptom(symptom)
                await asyncio.sleep(0.01)
                await store.delete_custom_symptom(symptom.id)
                await store.wait_for_pushes()
                await store.sweep()
                return await store.get_sync_status()

        status = asyncio.run(scenario())
        assert slow_gateway.rows(RecordKind.CUSTOM_SYMPTOM) == []
        assert status.pending_deletions == 0

    def test_offline_delete_stays_pending(self, disconnected_store, make_symptom):
        symptom = make_symptom()

        async def scenario():
            async with disconnected_store:
                await disconnected_store.save_custom_symptom(symptom)
                await disconnected_store.delete_custom_symptom(symptom.id)
                await disconnected_store.wait_for_pushes()
                return await disconnected_store.get_sync_status()

        status = asyncio.run(scenario())
        assert status.pending_deletions == 1
        assert status.total == 0


class TestSyncStatus:
    """Test sync status reporting"""

    def test_status_counts_unsynced_per_kind(self, disconnected_store, make_reading, make_carb):
        async def scenario():
            async with disconnected_store:
                await disconnected_store.save_bac_reading(make_reading())
                await disconnected_store.save_bac_reading(make_reading())
                await disconnected_store.save_carb_entry(make_carb())
                await disconnected_store.wait_for_pushes()
                first = await disconnected_store.get_sync_status()
                second = await disconnected_store.get_sync_status()
                return first, second

        first, second = asyncio.run(scenario())
        assert first.counts[RecordKind.BAC_READING] == 2
        assert first.counts[RecordKind.CARB_ENTRY] == 1
        assert first.total == 3
        assert first.to_dict() == second.to_dict()
        assert first.to_dict()["bac_readings"] == 2
