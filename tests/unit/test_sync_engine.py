# =============================================================================
# tests/unit/test_sync_engine.py
# Unit Tests for SyncEngine
# =============================================================================

import asyncio
import pytest
from unittest.mock import AsyncMock

from tracker_core.models import RecordKind
from tracker_core.offline import SyncEngine


class TestPushOne:
    """Test single-record pushes"""

    def test_push_marks_row_synced(self, local_db, gateway, make_reading):
        engine = SyncEngine(local_db, gateway)
        reading = make_reading()

        async def scenario():
            await local_db.upsert(RecordKind.BAC_READING, reading.to_row())
            pushed = await engine.push_one(RecordKind.BAC_READING, reading.id)
            row = await local_db.get_row(RecordKind.BAC_READING, reading.id)
            await local_db.close()
            return pushed, row

        pushed, row = asyncio.run(scenario())
        assert pushed is True
        assert row["synced"] == 1
        remote = gateway.rows(RecordKind.BAC_READING)
        assert len(remote) == 1
        assert "synced" not in remote[0]

    def test_push_failure_is_swallowed(self, local_db, failing_gateway, make_reading):
        """A remote failure never raises and leaves the row unsynced"""
        engine = SyncEngine(local_db, failing_gateway)
        reading = make_reading()

        async def scenario():
            await local_db.upsert(RecordKind.BAC_READING, reading.to_row())
            pushed = await engine.push_one(RecordKind.BAC_READING, reading.id)
            unsynced = await local_db.unsynced_ids(RecordKind.BAC_READING)
            await local_db.close()
            return pushed, unsynced

        pushed, unsynced = asyncio.run(scenario())
        assert pushed is False
        assert unsynced == [reading.id]

    def test_push_missing_row_is_noop(self, local_db, gateway):
        engine = SyncEngine(local_db, gateway)

        async def scenario():
            pushed = await engine.push_one(RecordKind.BAC_READING, "does-not-exist")
            await local_db.close()
            return pushed

        assert asyncio.run(scenario()) is False
        assert gateway.upsert_count == 0

    def test_push_synced_row_is_noop(self, local_db, gateway, make_reading):
        engine = SyncEngine(local_db, gateway)
        reading = make_reading()

        async def scenario():
            await local_db.upsert(RecordKind.BAC_READING, reading.to_row())
            await engine.push_one(RecordKind.BAC_READING, reading.id)
            again = await engine.push_one(RecordKind.BAC_READING, reading.id)
            await local_db.close()
            return again

        assert asyncio.run(scenario()) is True
        assert gateway.upsert_count == 1

    def test_rewrite_during_push_stays_unsynced(self, local_db, make_reading):
        """The flag is not set when a newer save landed mid-push"""
        reading = make_reading(value=10.0)
        gateway = AsyncMock()

        async def resave_during_upsert(kind, row):
            reading.value = 55.0
            await local_db.upsert(RecordKind.BAC_READING, reading.to_row())

        gateway.upsert.side_effect = resave_during_upsert
        engine = SyncEngine(local_db, gateway)

        async def scenario():
            await local_db.upsert(RecordKind.BAC_READING, reading.to_row())
            pushed = await engine.push_one(RecordKind.BAC_READING, reading.id)
            row = await local_db.get_row(RecordKind.BAC_READING, reading.id)
            await local_db.close()
            return pushed, row

        pushed, row = asyncio.run(scenario())
        assert pushed is False
        assert row["synced"] == 0
        assert row["value"] == 55.0


class TestSweep:
    """Test full sweeps"""

    def test_sweep_pushes_every_kind(self, local_db, gateway, make_reading, make_carb, make_symptom):
        engine = SyncEngine(local_db, gateway)

        async def scenario():
            await local_db.upsert(RecordKind.BAC_READING, make_reading().to_row())
            await local_db.upsert(RecordKind.CARB_ENTRY, make_carb().to_row())
            await local_db.upsert(RecordKind.CUSTOM_SYMPTOM, make_symptom().to_row())
            result = await engine.sweep()
            counts = await local_db.count_unsynced()
            await local_db.close()
            return result, counts

        result, counts = asyncio.run(scenario())
        assert result.pushed == 3
        assert result.success
        assert sum(counts.values()) == 0
        assert engine.state.last_sweep_success is not None

    def test_sweep_with_unreachable_remote(self, local_db, failing_gateway, make_reading):
        engine = SyncEngine(local_db, failing_gateway)

        async def scenario():
            await local_db.upsert(RecordKind.BAC_READING, make_reading().to_row())
            result = await engine.sweep()
            await local_db.close()
            return result

        result = asyncio.run(scenario())
        assert result.pushed == 0
        assert result.failed == 1
        assert not result.success
        assert engine.state.last_sweep_success is None

    def test_concurrent_sweeps_are_serialized(self, local_db, gateway, make_reading):
        engine = SyncEngine(local_db, gateway)

        async def scenario():
            for minutes in range(5):
                await local_db.upsert(RecordKind.BAC_READING, make_reading(minutes=minutes).to_row())
            results = await asyncio.gather(engine.sweep(), engine.sweep())
            await local_db.close()
            return results

        first, second = asyncio.run(scenario())
        assert first.pushed + second.pushed == 5
        assert gateway.upsert_count == 5

    def test_sweep_retries_pending_deletions(self, local_db, gateway, make_symptom):
        engine = SyncEngine(local_db, gateway)
        symptom = make_symptom()

        async def scenario():
            await local_db.upsert(RecordKind.CUSTOM_SYMPTOM, symptom.to_row())
            await engine.sweep()
            await local_db.delete(RecordKind.CUSTOM_SYMPTOM, symptom.id)
            result = await engine.sweep()
            pending = await local_db.pending_deletions()
            await local_db.close()
            return result, pending

        result, pending = asyncio.run(scenario())
        assert result.deleted == 1
        assert pending == []
        assert gateway.rows(RecordKind.CUSTOM_SYMPTOM) == []

    def test_row_deleted_mid_sweep_is_skipped(self, local_db, gateway, make_symptom):
        """A row listed as unsynced but deleted before its push is not a failure"""
        engine = SyncEngine(local_db, gateway)
        list_unsynced = local_db.unsynced_ids

        async def listing_with_deleted_row(kind):
            record_ids = await list_unsynced(kind)
            if kind is RecordKind.CUSTOM_SYMPTOM:
                record_ids.append("deleted-meanwhile")
            return record_ids

        local_db.unsynced_ids = listing_with_deleted_row

        async def scenario():
            await local_db.upsert(RecordKind.CUSTOM_SYMPTOM, make_symptom().to_row())
            result = await engine.sweep()
            await local_db.close()
            return result

        result = asyncio.run(scenario())
        assert result.pushed == 1
        assert result.skipped == 1
        assert result.failed == 0
        assert result.success

    def test_delete_keeps_marker_while_upsert_in_flight(self, local_db, slow_gateway, make_symptom):
        """A sweep upsert landing after the remote delete is cleaned up by the next sweep"""
        engine = SyncEngine(local_db, slow_gateway)
        symptom = make_symptom()

        async def scenario():
            await local_db.upsert(RecordKind.CUSTOM_SYMPTOM, symptom.to_row())
            push = asyncio.create_task(engine.push_one(RecordKind.CUSTOM_SYMPTOM, symptom.id))
            await asyncio.sleep(0.01)
            await local_db.delete(RecordKind.CUSTOM_SYMPTOM, symptom.id)
            finished = await engine.push_deletion(RecordKind.CUSTOM_SYMPTOM, symptom.id)
            await push
            landed_late = slow_gateway.rows(RecordKind.CUSTOM_SYMPTOM)
            pending = await local_db.pending_deletions()
            result = await engine.sweep()
            await local_db.close()
            return finished, landed_late, pending, result

        finished, landed_late, pending, result = asyncio.run(scenario())
        assert finished is False
        assert [row["id"] for row in landed_late] == [symptom.id]
        assert pending == [(RecordKind.CUSTOM_SYMPTOM, symptom.id)]
        assert result.deleted == 1
        assert slow_gateway.rows(RecordKind.CUSTOM_SYMPTOM) == []

    def test_callbacks_see_sweep_state(self, local_db, gateway):
        engine = SyncEngine(local_db, gateway)
        seen = []
        engine.register_callback(lambda state: seen.append(state.is_syncing))

        async def scenario():
            await engine.sweep()
            await local_db.close()

        asyncio.run(scenario())
        assert seen == [True, False]


class TestPushQueue:
    """Test the background push workers"""

    def test_enqueued_push_is_delivered(self, local_db, gateway, make_reading):
        engine = SyncEngine(local_db, gateway, workers=2)
        reading = make_reading()

        async def scenario():
            await engine.start()
            await local_db.upsert(RecordKind.BAC_READING, reading.to_row())
            queued = engine.enqueue(RecordKind.BAC_READING, reading.id)
            await engine.wait_idle()
            await engine.stop()
            unsynced = await local_db.unsynced_ids(RecordKind.BAC_READING)
            await local_db.close()
            return queued, unsynced

        queued, unsynced = asyncio.run(scenario())
        assert queued is True
        assert unsynced == []

    def test_enqueue_before_start_is_dropped(self, local_db, gateway):
        engine = SyncEngine(local_db, gateway)
        assert engine.enqueue(RecordKind.BAC_READING, "r1") is False

    def test_full_queue_drops_request(self, local_db, gateway):
        engine = SyncEngine(local_db, gateway, workers=1, queue_size=1)

        async def scenario():
            await engine.start()
            first = engine.enqueue(RecordKind.BAC_READING, "r1")
            second = engine.enqueue(RecordKind.BAC_READING, "r2")
            await engine.stop()
            await local_db.close()
            return first, second

        first, second = asyncio.run(scenario())
        assert first is True
        assert second is False
        assert engine.state.dropped_pushes == 1

    def test_operations_for_one_record_share_a_worker(self, local_db, gateway):
        engine = SyncEngine(local_db, gateway, workers=4)

        async def scenario():
            await engine.start()
            routed = {id(engine._queue_for(RecordKind.CUSTOM_SYMPTOM, "s1")) for _ in range(10)}
            await engine.stop()
            await local_db.close()
            return routed

        assert len(asyncio.run(scenario())) == 1

    def test_status_display(self, local_db, gateway):
        engine = SyncEngine(local_db, gateway)
        status = engine.get_status_display()
        assert status["is_syncing"] is False
        assert status["last_sweep"] is None
        assert status["queued_pushes"] == 0
