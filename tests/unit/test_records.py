# =============================================================================
# tests/unit/test_records.py
# Unit Tests for Record Schemas and Row Codecs
# =============================================================================

import json
import pytest

from tracker_core.models import (
    BACReading,
    BACUnit,
    CustomSymptom,
    ReadingSource,
    RecordKind,
    SessionEntry,
    Severity,
    SymptomEntry,
    SymptomType,
    SymptomValue,
    ValueKind,
    decode_row,
    new_record_id,
    record_type_for,
)


class TestRecordIds:
    """Test id generation"""

    def test_ids_are_unique_in_rapid_succession(self):
        """Many ids generated back to back never collide"""
        ids = {new_record_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_id_is_uuid_text(self):
        record_id = new_record_id()
        assert len(record_id) == 36
        assert record_id.count("-") == 4


class TestSymptomValue:
    """Test the tagged symptom value"""

    def test_from_python_number_is_numeric(self):
        value = SymptomValue.from_python(3)
        assert value.kind is ValueKind.NUMERIC
        assert value.payload == 3.0

    def test_from_python_text_is_text(self):
        value = SymptomValue.from_python("3")
        assert value.kind is ValueKind.TEXT
        assert value.payload == "3"

    def test_from_python_bool_is_structured(self):
        """Booleans are not treated as numbers"""
        value = SymptomValue.from_python(True)
        assert value.kind is ValueKind.STRUCTURED
        assert value.payload is True

    def test_from_python_none_stays_none(self):
        assert SymptomValue.from_python(None) is None

    def test_numeric_text_keeps_its_kind_after_decoding(self):
        """The text "3" never comes back as the number 3"""
        text = SymptomValue.text("3")
        decoded = SymptomValue.deserialize(text.kind.value, text.serialize())
        assert decoded == text

    def test_structured_serializes_as_json(self):
        value = SymptomValue.structured({"side": "left", "score": 2})
        assert json.loads(value.serialize()) == {"side": "left", "score": 2}

    def test_deserialize_without_kind_reads_text(self):
        """Rows from clients that never wrote value_kind keep their answer"""
        assert SymptomValue.deserialize(None, "3") == SymptomValue.text("3")

    def test_deserialize_without_value_is_none(self):
        assert SymptomValue.deserialize(None, None) is None
        assert SymptomValue.deserialize("numeric", None) is None


class TestRowCodecs:
    """Test conversion between records and local/remote rows"""

    def test_bac_reading_row_keeps_unit_as_entered(self):
        reading = BACReading(id="r1", user_id="u1", value=0.5, unit=BACUnit.MMOL_L)
        row = reading.to_row()
        assert row["unit"] == "mmol/L"
        assert row["value"] == 0.5
        assert row["source"] == "manual"
        assert "synced" not in row

    def test_bac_reading_from_local_row(self):
        row = {
            "id": "r1", "user_id": "u1", "value": 12.5, "unit": "mg/dL",
            "timestamp": "2024-03-01T12:00:00+00:00", "source": "device",
            "device_id": "bactrack-1", "synced": 1, "created_at": "2024-03-01 12:00:00",
        }
        reading = BACReading.from_row(row)
        assert reading.source is ReadingSource.DEVICE
        assert reading.device_id == "bactrack-1"
        assert reading.synced is True

    def test_symptom_entry_row_carries_value_kind(self):
        entry = SymptomEntry(id="e1", user_id="u1", symptom_id="s1", value=7, severity=Severity.SEVERE)
        row = entry.to_row()
        assert row["value_kind"] == "numeric"
        assert row["value"] == "7.0"
        assert row["severity"] == "severe"

    def test_symptom_entry_without_value(self):
        entry = SymptomEntry(id="e1", user_id="u1", symptom_id="s1")
        row = entry.to_row()
        assert row["value"] is None
        assert row["value_kind"] is None
        assert SymptomEntry.from_row(row).value is None

    def test_symptom_entry_decodes_structured_value(self):
        entry = SymptomEntry(id="e1", user_id="u1", symptom_id="s1", value={"present": True})
        decoded = SymptomEntry.from_row(entry.to_row())
        assert decoded.value == SymptomValue.structured({"present": True})

    def test_custom_symptom_local_row_uses_json_and_int(self):
        symptom = CustomSymptom(
            id="s1", user_id="u1", name="Pain", type=SymptomType.LOCATION,
            description="Where does it hurt?", options=["head", "chest"], is_active=False,
        )
        row = symptom.to_row()
        assert row["options"] == '["head", "chest"]'
        assert row["is_active"] == 0

    def test_custom_symptom_remote_row_uses_native_types(self):
        symptom = CustomSymptom(
            id="s1", user_id="u1", name="Pain", type=SymptomType.LOCATION,
            description="Where does it hurt?", options=["head", "chest"],
        )
        row = symptom.to_remote()
        assert row["options"] == ["head", "chest"]
        assert row["is_active"] is True

    @pytest.mark.parametrize("to_shape", ["to_row", "to_remote"])
    def test_custom_symptom_decodes_both_shapes(self, to_shape):
        symptom = CustomSymptom(
            id="s1", user_id="u1", name="Pain", type=SymptomType.LOCATION,
            description="Where does it hurt?", options=["head", "chest"], is_active=False,
        )
        decoded = CustomSymptom.from_row(getattr(symptom, to_shape)())
        assert decoded.options == ["head", "chest"]
        assert decoded.is_active is False
        assert decoded.type is SymptomType.LOCATION

    def test_session_entry_defaults(self):
        entry = SessionEntry(id="x1", user_id="u1")
        decoded = SessionEntry.from_row(entry.to_row())
        assert decoded.notes == ""
        assert decoded.bac_reading_id is None


class TestRecordKinds:
    """Test kind-to-type dispatch"""

    def test_every_kind_has_a_type(self):
        for kind in RecordKind:
            assert record_type_for(kind).KIND is kind

    def test_decode_row_dispatches_by_kind(self):
        reading = BACReading(id="r1", user_id="u1", value=1.0)
        decoded = decode_row(RecordKind.BAC_READING, reading.to_row())
        assert isinstance(decoded, BACReading)
        assert decoded.id == "r1"
