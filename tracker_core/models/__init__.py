# =============================================================================
# tracker_core/models/__init__.py
# Record Schemas and Unit Conversions
# =============================================================================

from tracker_core.models.records import (
    RecordKind,
    BACUnit,
    ReadingSource,
    Severity,
    SymptomType,
    ValueKind,
    SymptomValue,
    BACReading,
    SymptomEntry,
    CarbEntry,
    SessionEntry,
    CustomSymptom,
    Record,
    RECORD_TYPES,
    record_type_for,
    decode_row,
    new_record_id,
    utc_now_iso,
)

from tracker_core.models.conversions import (
    mg_dl_to_mmol_l,
    mmol_l_to_mg_dl,
    convert_bac,
    format_bac_value,
)

__all__ = [
    # Kinds and enums
    "RecordKind",
    "BACUnit",
    "ReadingSource",
    "Severity",
    "SymptomType",
    "ValueKind",
    # Records
    "SymptomValue",
    "BACReading",
    "SymptomEntry",
    "CarbEntry",
    "SessionEntry",
    "CustomSymptom",
    "Record",
    "RECORD_TYPES",
    "record_type_for",
    "decode_row",
    "new_record_id",
    "utc_now_iso",
    # Conversions
    "mg_dl_to_mmol_l",
    "mmol_l_to_mg_dl",
    "convert_bac",
    "format_bac_value",
]
