# =============================================================================
# tracker_core/models/records.py
# Record Schemas for the Five Tracked Entity Kinds
# =============================================================================
"""
Record dataclasses and their row codecs.

Each record knows how to turn itself into:
- a local row (SQLite column types: JSON text for lists, 0/1 for flags)
- a remote payload (native JSON types, no ``synced`` column)

and how to rebuild itself from either shape via ``from_row``.
"""

from __future__ import annotations
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Type, Union


def new_record_id() -> str:
    """Random 128-bit identifier, safe for rapid successive saves."""
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# ENUMERATIONS
# =============================================================================

class RecordKind(Enum):
    """Entity kinds; the value is the table name locally and remotely."""
    BAC_READING = "bac_readings"
    SYMPTOM_ENTRY = "symptom_entries"
    CARB_ENTRY = "carb_entries"
    SESSION_ENTRY = "session_entries"
    CUSTOM_SYMPTOM = "custom_symptoms"

    @property
    def table(self) -> str:
        return self.value


class BACUnit(Enum):
    MG_DL = "mg/dL"
    MMOL_L = "mmol/L"


class ReadingSource(Enum):
    MANUAL = "manual"
    DEVICE = "device"


class Severity(Enum):
    SLIGHT = "slight"
    MODERATE = "moderate"
    SEVERE = "severe"


class SymptomType(Enum):
    BOOLEAN = "boolean"
    SEVERITY = "severity"
    LOCATION = "location"
    VIDEO_ASSESSMENT = "video_assessment"
    CARB_ENTRY = "carb_entry"
    NOTES = "notes"


class ValueKind(Enum):
    """Discriminant persisted next to a serialized symptom value."""
    NUMERIC = "numeric"
    TEXT = "text"
    STRUCTURED = "structured"


def _optional_enum(enum_cls: Type[Enum], raw: Any) -> Optional[Enum]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, enum_cls):
        return raw
    return enum_cls(raw)


def _enum(enum_cls: Type[Enum], raw: Any) -> Enum:
    return raw if isinstance(raw, enum_cls) else enum_cls(raw)


def _as_bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.lower() in ("1", "true")
    return bool(raw)


# =============================================================================
# SYMPTOM VALUE (tagged variant)
# =============================================================================

@dataclass(frozen=True)
class SymptomValue:
    """
    Answer to a symptom question.

    ``kind`` says how ``payload`` was produced, so the reader never has to
    guess from the serialized text whether "3" was a number or a word.
    """
    kind: ValueKind
    payload: Any

    @classmethod
    def numeric(cls, value: Union[int, float]) -> SymptomValue:
        return cls(ValueKind.NUMERIC, float(value))

    @classmethod
    def text(cls, value: str) -> SymptomValue:
        return cls(ValueKind.TEXT, value)

    @classmethod
    def structured(cls, value: Any) -> SymptomValue:
        return cls(ValueKind.STRUCTURED, value)

    @classmethod
    def from_python(cls, value: Any) -> Optional[SymptomValue]:
        """Wrap a plain Python value; bools and containers are structured."""
        if value is None or isinstance(value, SymptomValue):
            return value
        if isinstance(value, str):
            return cls.text(value)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return cls.numeric(value)
        return cls.structured(value)

    def serialize(self) -> str:
        if self.kind is ValueKind.NUMERIC:
            return repr(float(self.payload))
        if self.kind is ValueKind.TEXT:
            return self.payload
        return json.dumps(self.payload)

    @classmethod
    def deserialize(cls, kind: Optional[str], raw: Optional[str]) -> Optional[SymptomValue]:
        if raw is None:
            return None
        # Rows written without a value_kind are read as text
        value_kind = _enum(ValueKind, kind) if kind is not None else ValueKind.TEXT
        if value_kind is ValueKind.NUMERIC:
            return cls.numeric(float(raw))
        if value_kind is ValueKind.TEXT:
            return cls.text(raw)
        return cls.structured(json.loads(raw))


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class BACReading:
    """A single blood-alcohol reading; unit is kept exactly as entered."""
    id: str
    user_id: str
    value: float
    unit: BACUnit = BACUnit.MG_DL
    timestamp: str = field(default_factory=utc_now_iso)
    source: ReadingSource = ReadingSource.MANUAL
    device_id: Optional[str] = None
    synced: bool = False

    KIND: ClassVar[RecordKind] = RecordKind.BAC_READING
    ORDER_BY: ClassVar[str] = "timestamp"

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "value": float(self.value),
            "unit": self.unit.value,
            "timestamp": self.timestamp,
            "source": self.source.value,
            "device_id": self.device_id,
        }

    def to_remote(self) -> Dict[str, Any]:
        return self.to_row()

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> BACReading:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            value=float(row["value"]),
            unit=_enum(BACUnit, row["unit"]),
            timestamp=row["timestamp"],
            source=_enum(ReadingSource, row["source"]),
            device_id=row.get("device_id") or None,
            synced=_as_bool(row.get("synced", False)),
        )


@dataclass
class SymptomEntry:
    """One answer to a CustomSymptom question."""
    id: str
    user_id: str
    symptom_id: str
    value: Optional[SymptomValue] = None
    severity: Optional[Severity] = None
    location: Optional[str] = None
    video_url: Optional[str] = None
    timestamp: str = field(default_factory=utc_now_iso)
    synced: bool = False

    KIND: ClassVar[RecordKind] = RecordKind.SYMPTOM_ENTRY
    ORDER_BY: ClassVar[str] = "timestamp"

    def __post_init__(self) -> None:
        self.value = SymptomValue.from_python(self.value)

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "symptom_id": self.symptom_id,
            "value": self.value.serialize() if self.value else None,
            "value_kind": self.value.kind.value if self.value else None,
            "severity": self.severity.value if self.severity else None,
            "location": self.location,
            "video_url": self.video_url,
            "timestamp": self.timestamp,
        }

    def to_remote(self) -> Dict[str, Any]:
        return self.to_row()

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> SymptomEntry:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            symptom_id=row["symptom_id"],
            value=SymptomValue.deserialize(row.get("value_kind"), row.get("value")),
            severity=_optional_enum(Severity, row.get("severity")),
            location=row.get("location"),
            video_url=row.get("video_url"),
            timestamp=row["timestamp"],
            synced=_as_bool(row.get("synced", False)),
        )


@dataclass
class CarbEntry:
    id: str
    user_id: str
    amount: float
    timestamp: str = field(default_factory=utc_now_iso)
    description: Optional[str] = None
    synced: bool = False

    KIND: ClassVar[RecordKind] = RecordKind.CARB_ENTRY
    ORDER_BY: ClassVar[str] = "timestamp"

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "amount": float(self.amount),
            "timestamp": self.timestamp,
            "description": self.description,
        }

    def to_remote(self) -> Dict[str, Any]:
        return self.to_row()

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> CarbEntry:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            amount=float(row["amount"]),
            timestamp=row["timestamp"],
            description=row.get("description"),
            synced=_as_bool(row.get("synced", False)),
        )


@dataclass
class SessionEntry:
    """Flat session record; nothing assembles it from other entries yet."""
    id: str
    user_id: str
    notes: str = ""
    bac_reading_id: Optional[str] = None
    timestamp: str = field(default_factory=utc_now_iso)
    synced: bool = False

    KIND: ClassVar[RecordKind] = RecordKind.SESSION_ENTRY
    ORDER_BY: ClassVar[str] = "timestamp"

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "bac_reading_id": self.bac_reading_id,
            "notes": self.notes,
            "timestamp": self.timestamp,
        }

    def to_remote(self) -> Dict[str, Any]:
        return self.to_row()

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> SessionEntry:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            notes=row.get("notes") or "",
            bac_reading_id=row.get("bac_reading_id") or None,
            timestamp=row["timestamp"],
            synced=_as_bool(row.get("synced", False)),
        )


@dataclass
class CustomSymptom:
    """Question template that SymptomEntry rows answer."""
    id: str
    user_id: str
    name: str
    type: SymptomType
    description: str
    options: Optional[List[str]] = None
    video_prompt: Optional[str] = None
    is_active: bool = True
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)
    synced: bool = False

    KIND: ClassVar[RecordKind] = RecordKind.CUSTOM_SYMPTOM
    ORDER_BY: ClassVar[str] = "created_at"

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "type": self.type.value,
            "options": json.dumps(self.options) if self.options is not None else None,
            "video_prompt": self.video_prompt,
            "description": self.description,
            "is_active": 1 if self.is_active else 0,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_remote(self) -> Dict[str, Any]:
        row = self.to_row()
        row["options"] = list(self.options) if self.options is not None else None
        row["is_active"] = self.is_active
        return row

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> CustomSymptom:
        options = row.get("options")
        if isinstance(options, str):
            options = json.loads(options) if options else None
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            type=_enum(SymptomType, row["type"]),
            description=row.get("description") or "",
            options=options,
            video_prompt=row.get("video_prompt") or None,
            is_active=_as_bool(row.get("is_active", True)),
            created_at=row.get("created_at") or "",
            updated_at=row.get("updated_at") or "",
            synced=_as_bool(row.get("synced", False)),
        )


Record = Union[BACReading, SymptomEntry, CarbEntry, SessionEntry, CustomSymptom]

RECORD_TYPES: Dict[RecordKind, Type] = {
    RecordKind.BAC_READING: BACReading,
    RecordKind.SYMPTOM_ENTRY: SymptomEntry,
    RecordKind.CARB_ENTRY: CarbEntry,
    RecordKind.SESSION_ENTRY: SessionEntry,
    RecordKind.CUSTOM_SYMPTOM: CustomSymptom,
}


def record_type_for(kind: RecordKind) -> Type:
    return RECORD_TYPES[kind]


def decode_row(kind: RecordKind, row: Mapping[str, Any]) -> Record:
    """Rebuild a record of the given kind from a local or remote row."""
    return RECORD_TYPES[kind].from_row(row)
