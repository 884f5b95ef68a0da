# =============================================================================
# tracker_core/services/entry_service.py
# Entry Service - turns user input into validated records
# =============================================================================
"""
EntryService - the only place records are built from raw user input.

Every method validates first and raises DataValidationError before the
store is touched; ids are fresh UUID4s and timestamps are UTC now.
Store failures (StorageError) propagate to the caller unchanged.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Any, List, Optional, Sequence, Union

from tracker_core.errors import DataValidationError
from tracker_core.models import (
    BACReading,
    BACUnit,
    CarbEntry,
    CustomSymptom,
    ReadingSource,
    SessionEntry,
    Severity,
    SymptomEntry,
    SymptomType,
    SymptomValue,
    new_record_id,
    utc_now_iso,
)
from tracker_core.services.base_service import BaseService
from tracker_core.services.validation import (
    optional_text,
    parse_bac_value,
    parse_carb_amount,
    parse_enum,
    parse_optional_enum,
    require_text,
)

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields"
NOT_AUTHENTICATED_MESSAGE = "User not authenticated"
EMPTY_NOTES_MESSAGE = "Please enter some notes or skip this question."

# Fields a caller may change on an existing custom symptom
EDITABLE_SYMPTOM_FIELDS = {"name", "type", "description", "options", "video_prompt", "is_active"}


def _clean_options(options: Optional[Sequence[str]]) -> Optional[List[str]]:
    if options is None:
        return None
    if isinstance(options, str):
        raise DataValidationError("Options must be a list of strings", field="options", expected="list[str]")
    cleaned = [str(option).strip() for option in options if str(option).strip()]
    return cleaned or None


class EntryService(BaseService):
    """
    Records BAC readings, symptom answers, carb intake, notes and
    custom symptom definitions.

    Usage:
        service = EntryService(store)
        reading = await service.record_bac_reading("user-1", "42.5")
        symptom = await service.create_custom_symptom(
            "user-1", "Headache", "boolean", "Do you have a headache?"
        )
    """

    def _user(self, user_id: Optional[str]) -> str:
        return require_text(user_id, "user_id", NOT_AUTHENTICATED_MESSAGE)

    # =========================================================================
    # ENTRIES
    # =========================================================================

    async def record_bac_reading(
        self,
        user_id: str,
        value: Union[float, str],
        unit: Union[BACUnit, str] = BACUnit.MG_DL,
        source: Union[ReadingSource, str] = ReadingSource.MANUAL,
        device_id: Optional[str] = None,
    ) -> BACReading:
        """Store a BAC reading in the unit it was entered in."""
        reading = BACReading(
            id=new_record_id(),
            user_id=self._user(user_id),
            value=parse_bac_value(value),
            unit=parse_enum(BACUnit, unit, "unit"),
            timestamp=utc_now_iso(),
            source=parse_enum(ReadingSource, source, "source"),
            device_id=optional_text(device_id),
        )
        await self.store.save_bac_reading(reading)
        self.logger.info(f"Recorded BAC reading {reading.id}")
        return reading

    async def record_symptom_response(
        self,
        user_id: str,
        symptom_id: str,
        value: Any = None,
        severity: Union[Severity, str, None] = None,
        location: Optional[str] = None,
        video_url: Optional[str] = None,
    ) -> SymptomEntry:
        """
        Store one answer to a custom symptom question.

        ``value`` may be a number, text, or anything JSON-serializable
        (booleans and dicts are stored as structured values).
        """
        entry = SymptomEntry(
            id=new_record_id(),
            user_id=self._user(user_id),
            symptom_id=require_text(symptom_id, "symptom_id", REQUIRED_FIELDS_MESSAGE),
            value=SymptomValue.from_python(value),
            severity=parse_optional_enum(Severity, severity, "severity"),
            location=optional_text(location),
            video_url=optional_text(video_url),
            timestamp=utc_now_iso(),
        )
        await self.store.save_symptom_entry(entry)
        return entry

    async def record_note(self, user_id: str, symptom_id: str, text: str) -> SymptomEntry:
        """Answer a ``notes`` question; blank notes are rejected."""
        notes = require_text(text, "value", EMPTY_NOTES_MESSAGE)
        return await self.record_symptom_response(user_id, symptom_id, value=SymptomValue.text(notes))

    async def record_carb_intake(
        self,
        user_id: str,
        amount: Union[float, str],
        description: Optional[str] = None,
    ) -> CarbEntry:
        entry = CarbEntry(
            id=new_record_id(),
            user_id=self._user(user_id),
            amount=parse_carb_amount(amount),
            timestamp=utc_now_iso(),
            description=optional_text(description),
        )
        await self.store.save_carb_entry(entry)
        return entry

    async def record_session(
        self,
        user_id: str,
        notes: str = "",
        bac_reading_id: Optional[str] = None,
    ) -> SessionEntry:
        entry = SessionEntry(
            id=new_record_id(),
            user_id=self._user(user_id),
            notes=(notes or "").strip(),
            bac_reading_id=optional_text(bac_reading_id),
            timestamp=utc_now_iso(),
        )
        await self.store.save_session_entry(entry)
        return entry

    # =========================================================================
    # CUSTOM SYMPTOMS
    # =========================================================================

    async def create_custom_symptom(
        self,
        user_id: str,
        name: str,
        symptom_type: Union[SymptomType, str],
        description: str,
        options: Optional[Sequence[str]] = None,
        video_prompt: Optional[str] = None,
    ) -> CustomSymptom:
        """Create an active custom symptom; name and description are required."""
        now = utc_now_iso()
        symptom = CustomSymptom(
            id=new_record_id(),
            user_id=self._user(user_id),
            name=require_text(name, "name", REQUIRED_FIELDS_MESSAGE),
            type=parse_enum(SymptomType, symptom_type, "type"),
            description=require_text(description, "description", REQUIRED_FIELDS_MESSAGE),
            options=_clean_options(options),
            video_prompt=optional_text(video_prompt),
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        await self.store.save_custom_symptom(symptom)
        self.logger.info(f"Created custom symptom '{symptom.name}' ({symptom.id})")
        return symptom

    async def update_custom_symptom(self, symptom: CustomSymptom, **changes: Any) -> CustomSymptom:
        """
        Replace a custom symptom with edited fields and a fresh updated_at.

        Args:
            symptom: Current version
            **changes: Any of name, type, description, options, video_prompt, is_active

        Returns:
            The stored replacement
        """
        unknown = set(changes) - EDITABLE_SYMPTOM_FIELDS
        if unknown:
            raise DataValidationError(
                f"Cannot change fields: {sorted(unknown)}",
                field=", ".join(sorted(unknown)),
                expected=", ".join(sorted(EDITABLE_SYMPTOM_FIELDS)),
            )

        if "name" in changes:
            changes["name"] = require_text(changes["name"], "name", REQUIRED_FIELDS_MESSAGE)
        if "description" in changes:
            changes["description"] = require_text(
                changes["description"], "description", REQUIRED_FIELDS_MESSAGE
            )
        if "type" in changes:
            changes["type"] = parse_enum(SymptomType, changes["type"], "type")
        if "options" in changes:
            changes["options"] = _clean_options(changes["options"])
        if "video_prompt" in changes:
            changes["video_prompt"] = optional_text(changes["video_prompt"])
        if "is_active" in changes:
            changes["is_active"] = bool(changes["is_active"])

        updated = replace(symptom, updated_at=utc_now_iso(), synced=False, **changes)
        await self.store.save_custom_symptom(updated)
        return updated

    async def set_custom_symptom_active(self, symptom: CustomSymptom, active: bool) -> CustomSymptom:
        """Show or hide a symptom in the assessment flow; answers are kept."""
        return await self.update_custom_symptom(symptom, is_active=active)

    async def delete_custom_symptom(self, symptom_id: str) -> bool:
        symptom_id = require_text(symptom_id, "symptom_id", REQUIRED_FIELDS_MESSAGE)
        deleted = await self.store.delete_custom_symptom(symptom_id)
        self.logger.info(f"Deleted custom symptom {symptom_id}")
        return deleted
