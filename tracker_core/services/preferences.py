# =============================================================================
# tracker_core/services/preferences.py
# User Preferences - one JSON blob on disk
# =============================================================================
"""
PreferencesStore - display and accessibility settings.

The whole blob is rewritten on every change. A missing or malformed file
never blocks startup; defaults are used instead.

File layout (local_data/app_settings.json)::

    {
      "bac_unit": "mg/dL",
      "speech_enabled": true,
      "high_contrast_mode": false,
      "text_size": "medium"
    }
"""

from __future__ import annotations
import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union
import logging

from tracker_core.errors import DataValidationError
from tracker_core.models import BACUnit

logger = logging.getLogger(__name__)

TEXT_SIZES = ("small", "medium", "large")


@dataclass(frozen=True)
class UserPreferences:
    bac_unit: str = BACUnit.MG_DL.value
    speech_enabled: bool = True
    high_contrast_mode: bool = False
    text_size: str = "medium"

    @property
    def unit(self) -> BACUnit:
        return BACUnit(self.bac_unit)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> UserPreferences:
        """Lenient parse: each bad or missing value falls back to its default."""
        defaults = cls()
        bac_unit = data.get("bac_unit", defaults.bac_unit)
        if bac_unit not in [unit.value for unit in BACUnit]:
            bac_unit = defaults.bac_unit
        text_size = data.get("text_size", defaults.text_size)
        if text_size not in TEXT_SIZES:
            text_size = defaults.text_size
        speech = data.get("speech_enabled", defaults.speech_enabled)
        contrast = data.get("high_contrast_mode", defaults.high_contrast_mode)
        return cls(
            bac_unit=bac_unit,
            speech_enabled=speech if isinstance(speech, bool) else defaults.speech_enabled,
            high_contrast_mode=contrast if isinstance(contrast, bool) else defaults.high_contrast_mode,
            text_size=text_size,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PreferencesStore:
    """
    Loads and saves UserPreferences as a JSON file.

    Usage:
        prefs_store = PreferencesStore("local_data/app_settings.json")
        prefs = prefs_store.load()
        prefs = prefs_store.update(bac_unit="mmol/L")
    """

    DEFAULT_PATH = Path("local_data") / "app_settings.json"

    def __init__(self, path: Optional[Union[Path, str]] = None):
        self.path = Path(path) if path else self.DEFAULT_PATH
        self._current: Optional[UserPreferences] = None

    @property
    def current(self) -> UserPreferences:
        if self._current is None:
            self._current = self.load()
        return self._current

    def load(self) -> UserPreferences:
        """Read preferences; defaults if the file is missing or malformed."""
        prefs = UserPreferences()
        if self.path.exists():
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    prefs = UserPreferences.from_dict(data)
                else:
                    logger.warning(f"Ignoring preferences file {self.path}: not a JSON object")
            # ValueError covers bad JSON and bad UTF-8
            except (ValueError, OSError) as e:
                logger.warning(f"Error loading preferences, using defaults: {e}")

        self._current = prefs
        return prefs

    def save(self, prefs: UserPreferences) -> None:
        """Rewrite the whole preferences blob."""
        self._current = prefs
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(prefs.to_dict(), f, indent=2)
        except IOError as e:
            logger.error(f"Error saving preferences: {e}")

    def update(self, **changes: Any) -> UserPreferences:
        """
        Change some preferences and persist all of them.

        Raises:
            DataValidationError: unknown key or invalid value
        """
        known = {f.name for f in fields(UserPreferences)}
        unknown = set(changes) - known
        if unknown:
            raise DataValidationError(
                f"Unknown preferences: {sorted(unknown)}",
                field=", ".join(sorted(unknown)),
            )

        if "bac_unit" in changes:
            unit = changes["bac_unit"]
            try:
                changes["bac_unit"] = unit.value if isinstance(unit, BACUnit) else BACUnit(unit).value
            except ValueError:
                raise DataValidationError(
                    f"Invalid BAC unit: {unit!r}",
                    field="bac_unit",
                    expected=" | ".join(u.value for u in BACUnit),
                )
        if "text_size" in changes and changes["text_size"] not in TEXT_SIZES:
            raise DataValidationError(
                f"Invalid text size: {changes['text_size']!r}",
                field="text_size",
                expected=" | ".join(TEXT_SIZES),
            )
        for key in ("speech_enabled", "high_contrast_mode"):
            if key in changes:
                changes[key] = bool(changes[key])

        prefs = replace(self.current, **changes)
        self.save(prefs)
        return prefs
