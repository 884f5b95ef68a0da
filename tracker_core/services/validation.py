# =============================================================================
# tracker_core/services/validation.py
# Input Validation - runs before anything touches a store
# =============================================================================

from __future__ import annotations
import math
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from tracker_core.errors import DataValidationError

E = TypeVar("E", bound=Enum)


def parse_non_negative(value: Any, field: str, message: str) -> float:
    """
    Parse a number from user input (number or text).

    Raises:
        DataValidationError: value missing, not a number, NaN/inf, or negative
    """
    if isinstance(value, bool) or value is None:
        raise DataValidationError(message, field=field, expected="number >= 0", actual=repr(value))

    if isinstance(value, str):
        value = value.strip()

    try:
        number = float(value)
    except (TypeError, ValueError):
        raise DataValidationError(message, field=field, expected="number >= 0", actual=repr(value))

    if math.isnan(number) or math.isinf(number) or number < 0:
        raise DataValidationError(message, field=field, expected="number >= 0", actual=repr(value))
    return number


def parse_bac_value(value: Any) -> float:
    return parse_non_negative(value, "value", "Please enter a valid BAC value")


def parse_carb_amount(value: Any) -> float:
    return parse_non_negative(value, "amount", "Please enter a valid carb amount")


def require_text(value: Optional[str], field: str, message: str) -> str:
    """Return the stripped text, or raise if it is empty."""
    if value is None or not str(value).strip():
        raise DataValidationError(message, field=field, expected="non-empty text")
    return str(value).strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    """Stripped text, with blank treated as absent."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_enum(enum_cls: Type[E], value: Any, field: str) -> E:
    """Accept an enum member or its value."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise DataValidationError(
            f"Invalid {field}: {value!r}",
            field=field,
            expected=allowed,
            actual=repr(value),
        )


def parse_optional_enum(enum_cls: Type[E], value: Any, field: str) -> Optional[E]:
    if value is None or value == "":
        return None
    return parse_enum(enum_cls, value, field)
