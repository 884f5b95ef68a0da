# =============================================================================
# tracker_core/models/conversions.py
# BAC Unit Conversions (display only, storage never converts)
# =============================================================================

from __future__ import annotations
from typing import Union

from tracker_core.models.records import BACUnit

# Approximate factors for ethanol
MG_DL_TO_MMOL_L = 0.217
MMOL_L_TO_MG_DL = 4.608


def mg_dl_to_mmol_l(value: float) -> float:
    return value * MG_DL_TO_MMOL_L


def mmol_l_to_mg_dl(value: float) -> float:
    return value * MMOL_L_TO_MG_DL


def _unit(unit: Union[BACUnit, str]) -> BACUnit:
    return unit if isinstance(unit, BACUnit) else BACUnit(unit)


def convert_bac(
    value: float,
    from_unit: Union[BACUnit, str],
    to_unit: Union[BACUnit, str],
) -> float:
    """
    Convert a BAC value between mg/dL and mmol/L.

    Args:
        value: Reading value in ``from_unit``
        from_unit: Unit the value was recorded in
        to_unit: Unit to display

    Returns:
        Value expressed in ``to_unit``
    """
    source, target = _unit(from_unit), _unit(to_unit)
    if source is target:
        return value
    if source is BACUnit.MG_DL:
        return mg_dl_to_mmol_l(value)
    return mmol_l_to_mg_dl(value)


def format_bac_value(value: float, unit: Union[BACUnit, str]) -> str:
    """Format for display: 2 decimals for mg/dL, 3 for mmol/L."""
    unit = _unit(unit)
    if unit is BACUnit.MG_DL:
        return f"{value:.2f} mg/dL"
    return f"{value:.3f} mmol/L"
