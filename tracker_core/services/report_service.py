# =============================================================================
# tracker_core/services/report_service.py
# Report Service - BAC trends and entry summaries (pandas)
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Sequence, Union

import pandas as pd

from tracker_core.errors import DataValidationError
from tracker_core.models import BACReading, BACUnit, convert_bac
from tracker_core.services.base_service import BaseService

TIME_RANGES = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_TIME_RANGE = "7d"

TREND_COLUMNS = ["date", "mean_bac", "readings"]


@dataclass
class ReportSummary:
    """Headline numbers for one user over one time range."""
    time_range: str
    total_entries: int
    average_bac: Optional[float]
    bac_unit: str
    active_symptoms: int
    synced_ratio: float


def _window_start(time_range: str, now: Optional[pd.Timestamp]) -> pd.Timestamp:
    if time_range not in TIME_RANGES:
        raise DataValidationError(
            f"Unknown time range '{time_range}'",
            field="time_range",
            expected=" | ".join(TIME_RANGES),
            actual=time_range,
        )
    now = now if now is not None else pd.Timestamp.now(tz="UTC")
    return now - TIME_RANGES[time_range]


def _timestamps(values: Sequence[str]) -> pd.Series:
    return pd.to_datetime(pd.Series(list(values), dtype="object"), utc=True, format="ISO8601", errors="coerce")


class ReportService(BaseService):
    """
    Builds report data from whatever the record store returns.

    Values are converted to the requested display unit; stored readings
    are never changed.

    Usage:
        reports = ReportService(store)
        trend = await reports.bac_trend("user-1", "7d", unit="mmol/L")
        summary = await reports.build_summary("user-1", "30d")
    """

    def readings_frame(
        self,
        readings: List[BACReading],
        unit: Union[BACUnit, str] = BACUnit.MG_DL,
    ) -> pd.DataFrame:
        """One row per reading with the value in the display unit."""
        unit = unit if isinstance(unit, BACUnit) else BACUnit(unit)
        df = pd.DataFrame(
            {
                "id": [r.id for r in readings],
                "timestamp": _timestamps([r.timestamp for r in readings]),
                "value": [convert_bac(r.value, r.unit, unit) for r in readings],
                "source": [r.source.value for r in readings],
                "synced": [r.synced for r in readings],
            }
        )
        df["value"] = df["value"].astype(float)
        return df.dropna(subset=["timestamp"]).sort_values("timestamp").reset_index(drop=True)

    async def _readings_in_range(
        self,
        user_id: str,
        time_range: str,
        unit: Union[BACUnit, str],
        now: Optional[pd.Timestamp],
    ) -> pd.DataFrame:
        start = _window_start(time_range, now)
        readings = await self.store.get_bac_readings(user_id, limit=None)
        df = self.readings_frame(readings, unit)
        return df[df["timestamp"] >= start].reset_index(drop=True)

    async def bac_trend(
        self,
        user_id: str,
        time_range: str = DEFAULT_TIME_RANGE,
        unit: Union[BACUnit, str] = BACUnit.MG_DL,
        now: Optional[pd.Timestamp] = None,
    ) -> pd.DataFrame:
        """
        Daily mean BAC over the time range.

        Returns:
            DataFrame with columns date, mean_bac, readings (oldest day
            first; days without readings are omitted)
        """
        df = await self._readings_in_range(user_id, time_range, unit, now)
        if df.empty:
            return pd.DataFrame(columns=TREND_COLUMNS)

        daily = (
            df.groupby(df["timestamp"].dt.floor("D"))["value"]
            .agg(["mean", "count"])
            .reset_index()
        )
        daily.columns = TREND_COLUMNS
        return daily

    async def build_summary(
        self,
        user_id: str,
        time_range: str = DEFAULT_TIME_RANGE,
        unit: Union[BACUnit, str] = BACUnit.MG_DL,
        now: Optional[pd.Timestamp] = None,
    ) -> ReportSummary:
        """Entry counts, average BAC and sync coverage for the time range."""
        unit = unit if isinstance(unit, BACUnit) else BACUnit(unit)
        start = _window_start(time_range, now)

        with self.log_operation(f"Building {time_range} summary"):
            readings = await self._readings_in_range(user_id, time_range, unit, now)
            symptom_entries = await self.store.get_symptom_entries(user_id, limit=None)
            carb_entries = await self.store.get_carb_entries(user_id, limit=None)
            active = await self.store.get_active_custom_symptoms(user_id)

            others = pd.DataFrame(
                {
                    "timestamp": _timestamps(
                        [e.timestamp for e in symptom_entries] + [e.timestamp for e in carb_entries]
                    ),
                    "synced": [e.synced for e in symptom_entries] + [e.synced for e in carb_entries],
                }
            )
            others = others[others["timestamp"] >= start]

            synced_flags = pd.concat(
                [readings["synced"], others["synced"]],
                ignore_index=True,
            ).astype(bool)
            total = int(len(synced_flags))

        return ReportSummary(
            time_range=time_range,
            total_entries=total,
            average_bac=float(readings["value"].mean()) if not readings.empty else None,
            bac_unit=unit.value,
            active_symptoms=len(active),
            synced_ratio=float(synced_flags.mean()) if total else 1.0,
        )
