# =============================================================================
# tracker_core/services/__init__.py
# Service Layer for the Tracker Core
# Separates input handling and reporting from the presentation layer
# =============================================================================
"""
Service Layer for the Tracker Core

Usage Example:
-------------
    from tracker_core.services import EntryService, ReportService

    entries = EntryService(store)
    reading = await entries.record_bac_reading("user-1", "35")

    reports = ReportService(store)
    summary = await reports.build_summary("user-1", "7d", unit="mmol/L")
"""

from .base_service import BaseService
from .entry_service import EntryService
from .preferences import PreferencesStore, UserPreferences
from .report_service import ReportService, ReportSummary, TIME_RANGES

__all__ = [
    "BaseService",
    "EntryService",
    "PreferencesStore",
    "UserPreferences",
    "ReportService",
    "ReportSummary",
    "TIME_RANGES",
]
