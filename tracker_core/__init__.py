# =============================================================================
# tracker_core/__init__.py
# Offline-First BAC & Symptom Tracker Core
# =============================================================================

__version__ = "1.0.0"

from tracker_core.app import TrackerApp
from tracker_core.config import TrackerConfig, load_config

__all__ = ["TrackerApp", "TrackerConfig", "load_config", "__version__"]
