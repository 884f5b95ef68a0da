# =============================================================================
# tracker_core/errors/__init__.py
# Centralized Error Handling for the Tracker Core
# =============================================================================

from .exceptions import (
    TrackerError,
    StorageError,
    SyncError,
    DataValidationError,
    ConfigurationError,
)

from .handlers import (
    handle_error,
    error_boundary,
)

__all__ = [
    # Exceptions
    "TrackerError",
    "StorageError",
    "SyncError",
    "DataValidationError",
    "ConfigurationError",
    # Handlers
    "handle_error",
    "error_boundary",
]
