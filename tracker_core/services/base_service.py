# =============================================================================
# tracker_core/services/base_service.py
# Base Service Class with Common Functionality
# =============================================================================

from __future__ import annotations
from abc import ABC

from tracker_core.logging import get_logger, LogContext
from tracker_core.offline import RecordStore


class BaseService(ABC):
    """
    Base class for services that work against the record store.

    Provides a per-class logger and timed operation logging.

    Usage:
        class MyService(BaseService):
            async def do_something(self):
                with self.log_operation("Doing something"):
                    return await self.store.get_bac_readings(user_id)
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self.logger = get_logger(self.__class__.__name__)

    def log_operation(self, operation: str) -> LogContext:
        """
        Create a logging context for an operation.

        Usage:
            with self.log_operation("Building report"):
                ...
        """
        return LogContext(self.logger, operation)
