# =============================================================================
# tracker_core/errors/handlers.py
# Error Handling Utilities for the Tracker Core
# =============================================================================

from __future__ import annotations
import asyncio
import functools
import traceback
from typing import Optional, Callable, TypeVar, Any

from tracker_core.logging import get_logger
from .exceptions import TrackerError

logger = get_logger(__name__)

T = TypeVar("T")

GENERIC_RETRY_MESSAGE = "Something went wrong. Please try again."


def handle_error(
    error: Exception,
    log_error: bool = True,
    user_message: Optional[str] = None,
) -> str:
    """
    Centralized error handling function.

    Logs the error and returns the message the presentation layer should
    show to the user.

    Args:
        error: The exception to handle
        log_error: Whether to log the error
        user_message: Custom message to show user (uses error message if None)

    Returns:
        User-facing message
    """
    if isinstance(error, TrackerError):
        message = user_message or error.message
        code = error.code
        details = error.details
        recoverable = error.recoverable
    else:
        message = user_message or GENERIC_RETRY_MESSAGE
        code = "UNKNOWN"
        details = {"traceback": traceback.format_exc()}
        recoverable = True

    if log_error:
        logger.error(
            f"[{code}] {message}",
            extra={"details": details},
            exc_info=error,
        )

    if recoverable:
        return f"Error: {message}"
    return f"Critical Error: {message}. Please contact support."


def error_boundary(
    default_return: Any = None,
    log: bool = True,
):
    """
    Decorator to wrap best-effort functions with error handling.

    Works for both plain and coroutine functions.

    Args:
        default_return: Value to return if function fails
        log: Whether to log errors

    Usage:
        @error_boundary(default_return=[])
        async def load_remote_rows(...) -> List[dict]:
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., Optional[T]]:
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if log:
                        logger.error(f"Error in {func.__name__}: {e}", exc_info=True)
                    return default_return

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Optional[T]:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if log:
                    logger.error(f"Error in {func.__name__}: {e}", exc_info=True)
                return default_return

        return wrapper

    return decorator
