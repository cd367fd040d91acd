"""
Error Handling Decorators

Provides decorators for consistent error handling across driver-detect.
"""

from __future__ import annotations

import functools
import logging
from typing import Type, Callable, Any, Optional

logger = logging.getLogger(__name__)


def handle_errors(
    *exception_types: Type[Exception],
    default: Any = None,
    log_level: int = logging.ERROR,
    reraise: bool = False,
    message: Optional[str] = None,
):
    """
    Decorator to handle exceptions consistently.

    Args:
        exception_types: Exception types to catch (default: Exception)
        default: Value to return on error
        log_level: Logging level for errors
        reraise: Whether to re-raise after logging
        message: Custom error message prefix

    Example:
        @handle_errors(OSError, ValueError, default=None)
        def parse_device(path):
            ...
    """
    if not exception_types:
        exception_types = (Exception,)

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except exception_types as e:
                prefix = message or f"{func.__name__} failed"
                logger.log(
                    log_level,
                    f"{prefix}: {e}",
                    exc_info=log_level >= logging.ERROR,
                )
                if reraise:
                    raise
                return default
        return wrapper
    return decorator


def return_if_fail(expected_type: type, default: Any = None):
    """
    Guard the first argument of a function against misuse.

    When the first argument is not an instance of ``expected_type`` the
    call is a programming error: it is logged and ``default`` is returned
    instead of running the function. ``default`` may be a zero-argument
    callable for mutable defaults such as ``list``.

    Example:
        @return_if_fail(GPUConfig, default=0)
        def gpu_config_count(config):
            return config.count
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(obj, *args, **kwargs):
            if not isinstance(obj, expected_type):
                logger.error(
                    f"{func.__name__}: assertion 'isinstance(obj, "
                    f"{expected_type.__name__})' failed (got {type(obj).__name__})"
                )
                return default() if callable(default) else default
            return func(obj, *args, **kwargs)
        return wrapper
    return decorator
