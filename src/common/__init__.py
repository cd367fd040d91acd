"""
driver-detect Common Utilities

Shared exceptions, logging and decorators.
"""

from .exceptions import (
    DriverDetectError, HardwareError, CatalogError, ProviderError,
    ProviderTableError, ConfigError, InvalidConfigError,
)
from .decorators import handle_errors, return_if_fail
from .logging_config import setup_logging, parse_level

__all__ = [
    # Exceptions
    "DriverDetectError", "HardwareError", "CatalogError", "ProviderError",
    "ProviderTableError", "ConfigError", "InvalidConfigError",
    # Decorators
    "handle_errors", "return_if_fail",
    # Logging
    "setup_logging", "parse_level",
]
