"""
driver-detect Exception Hierarchy

Provides clear, actionable error messages with structured information
for logging, user feedback, and programmatic error handling.
"""

from typing import Optional, Dict, Any


class DriverDetectError(Exception):
    """
    Base exception for all driver-detect errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context as key-value pairs
        cause: Original exception that caused this error
        recoverable: Whether the error is recoverable
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable

    def __str__(self):
        s = f"[{self.code}] {self.message}"
        if self.details:
            s += f" (details: {self.details})"
        if self.cause:
            s += f" caused by: {self.cause}"
        return s

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# Hardware-related errors
# =============================================================================

class HardwareError(DriverDetectError):
    """Base for hardware-related errors."""
    pass


class CatalogError(HardwareError):
    """Device enumeration backend could not be used."""
    def __init__(self, backend: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Cannot enumerate devices via {backend}: {reason}",
            code="CATALOG_UNAVAILABLE",
            details={"backend": backend, "reason": reason},
            cause=cause,
            recoverable=False,
        )


# =============================================================================
# Provider errors
# =============================================================================

class ProviderError(DriverDetectError):
    """Base for driver provider errors."""
    pass


class ProviderTableError(ProviderError):
    """Provider table could not be loaded."""
    def __init__(self, path: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Invalid provider table {path}: {reason}",
            code="PROVIDER_TABLE_INVALID",
            details={"path": path, "reason": reason},
            cause=cause,
        )


# =============================================================================
# Configuration errors
# =============================================================================

class ConfigError(DriverDetectError):
    """Base for configuration errors."""
    pass


class InvalidConfigError(ConfigError):
    """Invalid configuration."""
    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration: {field}={value}: {reason}",
            code="INVALID_CONFIG",
            details={"field": field, "value": str(value), "reason": reason},
        )
