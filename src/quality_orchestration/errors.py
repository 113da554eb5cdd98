"""
Exception hierarchy and canonical error codes for the quality engine.

Per-plugin faults never escape the coordinator as exceptions; they are turned
into ``PluginError`` records carrying one of the codes below. Structural faults
on the engine's own inputs are raised.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

# code -> retryable (retry means re-invoking the whole call)
ERROR_CODES = {
    "INVALID_PLUGIN": False,
    "PLUGIN_FAILED": False,
    "PLUGIN_TIMEOUT": True,
    "INVALID_INPUT": False,
    "CONFIGURATION_ERROR": False,
    "INTERNAL_ERROR": False,
}


def is_retryable(code: str) -> bool:
    return bool(ERROR_CODES.get(code, False))


class QualityOrchestrationError(Exception):
    """Base exception for all engine errors."""

    default_code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "retryable": is_retryable(self.error_code),
        }

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}'"
            f")"
        )


class InvalidPluginError(QualityOrchestrationError):
    """Plugin identifier is unknown, or its shape is not acceptable for registration."""

    default_code = "INVALID_PLUGIN"


class PluginExecutionError(QualityOrchestrationError):
    """A plugin's detection step raised."""

    default_code = "PLUGIN_FAILED"

    def __init__(self, plugin_id: str, message: str):
        super().__init__(message, details={"plugin_id": plugin_id})
        self.plugin_id = plugin_id


class PluginTimeoutError(PluginExecutionError):
    """A plugin's detection step lost the race against its timer."""

    default_code = "PLUGIN_TIMEOUT"

    def __init__(self, plugin_id: str, timeout_ms: int):
        super().__init__(
            plugin_id,
            f"Plugin {plugin_id} exceeded timeout of {timeout_ms}ms",
        )
        self.timeout_ms = timeout_ms
        self.details["timeout_ms"] = timeout_ms


class InvalidInputError(QualityOrchestrationError):
    """Caller passed a structurally invalid value into aggregation or reporting."""

    default_code = "INVALID_INPUT"


class ConfigurationError(QualityOrchestrationError):
    """Exception raised for configuration errors."""

    default_code = "CONFIGURATION_ERROR"


__all__ = [
    "ERROR_CODES",
    "ConfigurationError",
    "InvalidInputError",
    "InvalidPluginError",
    "PluginExecutionError",
    "PluginTimeoutError",
    "QualityOrchestrationError",
    "is_retryable",
]
