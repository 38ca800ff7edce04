"""Custom exception hierarchy for Deck Controller.

This module provides a structured exception hierarchy that enables:
- Consistent error handling across the application
- Rich error context for debugging
- Error categorization for different handling strategies
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class DeckControllerError(Exception):
    """Base exception for all Deck Controller errors.

    Attributes:
        message: Human-readable error description.
        context: Additional context for debugging.
        timestamp: When the error occurred.
    """

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now()
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message


# =============================================================================
# Transport Errors
# =============================================================================


class TransportError(DeckControllerError):
    """Base class for failures while driving the agent process."""

    pass


class AgentUnreachableError(TransportError):
    """Raised when the agent's terminal cannot be reached."""

    def __init__(
        self,
        message: str = "Agent is not reachable",
        *,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, context=context, cause=cause)


class CommandRejectedError(TransportError):
    """Raised when the agent side refuses a request."""

    def __init__(
        self,
        message: str = "Agent rejected the request",
        *,
        operation: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if operation:
            ctx["operation"] = operation
        super().__init__(message, context=ctx, cause=cause)


class SessionNotFoundError(TransportError):
    """Raised when the agent's terminal session cannot be found."""

    def __init__(
        self,
        session_id: str | None = None,
        *,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if session_id:
            ctx["session_id"] = session_id
        super().__init__("Agent session not found", context=ctx, cause=cause)


# =============================================================================
# State Errors
# =============================================================================


class StateError(DeckControllerError):
    """Base class for canonical state errors."""

    pass


class InvalidStateError(StateError):
    """Raised when an AgentState would violate its invariants.

    This is a programmer error and is never absorbed by the dispatcher
    or the broadcaster.
    """

    def __init__(
        self,
        message: str = "Invalid agent state",
        *,
        field: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message, context=ctx, cause=cause)


class StateParseError(StateError):
    """Raised when a state report from the agent cannot be parsed."""

    def __init__(
        self,
        message: str = "Failed to parse agent state",
        *,
        file_path: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if file_path:
            ctx["file_path"] = file_path
        super().__init__(message, context=ctx, cause=cause)


# =============================================================================
# Display Errors
# =============================================================================


class DisplayError(DeckControllerError):
    """Base class for surface display errors."""

    pass


class DisplayUpdateError(DisplayError):
    """Raised when a display update on a control fails or times out."""

    def __init__(
        self,
        message: str = "Display update failed",
        *,
        binding_id: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if binding_id:
            ctx["binding_id"] = binding_id
        super().__init__(message, context=ctx, cause=cause)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(DeckControllerError):
    """Base class for configuration-related errors."""

    pass


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded."""

    def __init__(
        self,
        message: str = "Failed to load configuration",
        *,
        file_path: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if file_path:
            ctx["file_path"] = file_path
        super().__init__(message, context=ctx, cause=cause)


class ConfigSaveError(ConfigError):
    """Raised when configuration cannot be saved."""

    def __init__(
        self,
        message: str = "Failed to save configuration",
        *,
        file_path: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if file_path:
            ctx["file_path"] = file_path
        super().__init__(message, context=ctx, cause=cause)


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails."""

    def __init__(
        self,
        message: str = "Configuration validation failed",
        *,
        field: str | None = None,
        value: Any = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or {}
        if field:
            ctx["field"] = field
        if value is not None:
            ctx["value"] = repr(value)
        super().__init__(message, context=ctx, cause=cause)


# =============================================================================
# Error Registry for Categorization
# =============================================================================


@dataclass
class ErrorStats:
    """Track error statistics for monitoring."""

    total_count: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    recent_errors: list[tuple[datetime, str, str]] = field(default_factory=list)
    max_recent: int = 100

    def record(self, error: Exception) -> None:
        """Record an error occurrence."""
        self.total_count += 1
        type_name = type(error).__name__
        self.by_type[type_name] = self.by_type.get(type_name, 0) + 1

        self.recent_errors.append((datetime.now(), type_name, str(error)[:200]))
        if len(self.recent_errors) > self.max_recent:
            self.recent_errors.pop(0)

    def reset(self) -> None:
        """Clear all recorded errors."""
        self.total_count = 0
        self.by_type.clear()
        self.recent_errors.clear()


# Global error stats tracker
error_stats = ErrorStats()


def record_error(error: Exception) -> None:
    """Record an error to global stats."""
    error_stats.record(error)
