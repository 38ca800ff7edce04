"""Collaborator interfaces for the synchronization core.

This module defines protocols (interfaces) for the two external collaborators:
the agent transport that drives the coding agent, and the surface SDK that
owns the physical controls. Adapters (the iTerm2 transport, the Textual
virtual deck, and the mocks in ``deck_controller.testing``) implement them.

The abstraction follows the "ports and adapters" (hexagonal) architecture
pattern.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from deck_controller.models import AgentModel, AgentSignal, AgentState, PermissionMode


StateCallback = Callable[["AgentState"], None]
"""Signature of store listeners and broadcaster subscribers."""


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class TransportResult:
    """Outcome of one call into the agent transport.

    Transports signal hard failures by raising ``TransportError``; a result
    with ``success=False`` is a soft refusal.
    """

    success: bool
    """Whether the agent accepted the request."""

    error: str | None = None
    """Error message if the request was refused."""

    permission_mode: PermissionMode | None = None
    """Resulting permission mode, if the transport knows it."""

    model: AgentModel | None = None
    """Resulting model, if the transport knows it."""

    @classmethod
    def ok(
        cls,
        *,
        permission_mode: PermissionMode | None = None,
        model: AgentModel | None = None,
    ) -> TransportResult:
        return cls(success=True, permission_mode=permission_mode, model=model)

    @classmethod
    def fail(cls, error: str) -> TransportResult:
        return cls(success=False, error=error)


# =============================================================================
# Agent Transport
# =============================================================================


@runtime_checkable
class AgentTransport(Protocol):
    """Protocol for driving the external agent process.

    Each mode/model request receives both the value the core currently
    believes in and the value it wants, so a keystroke-based transport can
    work out how many presses are needed.
    """

    @abstractmethod
    async def toggle_permission_mode(
        self,
        current: PermissionMode,
        target: PermissionMode,
    ) -> TransportResult:
        """Move the agent into or out of plan mode.

        Raises:
            TransportError: If the agent cannot be reached.
        """
        ...

    @abstractmethod
    async def switch_model(
        self,
        current: AgentModel,
        target: AgentModel,
    ) -> TransportResult:
        """Switch the agent to ``target``."""
        ...

    @abstractmethod
    async def cycle_mode(
        self,
        current: PermissionMode,
        target: PermissionMode,
    ) -> TransportResult:
        """Advance the agent's permission mode to ``target``."""
        ...

    @abstractmethod
    async def send_text(self, text: str) -> TransportResult:
        """Submit free-form text to the agent as if typed."""
        ...

    @abstractmethod
    async def send_signal(self, signal: AgentSignal) -> TransportResult:
        """Send a side-channel signal (approve, reject, interrupt, thinking)."""
        ...


# =============================================================================
# Surface SDK
# =============================================================================


@runtime_checkable
class SurfaceAction(Protocol):
    """Handle for one physical control instance on the surface.

    Display calls may fail or hang; callers wrap them with a timeout.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        """Stable identifier of the control instance."""
        ...

    @abstractmethod
    async def set_title(self, title: str) -> None:
        """Set the short text label."""
        ...

    @abstractmethod
    async def set_image(self, image: str) -> None:
        """Set the key image (data URI)."""
        ...

    @abstractmethod
    async def show_ok(self) -> None:
        """Flash the transient success indicator."""
        ...

    @abstractmethod
    async def show_alert(self) -> None:
        """Flash the transient failure indicator."""
        ...


@runtime_checkable
class ToggleableAction(SurfaceAction, Protocol):
    """A control that also has a binary/enumerated visual state."""

    @abstractmethod
    async def set_state(self, index: int) -> None:
        """Select the visual state by index."""
        ...


# =============================================================================
# Group Resources
# =============================================================================


@runtime_checkable
class LeaseProvider(Protocol):
    """Reference-counted resource shared by every control of a group."""

    @abstractmethod
    def acquire(self) -> None:
        """Take a lease; the first one starts the resource."""
        ...

    @abstractmethod
    def release(self) -> None:
        """Return a lease; the last one stops the resource."""
        ...
