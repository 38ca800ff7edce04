"""Deck Controller.

Keeps the keys of a control surface in sync with a Claude Code agent running
in iTerm2, and turns key presses into mode, model and text commands.

Public API Usage:
    from deck_controller import DeckServices, load_config

    async def main():
        services = DeckServices.create(load_config())
        result = await services.dispatcher.cycle_mode()
        if result:
            print(result.state.permission_mode)

    # Data models for type hints
    from deck_controller import AgentState, PermissionMode, AgentModel
"""

__version__ = "0.1.0"

from deck_controller.config import load_config, save_config
from deck_controller.dispatcher import CommandDispatcher, DispatchResult
from deck_controller.exceptions import (
    DeckControllerError,
    InvalidStateError,
    StateParseError,
    TransportError,
)
from deck_controller.models import (
    PERMISSION_MODE_CYCLE,
    AgentMode,
    AgentModel,
    AgentSignal,
    AgentState,
    AgentStatus,
    DeckConfig,
    PermissionMode,
    parse_reported_state,
)
from deck_controller.ports import AgentTransport, SurfaceAction, ToggleableAction, TransportResult
from deck_controller.services import DeckServices
from deck_controller.state import CanonicalStateStore, SubscriptionBroadcaster

__all__ = [
    "AgentMode",
    "AgentModel",
    "AgentSignal",
    "AgentState",
    "AgentStatus",
    "AgentTransport",
    "CanonicalStateStore",
    "CommandDispatcher",
    "DeckConfig",
    "DeckControllerError",
    "DeckServices",
    "DispatchResult",
    "InvalidStateError",
    "PERMISSION_MODE_CYCLE",
    "PermissionMode",
    "StateParseError",
    "SubscriptionBroadcaster",
    "SurfaceAction",
    "ToggleableAction",
    "TransportError",
    "TransportResult",
    "load_config",
    "parse_reported_state",
    "save_config",
]
