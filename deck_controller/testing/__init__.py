"""Testing utilities for Deck Controller.

This package provides mock implementations of the collaborator protocols so
the synchronization core can be tested without iTerm2 or a deck.
"""

from deck_controller.testing.mock_agent import (
    FailingTransport,
    MockAgentTransport,
    MockSurfaceAction,
    MockToggleableAction,
)

__all__ = [
    "FailingTransport",
    "MockAgentTransport",
    "MockSurfaceAction",
    "MockToggleableAction",
]
