"""Adapters that reach the coding agent: iTerm2 keystrokes out, state files in."""

from deck_controller.agent.connection import ItermConnection, with_reconnect
from deck_controller.agent.reporter import AgentStateReporter
from deck_controller.agent.transport import ItermAgentTransport

__all__ = [
    "AgentStateReporter",
    "ItermAgentTransport",
    "ItermConnection",
    "with_reconnect",
]
