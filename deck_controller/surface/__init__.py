"""Textual virtual deck."""

from deck_controller.surface.app import DeckApp, StateBar
from deck_controller.surface.deck_key import DeckKey, KeyAction, ToggleableKeyAction

__all__ = [
    "DeckApp",
    "DeckKey",
    "KeyAction",
    "StateBar",
    "ToggleableKeyAction",
]
