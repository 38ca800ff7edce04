"""Bindings between surface controls and the synchronization core."""

from deck_controller.bindings.actions import (
    MistakeLogBinding,
    ModeCycleBinding,
    ModeDisplayBinding,
    ModelDisplayBinding,
    PlanModeBinding,
    SignalBinding,
    SlashCommandBinding,
    SwitchModelBinding,
)
from deck_controller.bindings.base import BindingGroup, ControlHandle, ControlKind

__all__ = [
    "BindingGroup",
    "ControlHandle",
    "ControlKind",
    "MistakeLogBinding",
    "ModeCycleBinding",
    "ModeDisplayBinding",
    "ModelDisplayBinding",
    "PlanModeBinding",
    "SignalBinding",
    "SlashCommandBinding",
    "SwitchModelBinding",
]
