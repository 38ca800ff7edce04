"""Concrete binding groups, one per key type on the deck."""

from __future__ import annotations

from deck_controller.bindings import icons
from deck_controller.bindings.base import BindingGroup
from deck_controller.dispatcher import CommandDispatcher, DispatchResult
from deck_controller.models import (
    MODE_LABELS,
    MODEL_LABELS,
    PERMISSION_MODE_CYCLE,
    AgentModel,
    AgentSignal,
    AgentState,
)
from deck_controller.ports import LeaseProvider
from deck_controller.state.broadcaster import SubscriptionBroadcaster


# =============================================================================
# State-tracking keys
# =============================================================================


class ModeCycleBinding(BindingGroup):
    """Steps the permission mode through the full cycle."""

    name = "mode_cycle"

    def title_for(self, state: AgentState) -> str:
        return MODE_LABELS[state.permission_mode]

    def image_for(self, state: AgentState) -> str:
        return icons.svg_to_data_uri(icons.mode_cycle_svg(state.permission_mode))

    def state_index_for(self, state: AgentState) -> int:
        return PERMISSION_MODE_CYCLE.index(state.permission_mode)

    async def perform(self) -> DispatchResult:
        return await self.dispatcher.cycle_mode()


class PlanModeBinding(BindingGroup):
    """Toggles plan mode on and off."""

    name = "plan_mode"

    def title_for(self, state: AgentState) -> str:
        return MODE_LABELS[state.permission_mode]

    def image_for(self, state: AgentState) -> str:
        return icons.svg_to_data_uri(icons.mode_display_svg(state.permission_mode))

    def state_index_for(self, state: AgentState) -> int:
        return 1 if state.is_plan else 0

    async def perform(self) -> DispatchResult:
        return await self.dispatcher.toggle_permission_mode()


class SwitchModelBinding(BindingGroup):
    """Swaps between Sonnet and Opus."""

    name = "switch_model"

    def title_for(self, state: AgentState) -> str:
        return MODEL_LABELS[state.current_model]

    def image_for(self, state: AgentState) -> str:
        return icons.svg_to_data_uri(icons.model_svg(state.current_model))

    def state_index_for(self, state: AgentState) -> int:
        return 1 if state.current_model == AgentModel.OPUS else 0

    async def perform(self) -> DispatchResult:
        return await self.dispatcher.switch_model()


class ModeDisplayBinding(BindingGroup):
    """Read-only mode indicator. Pressing it cycles, like the original key."""

    name = "mode_display"

    def title_for(self, state: AgentState) -> str:
        return ""

    def image_for(self, state: AgentState) -> str:
        return icons.svg_to_data_uri(icons.mode_display_svg(state.permission_mode))

    def state_index_for(self, state: AgentState) -> int:
        return 1 if state.is_bypass else 0

    async def perform(self) -> DispatchResult:
        return await self.dispatcher.cycle_mode()


class ModelDisplayBinding(BindingGroup):
    """Read-only model indicator."""

    name = "model_display"

    def title_for(self, state: AgentState) -> str:
        return ""

    def image_for(self, state: AgentState) -> str:
        return icons.svg_to_data_uri(icons.model_svg(state.current_model))

    async def perform(self) -> DispatchResult:
        return await self.dispatcher.switch_model()


# =============================================================================
# Intent keys (no state shown)
# =============================================================================


class _StaticBinding(BindingGroup):
    """Key with a fixed label that does not follow agent state."""

    tracks_state = False
    default_title = ""
    color = icons.NEUTRAL

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        broadcaster: SubscriptionBroadcaster,
        *,
        title: str = "",
        lease: LeaseProvider | None = None,
        display_timeout: float = 2.0,
    ) -> None:
        super().__init__(
            dispatcher, broadcaster, lease=lease, display_timeout=display_timeout
        )
        self.title = title or self.default_title

    def title_for(self, state: AgentState) -> str:
        return self.title

    def image_for(self, state: AgentState) -> str:
        return icons.svg_to_data_uri(icons.label_svg(self.title, self.color))


class MistakeLogBinding(_StaticBinding):
    """Asks the agent to record what just went wrong."""

    name = "mistake_log"
    default_title = "Oops"
    color = "#EF4444"

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        broadcaster: SubscriptionBroadcaster,
        *,
        prompt: str,
        title: str = "",
        display_timeout: float = 2.0,
    ) -> None:
        super().__init__(dispatcher, broadcaster, title=title, display_timeout=display_timeout)
        self.prompt = prompt

    async def perform(self) -> DispatchResult:
        return await self.dispatcher.send_command(self.prompt)


class SlashCommandBinding(_StaticBinding):
    """Types a slash command (or any fixed text) into the agent."""

    name = "slash_command"
    color = "#3B82F6"

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        broadcaster: SubscriptionBroadcaster,
        *,
        command: str,
        title: str = "",
        display_timeout: float = 2.0,
    ) -> None:
        super().__init__(
            dispatcher,
            broadcaster,
            title=title or command.lstrip("/"),
            display_timeout=display_timeout,
        )
        self.command = command

    async def perform(self) -> DispatchResult:
        return await self.dispatcher.send_command(self.command)


SIGNAL_TITLES: dict[AgentSignal, str] = {
    AgentSignal.APPROVE: "Yes",
    AgentSignal.REJECT: "No",
    AgentSignal.INTERRUPT: "Stop",
    AgentSignal.THINKING: "Think",
}

SIGNAL_COLORS: dict[AgentSignal, str] = {
    AgentSignal.APPROVE: "#22C55E",
    AgentSignal.REJECT: "#EF4444",
    AgentSignal.INTERRUPT: "#F59E0B",
    AgentSignal.THINKING: "#8B5CF6",
}


class SignalBinding(_StaticBinding):
    """Approve, reject, interrupt or toggle thinking."""

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        broadcaster: SubscriptionBroadcaster,
        *,
        signal: AgentSignal,
        title: str = "",
        display_timeout: float = 2.0,
    ) -> None:
        self.signal = signal
        self.name = f"signal_{signal.value}"
        self.color = SIGNAL_COLORS[signal]
        super().__init__(
            dispatcher,
            broadcaster,
            title=title or SIGNAL_TITLES[signal],
            display_timeout=display_timeout,
        )

    async def perform(self) -> DispatchResult:
        return await self.dispatcher.send_signal(self.signal)
