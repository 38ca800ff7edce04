"""Service container for dependency injection.

DeckServices owns the one canonical store of the process and every service
built on top of it. It is constructed once at startup and handed to the
surface and the CLI; nothing reaches the store through module globals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from deck_controller.agent import AgentStateReporter, ItermAgentTransport
from deck_controller.bindings import (
    BindingGroup,
    MistakeLogBinding,
    ModeCycleBinding,
    ModeDisplayBinding,
    ModelDisplayBinding,
    PlanModeBinding,
    SignalBinding,
    SlashCommandBinding,
    SwitchModelBinding,
)
from deck_controller.dispatcher import CommandDispatcher
from deck_controller.models import AgentSignal, DeckConfig, KeyConfig, KeyKind
from deck_controller.ports import AgentTransport
from deck_controller.state import CanonicalStateStore, SubscriptionBroadcaster

logger = logging.getLogger(__name__)

_STATE_BINDINGS: dict[KeyKind, type[BindingGroup]] = {
    KeyKind.MODE_CYCLE: ModeCycleBinding,
    KeyKind.PLAN_MODE: PlanModeBinding,
    KeyKind.SWITCH_MODEL: SwitchModelBinding,
    KeyKind.MODE_DISPLAY: ModeDisplayBinding,
    KeyKind.MODEL_DISPLAY: ModelDisplayBinding,
}

_SIGNAL_KINDS: dict[KeyKind, AgentSignal] = {
    KeyKind.APPROVE: AgentSignal.APPROVE,
    KeyKind.REJECT: AgentSignal.REJECT,
    KeyKind.INTERRUPT: AgentSignal.INTERRUPT,
    KeyKind.THINKING: AgentSignal.THINKING,
}


@dataclass
class DeckServices:
    """Container for the synchronization core and its adapters.

    Attributes:
        config: Loaded application configuration.
        store: The canonical agent state.
        broadcaster: Fan-out of store changes to visible controls.
        dispatcher: Mutation operations over the store.
        reporter: Watches the agent's state files while a control is visible.
    """

    config: DeckConfig
    store: CanonicalStateStore
    broadcaster: SubscriptionBroadcaster
    dispatcher: CommandDispatcher
    reporter: AgentStateReporter
    _groups: dict[tuple[KeyKind, str, str], BindingGroup] = field(
        default_factory=dict, repr=False
    )

    @classmethod
    def create(
        cls,
        config: DeckConfig | None = None,
        transport: AgentTransport | None = None,
    ) -> DeckServices:
        """Wire up every service.

        Args:
            config: Configuration to use; defaults to DeckConfig().
            transport: Agent transport; defaults to the iTerm2 transport.
                Tests pass a MockAgentTransport here.
        """
        config = config or DeckConfig()
        store = CanonicalStateStore()
        broadcaster = SubscriptionBroadcaster(store)
        dispatcher = CommandDispatcher(
            store,
            transport or ItermAgentTransport(config.agent),
            command_timeout=config.agent.command_timeout,
        )
        reporter = AgentStateReporter(dispatcher, config.agent.state_path)
        logger.debug("Created deck services (state dir %s)", config.agent.state_path)
        return cls(
            config=config,
            store=store,
            broadcaster=broadcaster,
            dispatcher=dispatcher,
            reporter=reporter,
        )

    def binding_for(self, key: KeyConfig) -> BindingGroup:
        """Return the binding group that manages controls configured as ``key``.

        Keys of the same kind (and, for static keys, the same title and text)
        share one group.
        """
        group_key = (key.kind, key.title, key.text)
        group = self._groups.get(group_key)
        if group is None:
            group = self._build_group(key)
            self._groups[group_key] = group
        return group

    @property
    def groups(self) -> list[BindingGroup]:
        return list(self._groups.values())

    def _build_group(self, key: KeyConfig) -> BindingGroup:
        timeout = self.config.surface.display_timeout

        if key.kind in _STATE_BINDINGS:
            return _STATE_BINDINGS[key.kind](
                self.dispatcher,
                self.broadcaster,
                lease=self.reporter,
                display_timeout=timeout,
            )
        if key.kind in _SIGNAL_KINDS:
            return SignalBinding(
                self.dispatcher,
                self.broadcaster,
                signal=_SIGNAL_KINDS[key.kind],
                title=key.title,
                display_timeout=timeout,
            )
        if key.kind == KeyKind.MISTAKE_LOG:
            return MistakeLogBinding(
                self.dispatcher,
                self.broadcaster,
                prompt=key.text or self.config.prompts.mistake_log,
                title=key.title,
                display_timeout=timeout,
            )
        if key.kind == KeyKind.SLASH_COMMAND:
            return SlashCommandBinding(
                self.dispatcher,
                self.broadcaster,
                command=key.text,
                title=key.title,
                display_timeout=timeout,
            )
        raise ValueError(f"Unsupported key kind: {key.kind}")

    async def shutdown(self) -> None:
        """Detach every binding and stop watching the agent."""
        for group in self._groups.values():
            group.detach_all()
        await self.reporter.stop()
        logger.debug("Deck services shut down")
