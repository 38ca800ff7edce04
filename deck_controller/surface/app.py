"""Virtual Stream Deck as a Textual app.

Lays the configured keys out in a grid, binds each one to its binding
group, and shows the canonical agent state in a status bar.
"""

from __future__ import annotations

import logging

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Grid
from textual.widgets import Footer, Header, Static

from deck_controller.bindings import BindingGroup
from deck_controller.models import (
    MODE_COLORS,
    MODE_LABELS,
    MODEL_LABELS,
    AgentState,
)
from deck_controller.services import DeckServices
from deck_controller.surface.deck_key import DeckKey, KeyAction, ToggleableKeyAction

logger = logging.getLogger(__name__)

STATUS_BAR_ID = "status-bar"


class StateBar(Static):
    """One-line summary of the canonical agent state."""

    DEFAULT_CSS = """
    StateBar {
        height: 1;
        padding: 0 1;
    }
    """

    def __init__(self, state: AgentState, **kwargs) -> None:
        super().__init__(**kwargs)
        self.state = state

    def render(self) -> Text:
        state = self.state
        text = Text()
        text.append(
            f" {MODE_LABELS[state.permission_mode]} ",
            style=f"bold white on {MODE_COLORS[state.permission_mode]}",
        )
        text.append(f"  {MODEL_LABELS[state.current_model]}", style="bold")
        text.append(f"  {state.status.value}", style="dim")
        if not state.session_active:
            text.append("  (no session)", style="dim italic")
        return text

    def show_state(self, state: AgentState) -> None:
        self.state = state
        self.refresh()


class DeckApp(App):
    """Terminal stand-in for the hardware control surface."""

    TITLE = "Deck Controller"

    CSS = """
    #deck {
        grid-gutter: 1 2;
        padding: 1 2;
        height: auto;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("v", "toggle_visible", "Show/Hide keys"),
        Binding("enter", "press_focused", "Press", show=False),
    ] + [Binding(str(n), f"press_slot({n})", show=False) for n in range(1, 10)]

    def __init__(self, services: DeckServices) -> None:
        super().__init__()
        self.services = services
        self.keys: list[DeckKey] = []
        self._actions: dict[str, tuple[BindingGroup, KeyAction]] = {}
        self.keys_visible = False

    def compose(self) -> ComposeResult:
        yield Header()
        yield StateBar(self.services.store.get_state(), id=STATUS_BAR_ID)
        surface = self.services.config.surface
        with Grid(id="deck") as grid:
            grid.styles.grid_size_columns = surface.columns
            for slot, key_config in enumerate(surface.keys, start=1):
                key = DeckKey(f"key-{slot}", slot)
                group = self.services.binding_for(key_config)
                action_cls = ToggleableKeyAction if group.tracks_state else KeyAction
                self._actions[key.key_id] = (group, action_cls(key))
                self.keys.append(key)
                yield key
        yield Footer()

    async def on_mount(self) -> None:
        self.services.broadcaster.subscribe(STATUS_BAR_ID, self._on_state)
        await self.show_keys()

    async def on_unmount(self) -> None:
        self.services.broadcaster.unsubscribe(STATUS_BAR_ID)
        await self.services.shutdown()

    def _on_state(self, state: AgentState) -> None:
        self.query_one(StateBar).show_state(state)

    async def show_keys(self) -> None:
        """Make every key visible (will_appear on each binding)."""
        if self.keys_visible:
            return
        self.keys_visible = True
        for group, action in self._actions.values():
            await group.will_appear(action)

    async def hide_keys(self) -> None:
        """Take every key off screen (will_disappear on each binding)."""
        if not self.keys_visible:
            return
        self.keys_visible = False
        for group, action in self._actions.values():
            await group.will_disappear(action)

    async def action_toggle_visible(self) -> None:
        if self.keys_visible:
            await self.hide_keys()
        else:
            await self.show_keys()

    def action_press_slot(self, slot: int) -> None:
        if 1 <= slot <= len(self.keys):
            self.keys[slot - 1].press()

    def action_press_focused(self) -> None:
        if isinstance(self.focused, DeckKey):
            self.focused.press()

    async def on_deck_key_pressed(self, message: DeckKey.Pressed) -> None:
        if not self.keys_visible:
            return
        group, action = self._actions[message.key.key_id]
        self.run_worker(group.key_down(action), group=message.key.key_id)
