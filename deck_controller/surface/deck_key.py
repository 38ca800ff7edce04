"""Virtual deck key widget and its surface action adapters.

A DeckKey stands in for one physical button. KeyAction and
ToggleableKeyAction implement the SurfaceAction ports on top of it, so the
bindings drive the terminal deck exactly as they would drive hardware.
"""

from __future__ import annotations

from typing import Any

from rich.text import Text
from textual.message import Message
from textual.widgets import Static

FLASH_SECONDS = 0.6


class DeckKey(Static, can_focus=True):
    """One key of the virtual deck."""

    DEFAULT_CSS = """
    DeckKey {
        width: 1fr;
        height: 5;
        border: round $primary;
        content-align: center middle;
        text-align: center;
    }

    DeckKey:focus {
        border: double $accent;
    }

    DeckKey.flash-ok {
        border: round $success;
    }

    DeckKey.flash-alert {
        border: round $error;
    }
    """

    class Pressed(Message):
        """Posted when the key is activated."""

        def __init__(self, key: DeckKey) -> None:
            super().__init__()
            self.key = key

    def __init__(self, key_id: str, slot: int, **kwargs: Any) -> None:
        super().__init__(id=key_id, **kwargs)
        self.key_id = key_id
        self.slot = slot
        self.title_text = ""
        self.image = ""
        self.state_index: int | None = None
        self.last_flash: str | None = None

    def render(self) -> Text:
        text = Text(justify="center")
        text.append(f"{self.slot}\n", style="dim")
        text.append(self.title_text or " ", style="bold")
        if self.state_index is not None:
            text.append(f"\n{'●' if self.state_index else '○'} {self.state_index}", style="dim")
        return text

    def set_title_text(self, title: str) -> None:
        self.title_text = title
        self.refresh()

    def set_image(self, image: str) -> None:
        self.image = image

    def set_state_index(self, index: int) -> None:
        self.state_index = index
        self.refresh()

    def flash(self, kind: str) -> None:
        """Briefly recolor the border (``ok`` or ``alert``)."""
        self.last_flash = kind
        self.remove_class("flash-ok", "flash-alert")
        self.add_class(f"flash-{kind}")
        self.set_timer(FLASH_SECONDS, lambda: self.remove_class(f"flash-{kind}"))

    def on_click(self) -> None:
        self.post_message(self.Pressed(self))

    def press(self) -> None:
        self.post_message(self.Pressed(self))


class KeyAction:
    """SurfaceAction backed by a DeckKey (title and image only)."""

    def __init__(self, key: DeckKey) -> None:
        self.key = key

    @property
    def id(self) -> str:
        return self.key.key_id

    async def set_title(self, title: str) -> None:
        self.key.set_title_text(title)

    async def set_image(self, image: str) -> None:
        self.key.set_image(image)

    async def show_ok(self) -> None:
        self.key.flash("ok")

    async def show_alert(self) -> None:
        self.key.flash("alert")


class ToggleableKeyAction(KeyAction):
    """SurfaceAction with a visual state index."""

    async def set_state(self, index: int) -> None:
        self.key.set_state_index(index)
