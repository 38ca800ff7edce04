"""Agent transport over iTerm2 keystrokes.

Drives Claude Code by typing into its iTerm2 session:

- Shift+Tab (``ESC [ Z``) steps the permission mode in the agent's own order
- Option+P (``ESC p``) switches model
- Option+T (``ESC t``) toggles extended thinking
- ``y`` / ``n`` answer a permission prompt, Ctrl+C interrupts
- free text is typed and submitted with a carriage return
"""

from __future__ import annotations

import asyncio
import logging

from deck_controller.agent.connection import ItermConnection, with_reconnect
from deck_controller.exceptions import CommandRejectedError
from deck_controller.models import (
    AgentModel,
    AgentSettings,
    AgentSignal,
    PermissionMode,
)
from deck_controller.ports import TransportResult

logger = logging.getLogger(__name__)

SHIFT_TAB = "\x1b[Z"
OPTION_P = "\x1bp"
OPTION_T = "\x1bt"
CTRL_C = "\x03"
ENTER = "\r"

SIGNAL_KEYS: dict[AgentSignal, str] = {
    AgentSignal.APPROVE: "y",
    AgentSignal.REJECT: "n",
    AgentSignal.INTERRUPT: CTRL_C,
    AgentSignal.THINKING: OPTION_T,
}


def shift_tab_presses(
    order: list[PermissionMode],
    current: PermissionMode,
    target: PermissionMode,
) -> int:
    """Number of Shift+Tab presses that move the agent from current to target.

    Raises:
        CommandRejectedError: If either mode is not reachable by Shift+Tab.
    """
    if current not in order or target not in order:
        raise CommandRejectedError(
            f"Cannot reach {target.value} from {current.value} with Shift+Tab",
            operation="permission_mode",
        )
    return (order.index(target) - order.index(current)) % len(order)


class ItermAgentTransport:
    """AgentTransport implementation that types into the agent's terminal."""

    def __init__(
        self,
        settings: AgentSettings | None = None,
        connection: ItermConnection | None = None,
    ) -> None:
        self.settings = settings or AgentSettings()
        self.connection = connection or ItermConnection()

    async def _send(self, *chunks: str) -> None:
        async def send() -> None:
            session = await self.connection.get_agent_session(self.settings.session_id)
            for index, chunk in enumerate(chunks):
                if index and self.settings.keystroke_delay:
                    await asyncio.sleep(self.settings.keystroke_delay)
                await session.async_send_text(chunk)

        await with_reconnect(self.connection, send)

    async def _step_mode(
        self,
        current: PermissionMode,
        target: PermissionMode,
    ) -> TransportResult:
        presses = shift_tab_presses(self.settings.keystroke_order, current, target)
        if presses:
            await self._send(*([SHIFT_TAB] * presses))
        logger.debug("Sent %d Shift+Tab for %s -> %s", presses, current.value, target.value)
        return TransportResult.ok(permission_mode=target)

    async def toggle_permission_mode(
        self,
        current: PermissionMode,
        target: PermissionMode,
    ) -> TransportResult:
        return await self._step_mode(current, target)

    async def cycle_mode(
        self,
        current: PermissionMode,
        target: PermissionMode,
    ) -> TransportResult:
        return await self._step_mode(current, target)

    async def switch_model(
        self,
        current: AgentModel,
        target: AgentModel,
    ) -> TransportResult:
        await self._send(OPTION_P)
        logger.debug("Sent Option+P for %s -> %s", current.value, target.value)
        return TransportResult.ok(model=target)

    async def send_text(self, text: str) -> TransportResult:
        await self._send(text, ENTER)
        return TransportResult.ok()

    async def send_signal(self, signal: AgentSignal) -> TransportResult:
        await self._send(SIGNAL_KEYS[signal])
        return TransportResult.ok()
