"""Binding lifecycle: one adapter per control type.

A BindingGroup owns every visible control of one type. It renders the
canonical state onto each control, subscribes the control to the
broadcaster while it is visible, and turns key presses into exactly one
dispatcher operation.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, cast

from deck_controller.dispatcher import CommandDispatcher, DispatchResult
from deck_controller.exceptions import DisplayUpdateError, record_error
from deck_controller.logging_config import log_exception
from deck_controller.models import AgentState
from deck_controller.ports import LeaseProvider, SurfaceAction, ToggleableAction
from deck_controller.state.broadcaster import SubscriptionBroadcaster

logger = logging.getLogger(__name__)

DEFAULT_DISPLAY_TIMEOUT = 2.0


class ControlKind(Enum):
    """Display capabilities of a control, resolved once when it appears."""

    TOGGLEABLE = "toggleable"  # Title, image and a visual state index
    TITLED_ONLY = "titled_only"  # Title and image


@dataclass
class ControlHandle:
    """A visible control plus its per-control render bookkeeping."""

    action: SurfaceAction
    kind: ControlKind
    pending: AgentState | None = None
    render_task: asyncio.Task | None = field(default=None, repr=False)

    @classmethod
    def for_action(cls, action: SurfaceAction) -> ControlHandle:
        kind = (
            ControlKind.TOGGLEABLE
            if isinstance(action, ToggleableAction)
            else ControlKind.TITLED_ONLY
        )
        return cls(action=action, kind=kind)

    @property
    def id(self) -> str:
        return self.action.id


class BindingGroup:
    """Lifecycle manager for every visible control of one type.

    Subclasses implement ``perform`` (the single dispatcher operation a key
    press triggers) and the ``title_for`` / ``image_for`` /
    ``state_index_for`` display mapping. Keys that show no state return
    None from the mapping methods and set ``tracks_state = False``.
    """

    name = "binding"
    tracks_state = True

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        broadcaster: SubscriptionBroadcaster,
        *,
        lease: LeaseProvider | None = None,
        display_timeout: float = DEFAULT_DISPLAY_TIMEOUT,
    ) -> None:
        self.dispatcher = dispatcher
        self.broadcaster = broadcaster
        self.lease = lease
        self.display_timeout = display_timeout
        self._handles: dict[str, ControlHandle] = {}
        self._holds_lease = False

    # =========================================================================
    # Display mapping
    # =========================================================================

    def title_for(self, state: AgentState) -> str | None:
        return None

    def image_for(self, state: AgentState) -> str | None:
        return None

    def state_index_for(self, state: AgentState) -> int | None:
        return None

    async def perform(self) -> DispatchResult:
        raise NotImplementedError

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def visible_count(self) -> int:
        return len(self._handles)

    def handle(self, binding_id: str) -> ControlHandle | None:
        return self._handles.get(binding_id)

    async def will_appear(self, action: SurfaceAction) -> None:
        """Render the current snapshot, then subscribe the control."""
        handle = ControlHandle.for_action(action)
        self._handles[handle.id] = handle
        logger.debug("%s: %s appeared as %s", self.name, handle.id, handle.kind.value)

        if not self.tracks_state:
            await self.render(handle, self.dispatcher.store.get_state())
            return

        if not self._holds_lease and self.lease is not None:
            self.lease.acquire()
            self._holds_lease = True

        snapshot = self.dispatcher.store.get_state()
        await self.render(handle, snapshot)

        if self._handles.get(handle.id) is not handle:
            # Disappeared (or was replaced) while the first render was running
            return

        self.broadcaster.subscribe(handle.id, lambda state: self._on_state(handle, state))

        current = self.dispatcher.store.get_state()
        if current != snapshot:
            self._on_state(handle, current)

    async def will_disappear(self, action: SurfaceAction) -> None:
        """Unsubscribe the control; the last one out releases the lease."""
        handle = self._handles.pop(action.id, None)
        if handle is None:
            return
        self.broadcaster.unsubscribe(action.id)
        handle.pending = None
        logger.debug("%s: %s disappeared", self.name, action.id)

        if not self._handles:
            self._release_lease()

    def detach_all(self) -> None:
        """Unsubscribe every control and release group resources."""
        for binding_id, handle in list(self._handles.items()):
            self.broadcaster.unsubscribe(binding_id)
            handle.pending = None
            if handle.render_task is not None and not handle.render_task.done():
                handle.render_task.cancel()
        self._handles.clear()
        self._release_lease()

    def _release_lease(self) -> None:
        if self._holds_lease and self.lease is not None:
            self.lease.release()
        self._holds_lease = False

    async def key_down(self, action: SurfaceAction) -> DispatchResult | None:
        """Run this group's dispatcher operation and acknowledge on the key."""
        handle = self._handles.get(action.id) or ControlHandle.for_action(action)
        try:
            result = await self.perform()
        except Exception as e:
            log_exception(logger, e, f"{self.name}: key press on {action.id} failed")
            record_error(e)
            await self._display(handle, "show_alert", handle.action.show_alert)
            return None

        if result:
            await self._display(handle, "show_ok", handle.action.show_ok)
        else:
            logger.warning("%s: %s failed (%s): %s", self.name, action.id, result.error_type, result.error)
            await self._display(handle, "show_alert", handle.action.show_alert)
        return result

    # =========================================================================
    # Rendering
    # =========================================================================

    def _on_state(self, handle: ControlHandle, state: AgentState) -> None:
        """Broadcaster callback: queue a render, coalescing bursts per control."""
        if self._handles.get(handle.id) is not handle:
            return
        handle.pending = state
        if handle.render_task is None or handle.render_task.done():
            handle.render_task = asyncio.create_task(self._drain(handle))

    async def _drain(self, handle: ControlHandle) -> None:
        while handle.pending is not None:
            state = handle.pending
            handle.pending = None
            await self.render(handle, state)

    async def settle(self) -> None:
        """Wait until every queued render has been pushed to its control."""
        tasks = [
            h.render_task
            for h in self._handles.values()
            if h.render_task is not None and not h.render_task.done()
        ]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def render(self, handle: ControlHandle, state: AgentState) -> None:
        """Push ``state`` onto one control. Never raises."""
        title = self.title_for(state)
        if title is not None:
            await self._display(handle, "set_title", lambda: handle.action.set_title(title))

        image = self.image_for(state)
        if image is not None:
            await self._display(handle, "set_image", lambda: handle.action.set_image(image))

        if handle.kind == ControlKind.TOGGLEABLE:
            index = self.state_index_for(state)
            if index is not None:
                action = cast(ToggleableAction, handle.action)
                await self._display(handle, "set_state", lambda: action.set_state(index))

    async def _display(
        self,
        handle: ControlHandle,
        call_name: str,
        call: Callable[[], Awaitable[None]],
    ) -> bool:
        """Run one display call with a timeout, containing any failure."""
        try:
            await asyncio.wait_for(call(), timeout=self.display_timeout)
            return True
        except asyncio.TimeoutError as e:
            error = DisplayUpdateError(
                f"{call_name} timed out after {self.display_timeout}s",
                binding_id=handle.id,
                cause=e,
            )
        except Exception as e:
            error = DisplayUpdateError(f"{call_name} failed: {e}", binding_id=handle.id, cause=e)
        logger.warning("%s: %s", self.name, error)
        record_error(error)
        return False
