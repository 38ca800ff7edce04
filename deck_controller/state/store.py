"""Canonical agent state store.

Holds the single authoritative AgentState for the process. Replacing the
snapshot and notifying listeners happen in one synchronous step, so no
caller can observe an intermediate state.
"""

from __future__ import annotations

import logging

from deck_controller.exceptions import InvalidStateError, record_error
from deck_controller.models import AgentState
from deck_controller.ports import StateCallback

logger = logging.getLogger(__name__)


class CanonicalStateStore:
    """Owner of the last-known agent state.

    Only the command dispatcher writes to the store. Readers take snapshots
    with ``get_state``; interested parties register a listener, which in
    practice is the subscription broadcaster.
    """

    def __init__(self, initial: AgentState | None = None) -> None:
        self._state = initial if initial is not None else AgentState.default()
        self._listeners: list[StateCallback] = []

    def get_state(self) -> AgentState:
        """Return the current snapshot."""
        return self._state

    def set_state(self, next_state: AgentState) -> None:
        """Replace the snapshot and notify listeners.

        Setting a value equal to the current one does nothing.

        Raises:
            InvalidStateError: If ``next_state`` is not an AgentState.
        """
        if not isinstance(next_state, AgentState):
            raise InvalidStateError(
                f"Expected AgentState, got {type(next_state).__name__}"
            )
        if next_state == self._state:
            return

        previous = self._state
        self._state = next_state
        logger.debug("Agent state %s -> %s", previous, next_state)

        for listener in list(self._listeners):
            try:
                listener(next_state)
            except Exception as e:
                logger.error("State listener %r failed: %s", listener, e)
                record_error(e)

    def add_listener(self, listener: StateCallback) -> None:
        """Register a listener; adding the same listener twice is a no-op."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: StateCallback) -> None:
        """Remove a listener; no-op if it is not registered."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
