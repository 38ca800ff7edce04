"""Fan-out of canonical state changes to visible controls."""

from __future__ import annotations

import logging

from deck_controller.exceptions import record_error
from deck_controller.models import AgentState
from deck_controller.ports import StateCallback
from deck_controller.state.store import CanonicalStateStore

logger = logging.getLogger(__name__)


class SubscriptionBroadcaster:
    """Registry of ``binding_id -> notify_fn`` fed by the state store.

    The broadcaster listens to the store only while it has subscribers: it
    attaches on the first ``subscribe`` and detaches when the last
    subscriber leaves, so an idle broadcaster leaves nothing behind on the
    store.

    Delivery rules:
    - recipients are the subscribers registered when the broadcast starts
    - a subscriber removed mid-broadcast is skipped
    - a failing callback is logged and does not stop delivery to the rest
    """

    def __init__(self, store: CanonicalStateStore) -> None:
        self._store = store
        self._subscribers: dict[str, StateCallback] = {}
        self._attached = False

    def subscribe(self, binding_id: str, notify_fn: StateCallback) -> None:
        """Register or replace the callback for ``binding_id``."""
        replaced = binding_id in self._subscribers
        self._subscribers[binding_id] = notify_fn
        logger.debug(
            "%s subscriber %s (%d total)",
            "Replaced" if replaced else "Added",
            binding_id,
            len(self._subscribers),
        )
        if not self._attached:
            self._store.add_listener(self.broadcast)
            self._attached = True
            logger.debug("Broadcaster attached to state store")

    def unsubscribe(self, binding_id: str) -> None:
        """Remove the callback for ``binding_id``; no-op if absent."""
        if self._subscribers.pop(binding_id, None) is None:
            return
        logger.debug("Removed subscriber %s (%d left)", binding_id, len(self._subscribers))
        if not self._subscribers and self._attached:
            self._store.remove_listener(self.broadcast)
            self._attached = False
            logger.debug("Broadcaster detached from state store")

    def broadcast(self, state: AgentState) -> None:
        """Deliver ``state`` to every current subscriber exactly once."""
        recipients = list(self._subscribers.items())
        for binding_id, notify_fn in recipients:
            if self._subscribers.get(binding_id) is not notify_fn:
                continue
            try:
                notify_fn(state)
            except Exception as e:
                logger.error("Subscriber %s failed: %s", binding_id, e)
                record_error(e)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def is_attached(self) -> bool:
        return self._attached

    def is_subscribed(self, binding_id: str) -> bool:
        return binding_id in self._subscribers
