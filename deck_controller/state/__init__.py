"""State management package.

The canonical store owns the agent state; the broadcaster fans every change
out to the controls currently on screen.
"""

from deck_controller.state.broadcaster import SubscriptionBroadcaster
from deck_controller.state.store import CanonicalStateStore

__all__ = [
    "CanonicalStateStore",
    "SubscriptionBroadcaster",
]
