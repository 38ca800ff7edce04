"""Command dispatcher: side effect first, then commit.

Every operation drives the agent through the transport and only folds the
outcome into the canonical store once the transport reports success. A
failed operation leaves the store exactly as it was.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from .exceptions import (
    CommandRejectedError,
    InvalidStateError,
    TransportError,
    record_error,
)
from .models import (
    AgentSignal,
    AgentState,
    PermissionMode,
    next_permission_mode,
    other_model,
)
from .ports import AgentTransport, TransportResult
from .state.store import CanonicalStateStore

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 5.0

# Values of DispatchResult.error_type that are not exception class names
ERROR_REJECTED = "rejected"
ERROR_TIMEOUT = "timeout"
ERROR_INVALID_INPUT = "invalid_input"


@dataclass
class DispatchResult:
    """Outcome of a dispatcher operation.

    Truthy exactly when the operation succeeded.
    """

    success: bool
    error: str | None = None
    error_type: str | None = None
    state: AgentState | None = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, state: AgentState) -> DispatchResult:
        return cls(success=True, state=state)

    @classmethod
    def fail(cls, error: str, error_type: str, state: AgentState) -> DispatchResult:
        return cls(success=False, error=error, error_type=error_type, state=state)


class CommandDispatcher:
    """Race-safe mutation operations over the canonical store.

    Operations are locked by the field they own. ``toggle_permission_mode``
    and ``cycle_mode`` share the ``permission_mode`` lock, so overlapping mode
    changes run one after another and each computes its target from the mode
    the previous one committed. ``switch_model`` holds the ``current_model``
    lock. Operations on different fields may interleave; each commit touches
    only its own field.
    """

    def __init__(
        self,
        store: CanonicalStateStore,
        transport: AgentTransport,
        *,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> None:
        self.store = store
        self.transport = transport
        self.command_timeout = command_timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self._mode_before_plan: PermissionMode | None = None

    def _lock(self, kind: str) -> asyncio.Lock:
        lock = self._locks.get(kind)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[kind] = lock
        return lock

    def is_busy(self, kind: str) -> bool:
        """Whether an operation holding the ``kind`` lock is in flight."""
        lock = self._locks.get(kind)
        return lock is not None and lock.locked()

    # =========================================================================
    # State-mutating operations
    # =========================================================================

    async def toggle_permission_mode(self) -> DispatchResult:
        """Flip between plan and the mode that was active before plan."""
        async with self._lock("permission_mode"):
            current = self.store.get_state().permission_mode
            if current == PermissionMode.PLAN:
                target = self._mode_before_plan or PermissionMode.DEFAULT
            else:
                target = PermissionMode.PLAN

            result, failure = await self._invoke(
                "toggle_permission_mode",
                lambda: self.transport.toggle_permission_mode(current, target),
            )
            if failure is not None:
                return failure
            return self._commit_permission_mode(
                "toggle_permission_mode", result.permission_mode or target
            )

    async def switch_model(self) -> DispatchResult:
        """Swap between sonnet and opus."""
        async with self._lock("current_model"):
            current = self.store.get_state().current_model
            target = other_model(current)

            result, failure = await self._invoke(
                "switch_model",
                lambda: self.transport.switch_model(current, target),
            )
            if failure is not None:
                return failure

            model = result.model or target
            state = self.store.get_state().with_changes(current_model=model)
            self.store.set_state(state)
            logger.info("switch_model committed %s", model.value)
            return DispatchResult.ok(self.store.get_state())

    async def cycle_mode(self) -> DispatchResult:
        """Advance the permission mode one step through the display cycle."""
        async with self._lock("permission_mode"):
            current = self.store.get_state().permission_mode
            target = next_permission_mode(current)

            result, failure = await self._invoke(
                "cycle_mode",
                lambda: self.transport.cycle_mode(current, target),
            )
            if failure is not None:
                return failure
            return self._commit_permission_mode(
                "cycle_mode", result.permission_mode or target
            )

    def reconcile(self, reported: AgentState) -> DispatchResult:
        """Commit a state the agent reported about itself.

        This is the only way agent-side changes reach the store.

        Raises:
            InvalidStateError: If ``reported`` is not an AgentState.
        """
        if not isinstance(reported, AgentState):
            raise InvalidStateError(
                f"Expected AgentState, got {type(reported).__name__}"
            )
        self._remember_mode(self.store.get_state().permission_mode, reported.permission_mode)
        self.store.set_state(reported)
        return DispatchResult.ok(self.store.get_state())

    # =========================================================================
    # Side-channel operations
    # =========================================================================

    async def send_command(self, text: str) -> DispatchResult:
        """Forward free-form text to the agent. Never changes state."""
        if not text or not text.strip():
            logger.warning("Refusing to send blank command")
            return DispatchResult.fail(
                "Command text is empty", ERROR_INVALID_INPUT, self.store.get_state()
            )

        async with self._lock("send_command"):
            _, failure = await self._invoke(
                "send_command",
                lambda: self.transport.send_text(text),
            )
            if failure is not None:
                return failure
            logger.info("Sent command (%d chars)", len(text))
            return DispatchResult.ok(self.store.get_state())

    async def approve(self) -> DispatchResult:
        return await self._signal(AgentSignal.APPROVE)

    async def reject(self) -> DispatchResult:
        return await self._signal(AgentSignal.REJECT)

    async def interrupt(self) -> DispatchResult:
        return await self._signal(AgentSignal.INTERRUPT)

    async def toggle_thinking(self) -> DispatchResult:
        return await self._signal(AgentSignal.THINKING)

    async def send_signal(self, signal: AgentSignal) -> DispatchResult:
        """Send any side-channel signal by value."""
        return await self._signal(signal)

    async def _signal(self, signal: AgentSignal) -> DispatchResult:
        async with self._lock("send_signal"):
            _, failure = await self._invoke(
                f"signal:{signal.value}",
                lambda: self.transport.send_signal(signal),
            )
            if failure is not None:
                return failure
            logger.info("Sent %s signal", signal.value)
            return DispatchResult.ok(self.store.get_state())

    # =========================================================================
    # Internals
    # =========================================================================

    def _remember_mode(self, previous: PermissionMode, new: PermissionMode) -> None:
        if new == PermissionMode.PLAN and previous != PermissionMode.PLAN:
            self._mode_before_plan = previous

    def _commit_permission_mode(self, operation: str, mode: PermissionMode) -> DispatchResult:
        state = self.store.get_state()
        self._remember_mode(state.permission_mode, mode)
        self.store.set_state(state.with_changes(permission_mode=mode))
        logger.info("%s committed %s", operation, mode.value)
        return DispatchResult.ok(self.store.get_state())

    async def _invoke(
        self,
        operation: str,
        call: Callable[[], Awaitable[TransportResult]],
    ) -> tuple[TransportResult | None, DispatchResult | None]:
        """Run one transport call, turning expected failures into results.

        Returns ``(result, None)`` on success and ``(None, failure)``
        otherwise. Anything other than a transport or OS error propagates.
        """
        try:
            result = await asyncio.wait_for(call(), timeout=self.command_timeout)
        except asyncio.TimeoutError as e:
            logger.warning("%s timed out after %.1fs", operation, self.command_timeout)
            record_error(e)
            return None, DispatchResult.fail(
                f"{operation} timed out", ERROR_TIMEOUT, self.store.get_state()
            )
        except (TransportError, OSError) as e:
            logger.warning("%s failed: %s", operation, e)
            record_error(e)
            return None, DispatchResult.fail(str(e), type(e).__name__, self.store.get_state())

        if not result.success:
            error = result.error or f"{operation} was rejected by the agent"
            logger.warning("%s rejected: %s", operation, error)
            record_error(CommandRejectedError(error, operation=operation))
            return None, DispatchResult.fail(error, ERROR_REJECTED, self.store.get_state())

        return result, None
