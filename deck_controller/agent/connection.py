"""iTerm2 connection management.

Connection lifecycle for iTerm2's Python API, plus lookup of the session the
agent is running in.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

import iterm2

from deck_controller.exceptions import AgentUnreachableError, SessionNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ItermConnection:
    """Manages the iTerm2 connection used to reach the agent."""

    def __init__(self) -> None:
        self.connection: iterm2.Connection | None = None
        self.app: iterm2.App | None = None
        self._connected: bool = False

    async def connect(self) -> bool:
        """Establish connection to iTerm2.

        Returns:
            True if connection established successfully.

        Raises:
            AgentUnreachableError: If connection fails.
        """
        try:
            self.connection = await iterm2.Connection.async_create()
            self.app = await iterm2.async_get_app(self.connection)
            self._connected = True
            logger.info("Connected to iTerm2")
            return True
        except ConnectionRefusedError as e:
            self._connected = False
            raise AgentUnreachableError(
                "Connection refused. Is iTerm2 running with Python API enabled?",
                cause=e,
            ) from e
        except Exception as e:
            self._connected = False
            raise AgentUnreachableError(f"Failed to connect to iTerm2: {e}", cause=e) from e

    async def disconnect(self) -> None:
        """Forget the current connection."""
        if self.connection:
            self.connection = None
            self.app = None
            self._connected = False
            logger.info("Disconnected from iTerm2")

    async def reconnect(self) -> bool:
        """Drop and re-establish the connection.

        Raises:
            AgentUnreachableError: If reconnection fails.
        """
        await self.disconnect()
        return await self.connect()

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to iTerm2."""
        return self._connected and self.connection is not None

    async def ensure_connected(self) -> None:
        """Connect on first use."""
        if not self.is_connected:
            await self.connect()

    async def get_agent_session(self, session_id: str | None = None) -> iterm2.Session:
        """Return the session the agent runs in.

        Args:
            session_id: Explicit iTerm2 session id; None means the current
                session of the frontmost window.

        Raises:
            AgentUnreachableError: If iTerm2 cannot be reached.
            SessionNotFoundError: If no matching session exists.
        """
        await self.ensure_connected()
        app = self.app
        assert app is not None  # ensure_connected guarantees this

        if session_id:
            session = app.get_session_by_id(session_id)
        else:
            window = app.current_terminal_window
            tab = window.current_tab if window else None
            session = tab.current_session if tab else None

        if session is None:
            raise SessionNotFoundError(session_id)
        return session


async def with_reconnect(
    connection: ItermConnection,
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 2,
) -> T:
    """Execute operation, reconnecting once the connection looks dead.

    Args:
        connection: The iTerm2 connection to repair.
        operation: Async callable to execute.
        max_retries: Maximum number of attempts.

    Returns:
        The result of the operation.

    Raises:
        Exception: The last error once attempts are exhausted, or any
            non-connection error immediately.
    """
    for attempt in range(max_retries):
        try:
            return await operation()
        except (AgentUnreachableError, ConnectionError) as e:
            if attempt >= max_retries - 1:
                raise
            logger.warning("Connection error on attempt %d, reconnecting: %s", attempt + 1, e)
            try:
                await connection.reconnect()
            except AgentUnreachableError:
                pass

    raise RuntimeError("with_reconnect called with max_retries < 1")
