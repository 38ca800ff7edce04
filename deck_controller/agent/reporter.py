"""Agent state reporting via the hook scripts' state files.

The agent's hooks write JSON state files into the state directory:

- ``sessions/<pid>.json``: one file per running agent process
- ``state.json``: single-session fallback

The reporter watches that directory with watchfiles and feeds the newest
live report into ``CommandDispatcher.reconcile``. It only runs while at
least one lease is held, which the bindings take while a control is on
screen.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from datetime import datetime
from pathlib import Path

from watchfiles import Change, awatch

from deck_controller.dispatcher import CommandDispatcher
from deck_controller.exceptions import StateParseError, record_error
from deck_controller.models import ReportedState, parse_reported_state

logger = logging.getLogger(__name__)

SESSIONS_DIRNAME = "sessions"
STATE_FILENAME = "state.json"


def is_process_alive(pid: int) -> bool:
    """Check whether a process with ``pid`` exists."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError:
        return False
    return True


def find_state_file(state_dir: Path) -> Path | None:
    """Pick the report to trust.

    The most recently modified ``sessions/<pid>.json`` whose process is still
    alive wins; otherwise ``state.json`` if it exists.
    """
    sessions_dir = state_dir / SESSIONS_DIRNAME
    candidates: list[tuple[float, Path]] = []
    if sessions_dir.is_dir():
        for path in sessions_dir.glob("*.json"):
            if path.stem.isdigit() and not is_process_alive(int(path.stem)):
                continue
            try:
                candidates.append((path.stat().st_mtime, path))
            except OSError:
                continue
    if candidates:
        return max(candidates)[1]

    fallback = state_dir / STATE_FILENAME
    return fallback if fallback.exists() else None


def read_report(path: Path) -> ReportedState:
    """Read and parse one state file.

    Raises:
        StateParseError: If the file is not valid JSON or holds unknown values.
        OSError: If the file cannot be read.
    """
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise StateParseError(
                f"Invalid JSON in state file at line {e.lineno}",
                file_path=str(path),
                cause=e,
            ) from e
    return parse_reported_state(data, file_path=path)


class AgentStateReporter:
    """Lease-counted watcher that reconciles agent reports into the store."""

    def __init__(self, dispatcher: CommandDispatcher, state_dir: Path) -> None:
        self.dispatcher = dispatcher
        self.state_dir = state_dir
        self._leases = 0
        self._last_updated: dict[Path, datetime] = {}
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    @property
    def lease_count(self) -> int:
        return self._leases

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def acquire(self) -> None:
        """Take a lease; the first lease starts watching."""
        self._leases += 1
        if self._leases == 1:
            self._start()

    def release(self) -> None:
        """Return a lease; the last one stops watching."""
        if self._leases == 0:
            logger.warning("release() called without a matching acquire()")
            return
        self._leases -= 1
        if self._leases == 0:
            self._cancel()

    async def stop(self) -> None:
        """Drop all leases and wait for the watch loop to finish."""
        self._leases = 0
        task = self._cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _start(self) -> None:
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._watch_loop())
        logger.info("Watching agent state in %s", self.state_dir)

    def _cancel(self) -> asyncio.Task | None:
        task = self._task
        self._task = None
        self._stop_event.set()
        if task is not None and not task.done():
            task.cancel()
            logger.info("Stopped watching agent state")
        return task

    def refresh(self) -> bool:
        """Read the current report and reconcile it if it is newer.

        Returns:
            True if a report was committed.
        """
        path = find_state_file(self.state_dir)
        if path is None:
            logger.debug("No agent state file in %s", self.state_dir)
            return False

        try:
            report = read_report(path)
        except StateParseError as e:
            logger.warning("Ignoring agent state report: %s", e)
            record_error(e)
            return False
        except OSError as e:
            logger.warning("Failed to read %s: %s", path, e)
            record_error(e)
            return False

        if report.last_updated is not None:
            seen = self._last_updated.get(path)
            if seen is not None and report.last_updated <= seen:
                logger.debug("Dropping stale report from %s", path)
                return False
            self._last_updated[path] = report.last_updated

        self.dispatcher.reconcile(report.state)
        return True

    async def _watch_loop(self) -> None:
        """Reconcile once, then again on every state file change."""
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Cannot create state directory %s: %s", self.state_dir, e)
            record_error(e)
            return

        self.refresh()

        try:
            async for changes in awatch(
                self.state_dir,
                stop_event=self._stop_event,
                debounce=100,
                rust_timeout=1500,
            ):
                if any(
                    change_type in (Change.added, Change.modified)
                    and Path(change_path).suffix == ".json"
                    for change_type, change_path in changes
                ):
                    self.refresh()
        except asyncio.CancelledError:
            pass
