"""Tests for the agent state reporter."""

import asyncio
import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from watchfiles import Change

from deck_controller.agent.reporter import (
    AgentStateReporter,
    find_state_file,
    is_process_alive,
    read_report,
)
from deck_controller.dispatcher import CommandDispatcher
from deck_controller.exceptions import StateParseError, error_stats
from deck_controller.models import AgentModel, AgentStatus, PermissionMode
from deck_controller.state import CanonicalStateStore
from deck_controller.testing import MockAgentTransport


def write_report(path: Path, mtime: float | None = None, **fields) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "permissionMode": "default",
        "currentModel": "sonnet",
        "status": "idle",
        "sessionActive": True,
    }
    data.update(fields)
    path.write_text(json.dumps(data))
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def make_reporter(state_dir: Path):
    store = CanonicalStateStore()
    dispatcher = CommandDispatcher(store, MockAgentTransport())
    return AgentStateReporter(dispatcher, state_dir), store


class TestFindStateFile:
    """Tests for choosing which report to trust."""

    def test_empty_directory(self, tmp_path):
        assert find_state_file(tmp_path) is None

    def test_missing_directory(self, tmp_path):
        assert find_state_file(tmp_path / "nope") is None

    def test_falls_back_to_state_json(self, tmp_path):
        fallback = write_report(tmp_path / "state.json")

        assert find_state_file(tmp_path) == fallback

    def test_live_session_beats_fallback(self, tmp_path):
        write_report(tmp_path / "state.json")
        session = write_report(tmp_path / "sessions" / f"{os.getpid()}.json")

        assert find_state_file(tmp_path) == session

    def test_newest_session_wins(self, tmp_path):
        older = write_report(tmp_path / "sessions" / "100.json", mtime=1000)
        newer = write_report(tmp_path / "sessions" / "200.json", mtime=2000)

        with patch("deck_controller.agent.reporter.is_process_alive", return_value=True):
            assert find_state_file(tmp_path) == newer
        assert older.exists()

    def test_dead_sessions_are_skipped(self, tmp_path):
        write_report(tmp_path / "sessions" / "100.json", mtime=2000)
        alive = write_report(tmp_path / "sessions" / "200.json", mtime=1000)

        with patch(
            "deck_controller.agent.reporter.is_process_alive",
            side_effect=lambda pid: pid == 200,
        ):
            assert find_state_file(tmp_path) == alive

    def test_current_process_is_alive(self):
        assert is_process_alive(os.getpid()) is True


class TestReadReport:
    """Tests for reading a single state file."""

    def test_reads_report(self, tmp_path):
        path = write_report(
            tmp_path / "state.json",
            permissionMode="plan",
            currentModel="opus",
            status="waiting",
        )

        report = read_report(path)

        assert report.state.permission_mode == PermissionMode.PLAN
        assert report.state.current_model == AgentModel.OPUS
        assert report.state.status == AgentStatus.WAITING
        assert report.source == path

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json")

        with pytest.raises(StateParseError) as exc_info:
            read_report(path)

        assert exc_info.value.context["file_path"] == str(path)


class TestRefresh:
    """Tests for reconciling reports into the store."""

    def test_refresh_commits_report(self, tmp_path):
        write_report(tmp_path / "state.json", permissionMode="acceptEdits")
        reporter, store = make_reporter(tmp_path)

        assert reporter.refresh() is True
        assert store.get_state().permission_mode == PermissionMode.ACCEPT_EDITS
        assert store.get_state().session_active is True

    def test_refresh_without_file(self, tmp_path):
        reporter, store = make_reporter(tmp_path)

        assert reporter.refresh() is False
        assert store.get_state().session_active is False

    def test_stale_report_is_dropped(self, tmp_path):
        path = tmp_path / "state.json"
        reporter, store = make_reporter(tmp_path)

        write_report(path, permissionMode="plan", lastUpdated="2026-01-05T10:00:05Z")
        assert reporter.refresh() is True

        write_report(path, permissionMode="acceptEdits", lastUpdated="2026-01-05T10:00:01Z")
        assert reporter.refresh() is False
        assert store.get_state().permission_mode == PermissionMode.PLAN

    def test_newer_report_wins(self, tmp_path):
        path = tmp_path / "state.json"
        reporter, store = make_reporter(tmp_path)

        write_report(path, permissionMode="plan", lastUpdated="2026-01-05T10:00:00Z")
        reporter.refresh()
        write_report(path, permissionMode="default", lastUpdated="2026-01-05T10:00:09Z")

        assert reporter.refresh() is True
        assert store.get_state().permission_mode == PermissionMode.DEFAULT

    def test_new_session_is_not_stale_against_old_one(self, tmp_path):
        reporter, store = make_reporter(tmp_path)
        write_report(
            tmp_path / "sessions" / "100.json",
            mtime=1000,
            permissionMode="plan",
            lastUpdated="2026-01-05T10:00:09Z",
        )

        with patch("deck_controller.agent.reporter.is_process_alive", return_value=True):
            assert reporter.refresh() is True

            # Newer file, older clock
            write_report(
                tmp_path / "sessions" / "200.json",
                mtime=2000,
                permissionMode="acceptEdits",
                lastUpdated="2026-01-05T10:00:01Z",
            )
            assert reporter.refresh() is True

        assert store.get_state().permission_mode == PermissionMode.ACCEPT_EDITS

    def test_unknown_mode_is_skipped(self, tmp_path):
        error_stats.reset()
        write_report(tmp_path / "state.json", permissionMode="dontAsk")
        reporter, store = make_reporter(tmp_path)

        assert reporter.refresh() is False
        assert store.get_state().permission_mode == PermissionMode.DEFAULT
        assert error_stats.by_type.get("StateParseError") == 1

    def test_reported_plan_is_remembered_for_toggle(self, tmp_path):
        reporter, store = make_reporter(tmp_path)
        write_report(tmp_path / "state.json", permissionMode="acceptEdits")
        reporter.refresh()
        write_report(tmp_path / "state.json", permissionMode="plan")
        reporter.refresh()

        assert reporter.dispatcher._mode_before_plan == PermissionMode.ACCEPT_EDITS


def fake_awatch(batches):
    """Build an awatch stand-in yielding ``batches`` then waiting for stop."""

    async def _awatch(path, *, stop_event, **kwargs):
        for batch in batches:
            yield batch
        await stop_event.wait()

    return _awatch


class TestLeases:
    """The watch loop runs only while a lease is held."""

    @pytest.mark.asyncio
    async def test_first_acquire_starts_and_last_release_stops(self, tmp_path):
        reporter, _ = make_reporter(tmp_path)

        with patch("deck_controller.agent.reporter.awatch", fake_awatch([])):
            reporter.acquire()
            reporter.acquire()
            await asyncio.sleep(0)
            assert reporter.is_running
            assert reporter.lease_count == 2

            reporter.release()
            assert reporter.is_running

            reporter.release()
            assert not reporter.is_running
            assert reporter.lease_count == 0

    @pytest.mark.asyncio
    async def test_unmatched_release_is_ignored(self, tmp_path):
        reporter, _ = make_reporter(tmp_path)

        reporter.release()

        assert reporter.lease_count == 0

    @pytest.mark.asyncio
    async def test_watch_loop_reconciles_on_change(self, tmp_path):
        reporter, store = make_reporter(tmp_path)
        write_report(tmp_path / "state.json", permissionMode="plan")
        changes = {(Change.modified, str(tmp_path / "state.json"))}

        with patch("deck_controller.agent.reporter.awatch", fake_awatch([changes])):
            with patch.object(reporter, "refresh", wraps=reporter.refresh) as refresh:
                reporter.acquire()
                for _ in range(5):
                    await asyncio.sleep(0)
                await reporter.stop()

        assert refresh.call_count == 2
        assert store.get_state().permission_mode == PermissionMode.PLAN

    @pytest.mark.asyncio
    async def test_non_json_changes_are_ignored(self, tmp_path):
        reporter, _ = make_reporter(tmp_path)
        changes = {(Change.modified, str(tmp_path / "notes.txt"))}

        with patch("deck_controller.agent.reporter.awatch", fake_awatch([changes])):
            with patch.object(reporter, "refresh", return_value=False) as refresh:
                reporter.acquire()
                for _ in range(5):
                    await asyncio.sleep(0)
                await reporter.stop()

        refresh.assert_called_once()

    @pytest.mark.asyncio
    async def test_watch_loop_creates_state_dir(self, tmp_path):
        state_dir = tmp_path / "deck"
        reporter, _ = make_reporter(state_dir)

        with patch("deck_controller.agent.reporter.awatch", fake_awatch([])):
            reporter.acquire()
            await asyncio.sleep(0)
            await reporter.stop()

        assert state_dir.is_dir()
