"""Tests for the exception hierarchy and error statistics."""

import pytest

from deck_controller.exceptions import (
    AgentUnreachableError,
    CommandRejectedError,
    ConfigError,
    ConfigLoadError,
    ConfigSaveError,
    ConfigValidationError,
    DeckControllerError,
    DisplayError,
    DisplayUpdateError,
    ErrorStats,
    InvalidStateError,
    SessionNotFoundError,
    StateError,
    StateParseError,
    TransportError,
    error_stats,
    record_error,
)


class TestExceptionHierarchy:
    """Test base exception behavior."""

    def test_base_exception_properties(self):
        error = DeckControllerError("boom", context={"key": "value"})

        assert error.message == "boom"
        assert error.context == {"key": "value"}
        assert error.timestamp is not None
        assert error.cause is None

    def test_base_exception_with_cause(self):
        cause = ValueError("inner")
        error = DeckControllerError("outer", cause=cause)

        assert error.cause is cause

    def test_str_with_context(self):
        error = DeckControllerError("boom", context={"a": 1})

        assert str(error) == "boom (a=1)"

    def test_str_without_context(self):
        assert str(DeckControllerError("boom")) == "boom"


class TestTransportErrors:
    """Test errors raised while driving the agent."""

    def test_agent_unreachable_default_message(self):
        assert str(AgentUnreachableError()) == "Agent is not reachable"

    def test_command_rejected_with_operation(self):
        error = CommandRejectedError("nope", operation="cycle_mode")

        assert error.context["operation"] == "cycle_mode"
        assert "cycle_mode" in str(error)

    def test_session_not_found(self):
        error = SessionNotFoundError("w0t0p0")

        assert error.context["session_id"] == "w0t0p0"
        assert error.message == "Agent session not found"

    def test_session_not_found_without_id(self):
        assert SessionNotFoundError().context == {}


class TestStateAndDisplayErrors:
    """Test state and display errors."""

    def test_invalid_state_field(self):
        error = InvalidStateError("bad", field="permission_mode")

        assert error.context["field"] == "permission_mode"

    def test_state_parse_error_with_file(self):
        error = StateParseError(file_path="/tmp/state.json")

        assert error.context["file_path"] == "/tmp/state.json"

    def test_display_update_error_with_binding(self):
        error = DisplayUpdateError("set_title failed", binding_id="key-2")

        assert error.context["binding_id"] == "key-2"


class TestConfigErrors:
    """Test configuration errors."""

    def test_config_load_error_with_file(self):
        error = ConfigLoadError("Parse failed", file_path="/path/config.json")

        assert error.context["file_path"] == "/path/config.json"

    def test_config_validation_error_with_field(self):
        error = ConfigValidationError("Invalid value", field="surface.columns", value=0)

        assert error.context["field"] == "surface.columns"
        assert error.context["value"] == "0"

    def test_config_save_error(self):
        error = ConfigSaveError(file_path="/path/config.json")

        assert error.message == "Failed to save configuration"


class TestErrorStats:
    """Test error statistics tracking."""

    def test_initial_state(self):
        stats = ErrorStats()

        assert stats.total_count == 0
        assert stats.by_type == {}
        assert stats.recent_errors == []

    def test_records_error(self):
        stats = ErrorStats()
        stats.record(AgentUnreachableError())

        assert stats.total_count == 1
        assert stats.by_type["AgentUnreachableError"] == 1
        assert stats.recent_errors[0][1] == "AgentUnreachableError"

    def test_tracks_multiple_types(self):
        stats = ErrorStats()
        stats.record(AgentUnreachableError())
        stats.record(AgentUnreachableError())
        stats.record(DisplayUpdateError())

        assert stats.total_count == 3
        assert stats.by_type == {"AgentUnreachableError": 2, "DisplayUpdateError": 1}

    def test_recent_errors_limit(self):
        stats = ErrorStats(max_recent=5)
        for i in range(10):
            stats.record(DeckControllerError(f"error {i}"))

        assert stats.total_count == 10
        assert len(stats.recent_errors) == 5
        assert stats.recent_errors[0][2] == "error 5"

    def test_reset(self):
        stats = ErrorStats()
        stats.record(DeckControllerError("x"))
        stats.reset()

        assert stats.total_count == 0
        assert stats.by_type == {}

    def test_global_error_stats(self):
        error_stats.reset()
        record_error(StateParseError())

        assert error_stats.by_type["StateParseError"] == 1


class TestExceptionInheritance:
    """Test that every error can be caught by its category."""

    @pytest.mark.parametrize(
        "error_cls,category",
        [
            (AgentUnreachableError, TransportError),
            (CommandRejectedError, TransportError),
            (SessionNotFoundError, TransportError),
            (InvalidStateError, StateError),
            (StateParseError, StateError),
            (DisplayUpdateError, DisplayError),
            (ConfigLoadError, ConfigError),
            (ConfigSaveError, ConfigError),
            (ConfigValidationError, ConfigError),
        ],
    )
    def test_category(self, error_cls, category):
        assert issubclass(error_cls, category)
        assert issubclass(category, DeckControllerError)
