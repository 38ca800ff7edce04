"""Tests for public API exports from the deck_controller package.

Verifies that all expected symbols are importable from the top-level package.
"""


class TestPublicAPIExports:
    """Test that all public API symbols are exported correctly."""

    def test_version_info(self):
        from deck_controller import __version__

        assert __version__ == "0.1.0"

    def test_core_classes(self):
        from deck_controller import (
            CanonicalStateStore,
            CommandDispatcher,
            DeckServices,
            DispatchResult,
            SubscriptionBroadcaster,
        )

        assert hasattr(CanonicalStateStore, "get_state")
        assert hasattr(CanonicalStateStore, "set_state")
        assert hasattr(SubscriptionBroadcaster, "subscribe")
        assert hasattr(CommandDispatcher, "reconcile")
        assert hasattr(DeckServices, "create")
        assert hasattr(DispatchResult, "ok")
        assert hasattr(DispatchResult, "fail")

    def test_models(self):
        from deck_controller import (
            PERMISSION_MODE_CYCLE,
            AgentMode,
            AgentModel,
            AgentSignal,
            AgentState,
            AgentStatus,
            DeckConfig,
            PermissionMode,
            parse_reported_state,
        )

        assert AgentState.default().permission_mode == PermissionMode.DEFAULT
        assert len(PERMISSION_MODE_CYCLE) == 4
        assert AgentMode.BYPASS.value == "bypass"
        assert AgentModel.OPUS.value == "opus"
        assert AgentSignal.APPROVE.value == "approve"
        assert AgentStatus.IDLE.value == "idle"
        assert DeckConfig().surface.columns == 4
        assert callable(parse_reported_state)

    def test_ports_and_errors(self):
        from deck_controller import (
            AgentTransport,
            DeckControllerError,
            InvalidStateError,
            StateParseError,
            SurfaceAction,
            ToggleableAction,
            TransportError,
            TransportResult,
        )

        assert issubclass(TransportError, DeckControllerError)
        assert issubclass(InvalidStateError, DeckControllerError)
        assert issubclass(StateParseError, DeckControllerError)
        assert issubclass(ToggleableAction, SurfaceAction)
        assert hasattr(AgentTransport, "cycle_mode")
        assert TransportResult.ok().success

    def test_config_functions(self):
        from deck_controller import load_config, save_config

        assert callable(load_config)
        assert callable(save_config)
