"""Tests for binding groups and their lifecycle."""

import asyncio
from unittest.mock import MagicMock

import pytest

from deck_controller.bindings import (
    BindingGroup,
    ControlKind,
    MistakeLogBinding,
    ModeCycleBinding,
    ModeDisplayBinding,
    ModelDisplayBinding,
    PlanModeBinding,
    SignalBinding,
    SlashCommandBinding,
    SwitchModelBinding,
)
from deck_controller.bindings import icons
from deck_controller.dispatcher import CommandDispatcher
from deck_controller.exceptions import error_stats
from deck_controller.models import (
    AgentModel,
    AgentSignal,
    AgentState,
    PermissionMode,
)
from deck_controller.state import CanonicalStateStore, SubscriptionBroadcaster
from deck_controller.testing import (
    FailingTransport,
    MockAgentTransport,
    MockSurfaceAction,
    MockToggleableAction,
)


def make_group(
    group_cls: type[BindingGroup] = ModeCycleBinding,
    transport: MockAgentTransport | None = None,
    state: AgentState | None = None,
    **kwargs,
):
    store = CanonicalStateStore(state)
    transport = transport or MockAgentTransport()
    dispatcher = CommandDispatcher(store, transport)
    broadcaster = SubscriptionBroadcaster(store)
    group = group_cls(dispatcher, broadcaster, **kwargs)
    return group, store, broadcaster, transport


class TestControlKind:
    """Control kind is resolved once from the action's capabilities."""

    @pytest.mark.asyncio
    async def test_toggleable_action(self):
        group, *_ = make_group()
        action = MockToggleableAction("key-1")

        await group.will_appear(action)

        assert group.handle("key-1").kind == ControlKind.TOGGLEABLE
        assert action.states == [0]

    @pytest.mark.asyncio
    async def test_titled_only_action(self):
        group, *_ = make_group()
        action = MockSurfaceAction("key-1")

        await group.will_appear(action)

        assert group.handle("key-1").kind == ControlKind.TITLED_ONLY
        assert action.titles == ["NORMAL"]


class TestLifecycle:
    """Tests for will_appear / will_disappear."""

    @pytest.mark.asyncio
    async def test_appear_renders_then_subscribes(self):
        group, store, broadcaster, _ = make_group(
            state=AgentState(permission_mode=PermissionMode.PLAN)
        )
        action = MockToggleableAction("key-1")

        await group.will_appear(action)

        assert action.titles == ["PLAN"]
        assert len(action.images) == 1
        assert action.images[0].startswith("data:image/svg+xml;base64,")
        assert broadcaster.is_subscribed("key-1")

    @pytest.mark.asyncio
    async def test_disappear_unsubscribes(self):
        group, store, broadcaster, _ = make_group()
        action = MockToggleableAction("key-1")
        await group.will_appear(action)

        await group.will_disappear(action)
        store.set_state(AgentState(permission_mode=PermissionMode.PLAN))
        await group.settle()

        assert not broadcaster.is_subscribed("key-1")
        assert action.titles == ["NORMAL"]
        assert store.listener_count == 0

    @pytest.mark.asyncio
    async def test_disappear_unknown_is_a_no_op(self):
        group, *_ = make_group()

        await group.will_disappear(MockSurfaceAction("never-seen"))

        assert group.visible_count == 0

    @pytest.mark.asyncio
    async def test_state_changes_reach_every_control(self):
        group, store, *_ = make_group()
        actions = [MockToggleableAction(f"key-{n}") for n in range(3)]
        for action in actions:
            await group.will_appear(action)

        store.set_state(AgentState(permission_mode=PermissionMode.ACCEPT_EDITS))
        await group.settle()

        for action in actions:
            assert action.title == "EDITS"
            assert action.states[-1] == 2

    @pytest.mark.asyncio
    async def test_change_during_first_render_is_not_lost(self):
        group, store, *_ = make_group()
        action = MockToggleableAction("key-1")
        action.set_display_delay(0.01)

        appear = asyncio.create_task(group.will_appear(action))
        await asyncio.sleep(0)
        store.set_state(AgentState(permission_mode=PermissionMode.BYPASS_PERMISSIONS))
        await appear
        await group.settle()

        assert action.title == "YOLO"

    @pytest.mark.asyncio
    async def test_reappear_replaces_subscription(self):
        group, store, broadcaster, _ = make_group()
        first = MockToggleableAction("key-1")
        second = MockToggleableAction("key-1")

        await group.will_appear(first)
        await group.will_appear(second)
        store.set_state(AgentState(permission_mode=PermissionMode.PLAN))
        await group.settle()

        assert broadcaster.subscriber_count == 1
        assert first.titles == ["NORMAL"]
        assert second.titles == ["NORMAL", "PLAN"]


class TestLease:
    """Group-wide resources are reference counted across controls."""

    @pytest.mark.asyncio
    async def test_first_appear_acquires_and_last_disappear_releases(self):
        lease = MagicMock()
        group, *_ = make_group(lease=lease)
        actions = [MockSurfaceAction(f"key-{n}") for n in range(3)]

        for action in actions:
            await group.will_appear(action)
        lease.acquire.assert_called_once()

        for action in actions[:2]:
            await group.will_disappear(action)
        lease.release.assert_not_called()

        await group.will_disappear(actions[2])
        lease.release.assert_called_once()

    @pytest.mark.asyncio
    async def test_detach_all_releases_everything(self):
        lease = MagicMock()
        group, store, broadcaster, _ = make_group(lease=lease)
        for n in range(3):
            await group.will_appear(MockSurfaceAction(f"key-{n}"))

        group.detach_all()

        assert group.visible_count == 0
        assert broadcaster.subscriber_count == 0
        assert store.listener_count == 0
        lease.release.assert_called_once()

    @pytest.mark.asyncio
    async def test_static_keys_do_not_subscribe(self):
        group, store, broadcaster, _ = make_group(SlashCommandBinding, command="/review")
        action = MockSurfaceAction("key-1")

        await group.will_appear(action)

        assert action.titles == ["review"]
        assert broadcaster.subscriber_count == 0
        assert store.listener_count == 0


class TestKeyDown:
    """Tests for key presses."""

    @pytest.mark.asyncio
    async def test_success_shows_ok(self):
        group, store, _, transport = make_group()
        action = MockToggleableAction("key-1")
        await group.will_appear(action)

        result = await group.key_down(action)
        await group.settle()

        assert result
        assert action.ok_count == 1
        assert action.alert_count == 0
        assert store.get_state().permission_mode == PermissionMode.PLAN
        assert action.title == "PLAN"

    @pytest.mark.asyncio
    async def test_failure_shows_alert(self):
        group, store, _, _ = make_group(transport=FailingTransport())
        action = MockToggleableAction("key-1")
        await group.will_appear(action)

        result = await group.key_down(action)

        assert not result
        assert action.alert_count == 1
        assert action.ok_count == 0
        assert store.get_state() == AgentState.default()

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self):
        transport = MockAgentTransport()
        transport.set_failure(RuntimeError("bug"))
        group, *_ = make_group(transport=transport)
        action = MockSurfaceAction("key-1")

        result = await group.key_down(action)

        assert result is None
        assert action.alert_count == 1

    @pytest.mark.asyncio
    async def test_failure_on_one_control_leaves_others(self):
        group, store, *_ = make_group()
        broken = MockToggleableAction("broken")
        healthy = MockToggleableAction("healthy")
        await group.will_appear(broken)
        await group.will_appear(healthy)
        broken.set_display_failure(RuntimeError("usb unplugged"))

        result = await group.key_down(healthy)
        await group.settle()

        assert result
        assert healthy.title == "PLAN"
        assert broken.title == "NORMAL"
        assert store.get_state().permission_mode == PermissionMode.PLAN


class TestDisplayContainment:
    """Display failures and hangs never escape the binding."""

    @pytest.mark.asyncio
    async def test_display_failure_is_logged_not_raised(self):
        error_stats.reset()
        group, *_ = make_group()
        action = MockToggleableAction("key-1")
        action.set_display_failure(RuntimeError("display gone"))

        await group.will_appear(action)

        assert error_stats.by_type.get("DisplayUpdateError") == 3

    @pytest.mark.asyncio
    async def test_display_hang_times_out(self):
        group, *_ = make_group(display_timeout=0.01)
        action = MockSurfaceAction("key-1")
        action.set_display_delay(1)

        await asyncio.wait_for(group.will_appear(action), timeout=0.5)

        assert action.titles == []


class TestConcreteBindings:
    """Display mapping and operation for each key type."""

    @pytest.mark.asyncio
    async def test_plan_mode_binding(self):
        group, store, *_ = make_group(PlanModeBinding)
        action = MockToggleableAction("key-1")
        await group.will_appear(action)

        await group.key_down(action)
        await group.settle()

        assert store.get_state().permission_mode == PermissionMode.PLAN
        assert action.states == [0, 1]
        assert action.title == "PLAN"

    @pytest.mark.parametrize(
        "mode,title",
        [
            (PermissionMode.DEFAULT, "NORMAL"),
            (PermissionMode.PLAN, "PLAN"),
            (PermissionMode.ACCEPT_EDITS, "EDITS"),
            (PermissionMode.BYPASS_PERMISSIONS, "YOLO"),
        ],
    )
    def test_plan_mode_title_follows_mode(self, mode, title):
        group, *_ = make_group(PlanModeBinding)

        assert group.title_for(AgentState(permission_mode=mode)) == title

    @pytest.mark.asyncio
    async def test_switch_model_binding(self):
        group, store, *_ = make_group(SwitchModelBinding)
        action = MockToggleableAction("key-1")
        await group.will_appear(action)

        await group.key_down(action)
        await group.settle()

        assert store.get_state().current_model == AgentModel.OPUS
        assert action.titles == ["Sonnet", "Opus"]
        assert action.states == [0, 1]

    @pytest.mark.asyncio
    async def test_mode_display_binding(self):
        group, *_ = make_group(
            ModeDisplayBinding,
            state=AgentState(permission_mode=PermissionMode.BYPASS_PERMISSIONS),
        )
        action = MockToggleableAction("key-1")

        await group.will_appear(action)

        assert action.states == [1]
        assert action.images[0] == icons.svg_to_data_uri(
            icons.mode_display_svg(PermissionMode.BYPASS_PERMISSIONS)
        )

    @pytest.mark.asyncio
    async def test_model_display_binding(self):
        group, *_ = make_group(
            ModelDisplayBinding, state=AgentState(current_model=AgentModel.HAIKU)
        )
        action = MockSurfaceAction("key-1")

        await group.will_appear(action)

        assert action.images == [icons.svg_to_data_uri(icons.model_svg(AgentModel.HAIKU))]

    @pytest.mark.asyncio
    async def test_mistake_log_binding(self):
        group, _, _, transport = make_group(MistakeLogBinding, prompt="Log this as a mistake")
        action = MockSurfaceAction("key-1")
        await group.will_appear(action)

        await group.key_down(action)

        assert action.titles == ["Oops"]
        assert transport.sent_text == ["Log this as a mistake"]

    @pytest.mark.asyncio
    async def test_slash_command_binding(self):
        group, _, _, transport = make_group(SlashCommandBinding, command="/compact")
        action = MockSurfaceAction("key-1")
        await group.will_appear(action)

        await group.key_down(action)

        assert action.titles == ["compact"]
        assert transport.sent_text == ["/compact"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("signal", list(AgentSignal))
    async def test_signal_binding(self, signal):
        group, _, _, transport = make_group(SignalBinding, signal=signal)
        action = MockSurfaceAction("key-1")

        result = await group.key_down(action)

        assert result
        assert transport.signals == [signal]
        assert group.name == f"signal_{signal.value}"


class TestIcons:
    """Tests for key image generation."""

    def test_data_uri(self):
        uri = icons.svg_to_data_uri("<svg/>")

        assert uri == "data:image/svg+xml;base64,PHN2Zy8+"

    def test_labels_are_escaped(self):
        svg = icons.label_svg("<b>")

        assert "&lt;b&gt;" in svg

    def test_long_labels_are_truncated(self):
        svg = icons.label_svg("a very long label indeed")

        assert "a very lo…" in svg

    def test_bypass_glyph(self):
        svg = icons.mode_cycle_svg(PermissionMode.BYPASS_PERMISSIONS)

        assert ">!<" in svg
        assert "YOLO" in svg
