"""Core dataclasses for agent state, deck layout and configuration.

Configuration models are designed for JSON serialization using dacite.
AgentState is immutable: every change produces a complete replacement value.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

import dacite

from .exceptions import InvalidStateError, StateParseError


# =============================================================================
# Agent State Enums
# =============================================================================


class PermissionMode(Enum):
    """The agent's autonomy level."""

    DEFAULT = "default"  # Asks before edits and commands
    PLAN = "plan"  # Read-only planning
    ACCEPT_EDITS = "acceptEdits"  # Edits applied without asking
    BYPASS_PERMISSIONS = "bypassPermissions"  # Nothing asks


class AgentModel(Enum):
    """Model the agent is running on."""

    SONNET = "sonnet"
    OPUS = "opus"
    HAIKU = "haiku"


class AgentStatus(Enum):
    """What the agent is doing, as it last reported."""

    IDLE = "idle"
    WORKING = "working"
    WAITING = "waiting"  # Needs user input
    ERROR = "error"
    DISCONNECTED = "disconnected"


class AgentMode(Enum):
    """Coarse classification of the permission mode."""

    GUARDED = "guarded"
    BYPASS = "bypass"


class AgentSignal(Enum):
    """Side-channel signals that never touch canonical state."""

    APPROVE = "approve"
    REJECT = "reject"
    INTERRUPT = "interrupt"
    THINKING = "thinking"


# Single ordering used for cycling and for display.
PERMISSION_MODE_CYCLE: tuple[PermissionMode, ...] = (
    PermissionMode.DEFAULT,
    PermissionMode.PLAN,
    PermissionMode.ACCEPT_EDITS,
    PermissionMode.BYPASS_PERMISSIONS,
)

SWITCHABLE_MODELS: tuple[AgentModel, AgentModel] = (AgentModel.SONNET, AgentModel.OPUS)

MODE_LABELS: dict[PermissionMode, str] = {
    PermissionMode.DEFAULT: "NORMAL",
    PermissionMode.PLAN: "PLAN",
    PermissionMode.ACCEPT_EDITS: "EDITS",
    PermissionMode.BYPASS_PERMISSIONS: "YOLO",
}

MODE_SUBLABELS: dict[PermissionMode, str] = {
    PermissionMode.DEFAULT: "Ask permission",
    PermissionMode.PLAN: "Read-only",
    PermissionMode.ACCEPT_EDITS: "Accept edits",
    PermissionMode.BYPASS_PERMISSIONS: "No prompts",
}

MODE_COLORS: dict[PermissionMode, str] = {
    PermissionMode.DEFAULT: "#6B7280",
    PermissionMode.PLAN: "#3B82F6",
    PermissionMode.ACCEPT_EDITS: "#F59E0B",
    PermissionMode.BYPASS_PERMISSIONS: "#EF4444",
}

MODEL_LABELS: dict[AgentModel, str] = {
    AgentModel.SONNET: "Sonnet",
    AgentModel.OPUS: "Opus",
    AgentModel.HAIKU: "Haiku",
}

MODEL_COLORS: dict[AgentModel, str] = {
    AgentModel.SONNET: "#8B5CF6",
    AgentModel.OPUS: "#F97316",
    AgentModel.HAIKU: "#10B981",
}


def next_permission_mode(mode: PermissionMode) -> PermissionMode:
    """Return the mode after ``mode`` in the display cycle, wrapping."""
    index = PERMISSION_MODE_CYCLE.index(mode)
    return PERMISSION_MODE_CYCLE[(index + 1) % len(PERMISSION_MODE_CYCLE)]


def other_model(model: AgentModel) -> AgentModel:
    """Return the model ``switch_model`` moves to from ``model``."""
    sonnet, opus = SWITCHABLE_MODELS
    return sonnet if model == opus else opus


# =============================================================================
# Canonical Agent State
# =============================================================================


_STATE_FIELD_TYPES: dict[str, type] = {
    "permission_mode": PermissionMode,
    "current_model": AgentModel,
    "status": AgentStatus,
    "session_active": bool,
}


@dataclass(frozen=True)
class AgentState:
    """Last-known configuration of the controlled agent.

    Instances are never mutated. ``with_changes`` returns a complete
    replacement, and ``mode`` is derived from ``permission_mode`` so the two
    can never disagree.
    """

    permission_mode: PermissionMode = PermissionMode.DEFAULT
    current_model: AgentModel = AgentModel.SONNET
    status: AgentStatus = AgentStatus.IDLE
    session_active: bool = False

    def __post_init__(self) -> None:
        for f in fields(self):
            expected = _STATE_FIELD_TYPES[f.name]
            value = getattr(self, f.name)
            if not isinstance(value, expected):
                raise InvalidStateError(
                    f"{f.name} must be {expected.__name__}, got {type(value).__name__}",
                    field=f.name,
                )

    @classmethod
    def default(cls) -> AgentState:
        """State assumed at process start."""
        return cls()

    @property
    def mode(self) -> AgentMode:
        if self.permission_mode == PermissionMode.BYPASS_PERMISSIONS:
            return AgentMode.BYPASS
        return AgentMode.GUARDED

    @property
    def is_plan(self) -> bool:
        return self.permission_mode == PermissionMode.PLAN

    @property
    def is_bypass(self) -> bool:
        return self.mode == AgentMode.BYPASS

    def with_changes(self, **changes: Any) -> AgentState:
        """Return a new state with the given fields replaced."""
        unknown = set(changes) - set(_STATE_FIELD_TYPES)
        if unknown:
            raise InvalidStateError(
                f"Unknown AgentState fields: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the agent's camelCase wire keys."""
        return {
            "permissionMode": self.permission_mode.value,
            "currentModel": self.current_model.value,
            "status": self.status.value,
            "sessionActive": self.session_active,
            "mode": self.mode.value,
        }


@dataclass(frozen=True)
class ReportedState:
    """An agent state report together with when the agent wrote it."""

    state: AgentState
    last_updated: datetime | None = None
    source: Path | None = None


def _parse_enum(enum_type: type[Enum], data: dict, key: str, default: Enum) -> Any:
    raw = data.get(key)
    if raw is None:
        return default
    try:
        return enum_type(raw)
    except ValueError as e:
        raise StateParseError(
            f"Unknown {key} value: {raw!r}",
            context={"key": key},
            cause=e,
        ) from e


def parse_reported_state(data: dict, *, file_path: Path | None = None) -> ReportedState:
    """Parse a state report written by the agent's hook scripts.

    Missing keys fall back to the defaults of ``AgentState``. A report with
    ``sessionActive: false`` is treated as disconnected whatever its status.

    Raises:
        StateParseError: If the payload is not an object, or holds a value
            outside the known enums.
    """
    if not isinstance(data, dict):
        raise StateParseError(
            "State report must be a JSON object",
            file_path=str(file_path) if file_path else None,
        )

    try:
        status = _parse_enum(AgentStatus, data, "status", AgentStatus.IDLE)
        if data.get("sessionActive") is False:
            status = AgentStatus.DISCONNECTED
        state = AgentState(
            permission_mode=_parse_enum(
                PermissionMode, data, "permissionMode", PermissionMode.DEFAULT
            ),
            current_model=_parse_enum(AgentModel, data, "currentModel", AgentModel.SONNET),
            status=status,
            session_active=bool(data.get("sessionActive", False)),
        )
    except StateParseError as e:
        if file_path:
            e.context["file_path"] = str(file_path)
        raise

    last_updated = None
    raw_updated = data.get("lastUpdated")
    if raw_updated:
        try:
            last_updated = datetime.fromisoformat(str(raw_updated).replace("Z", "+00:00"))
            if last_updated.tzinfo is None:
                last_updated = last_updated.replace(tzinfo=timezone.utc)
        except ValueError as e:
            raise StateParseError(
                f"Invalid lastUpdated timestamp: {raw_updated!r}",
                file_path=str(file_path) if file_path else None,
                cause=e,
            ) from e

    return ReportedState(state=state, last_updated=last_updated, source=file_path)


# =============================================================================
# Configuration Models
# =============================================================================


class KeyKind(Enum):
    """Kind of control placed on a deck key."""

    MODE_CYCLE = "mode_cycle"
    PLAN_MODE = "plan_mode"
    SWITCH_MODEL = "switch_model"
    MODE_DISPLAY = "mode_display"
    MODEL_DISPLAY = "model_display"
    MISTAKE_LOG = "mistake_log"
    SLASH_COMMAND = "slash_command"
    APPROVE = "approve"
    REJECT = "reject"
    INTERRUPT = "interrupt"
    THINKING = "thinking"


@dataclass
class KeyConfig:
    """One key of the deck layout."""

    kind: KeyKind
    title: str = ""  # Static title for keys that don't track state
    text: str = ""  # Command text for slash_command keys


def default_keys() -> list[KeyConfig]:
    """Default eight-key layout."""
    return [
        KeyConfig(kind=KeyKind.MODE_CYCLE),
        KeyConfig(kind=KeyKind.PLAN_MODE),
        KeyConfig(kind=KeyKind.SWITCH_MODEL),
        KeyConfig(kind=KeyKind.MODE_DISPLAY),
        KeyConfig(kind=KeyKind.APPROVE, title="Yes"),
        KeyConfig(kind=KeyKind.REJECT, title="No"),
        KeyConfig(kind=KeyKind.INTERRUPT, title="Stop"),
        KeyConfig(kind=KeyKind.MISTAKE_LOG, title="Oops"),
    ]


def default_keystroke_order() -> list[PermissionMode]:
    """Order in which the agent itself moves through modes on Shift+Tab."""
    return [
        PermissionMode.DEFAULT,
        PermissionMode.ACCEPT_EDITS,
        PermissionMode.PLAN,
        PermissionMode.BYPASS_PERMISSIONS,
    ]


@dataclass
class AgentSettings:
    """How to reach and observe the agent."""

    state_dir: str = "~/.claude-deck"
    session_id: str | None = None  # iTerm2 session to drive; None = current
    keystroke_order: list[PermissionMode] = field(default_factory=default_keystroke_order)
    command_timeout: float = 5.0  # Seconds per transport call
    keystroke_delay: float = 0.05  # Seconds between repeated keystrokes

    @property
    def state_path(self) -> Path:
        return Path(self.state_dir).expanduser()


@dataclass
class SurfaceSettings:
    """Virtual deck layout and display behavior."""

    display_timeout: float = 2.0  # Seconds before a display update is abandoned
    columns: int = 4
    keys: list[KeyConfig] = field(default_factory=default_keys)


DEFAULT_MISTAKE_PROMPT = (
    "Log this as a mistake: Something went wrong - please describe what "
    "happened and log it to my brain using mistake_log"
)


@dataclass
class PromptSettings:
    """Text sent to the agent by intent keys."""

    mistake_log: str = DEFAULT_MISTAKE_PROMPT


@dataclass
class DeckConfig:
    """Top-level application configuration."""

    agent: AgentSettings = field(default_factory=AgentSettings)
    surface: SurfaceSettings = field(default_factory=SurfaceSettings)
    prompts: PromptSettings = field(default_factory=PromptSettings)


# =============================================================================
# Serialization Helpers
# =============================================================================


def _convert_enums(obj: object) -> object:
    """Recursively convert Enum values to their string values."""
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {k: _convert_enums(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_enums(item) for item in obj]
    return obj


def model_to_dict(obj: object) -> dict:
    """Convert a dataclass model to a dictionary for JSON serialization."""
    data = asdict(obj)  # type: ignore[arg-type]
    return _convert_enums(data)  # type: ignore[return-value]


def model_from_dict(data_class: type, data: dict) -> object:
    """Load a dataclass model from a dictionary."""
    return dacite.from_dict(
        data_class=data_class,
        data=data,
        config=dacite.Config(cast=[Enum]),
    )
