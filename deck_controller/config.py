"""Config loading/saving and validation.

Configuration lives in ~/.config/deck-controller/config.json. A missing file
means defaults.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path

import dacite

from .exceptions import (
    ConfigLoadError,
    ConfigSaveError,
    ConfigValidationError,
    record_error,
)
from .models import PERMISSION_MODE_CYCLE, DeckConfig, KeyKind, model_to_dict

logger = logging.getLogger(__name__)

# Configuration file locations
CONFIG_DIR = Path.home() / ".config" / "deck-controller"
CONFIG_PATH = CONFIG_DIR / "config.json"


def validate_config(config: DeckConfig) -> None:
    """
    Check cross-field rules dacite cannot express.

    Raises:
        ConfigValidationError: On the first rule that does not hold.
    """
    order = config.agent.keystroke_order
    if sorted(m.value for m in order) != sorted(m.value for m in PERMISSION_MODE_CYCLE):
        raise ConfigValidationError(
            "keystroke_order must list every permission mode exactly once",
            field="agent.keystroke_order",
            value=[m.value for m in order],
        )

    if config.agent.command_timeout <= 0:
        raise ConfigValidationError(
            "command_timeout must be positive",
            field="agent.command_timeout",
            value=config.agent.command_timeout,
        )

    if config.surface.display_timeout <= 0:
        raise ConfigValidationError(
            "display_timeout must be positive",
            field="surface.display_timeout",
            value=config.surface.display_timeout,
        )

    if config.surface.columns < 1:
        raise ConfigValidationError(
            "columns must be at least 1",
            field="surface.columns",
            value=config.surface.columns,
        )

    for index, key in enumerate(config.surface.keys):
        if key.kind == KeyKind.SLASH_COMMAND and not key.text.strip():
            raise ConfigValidationError(
                "slash_command keys need text",
                field=f"surface.keys[{index}].text",
            )


def load_config(path: Path | None = None) -> DeckConfig:
    """
    Load application configuration.

    Args:
        path: Config file to read; defaults to CONFIG_PATH.

    Returns:
        DeckConfig from the file, or defaults if the file does not exist.

    Raises:
        ConfigLoadError: If the config file exists but cannot be read or parsed.
        ConfigValidationError: If the file does not match the schema.
    """
    config_path = path or CONFIG_PATH

    if not config_path.exists():
        logger.debug("No config found at %s, using defaults", config_path)
        return DeckConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
        logger.debug("Loaded config from %s", config_path)
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in config file: %s", e)
        record_error(e)
        raise ConfigLoadError(
            f"Invalid JSON in config file at line {e.lineno}",
            file_path=str(config_path),
            context={"line": e.lineno, "column": e.colno},
            cause=e,
        ) from e
    except OSError as e:
        logger.error("Failed to read config file: %s", e)
        record_error(e)
        raise ConfigLoadError(
            "Failed to read config file",
            file_path=str(config_path),
            cause=e,
        ) from e

    try:
        config = dacite.from_dict(
            data_class=DeckConfig,
            data=data,
            config=dacite.Config(cast=[Enum]),
        )
    except (dacite.DaciteError, ValueError) as e:
        logger.error("Config schema validation failed: %s", e)
        record_error(e)
        raise ConfigValidationError(
            f"Config schema validation failed: {e}",
            context={"file_path": str(config_path)},
            cause=e,
        ) from e

    try:
        validate_config(config)
    except ConfigValidationError as e:
        logger.error("Config validation failed: %s", e)
        record_error(e)
        raise

    return config


def save_config(config: DeckConfig, path: Path | None = None) -> None:
    """
    Save application configuration, creating the directory if needed.

    Raises:
        ConfigSaveError: If the config cannot be saved.
    """
    config_path = path or CONFIG_PATH

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error("Failed to create config directory: %s", e)
        record_error(e)
        raise ConfigSaveError(
            f"Failed to create config directory: {config_path.parent}",
            file_path=str(config_path.parent),
            cause=e,
        ) from e

    try:
        data = model_to_dict(config)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        logger.debug("Saved config to %s", config_path)
    except OSError as e:
        logger.error("Failed to write config file: %s", e)
        record_error(e)
        raise ConfigSaveError(
            "Failed to write config file",
            file_path=str(config_path),
            cause=e,
        ) from e
    except (TypeError, ValueError) as e:
        logger.error("Failed to serialize config to JSON: %s", e)
        record_error(e)
        raise ConfigSaveError(
            "Failed to serialize config to JSON",
            file_path=str(config_path),
            cause=e,
        ) from e
