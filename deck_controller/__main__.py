"""Entry point for python -m deck_controller.

Supports both the virtual deck (default) and CLI subcommands for headless
operation.

Usage:
    # Launch the virtual deck
    python -m deck_controller

    # CLI commands (headless)
    python -m deck_controller state
    python -m deck_controller cycle-mode
    python -m deck_controller toggle-plan
    python -m deck_controller switch-model
    python -m deck_controller send "/compact"
    python -m deck_controller signal approve
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any


def _setup_logging(args: argparse.Namespace) -> None:
    """Configure logging based on command-line arguments."""
    from deck_controller.logging_config import enable_debug_mode, setup_logging

    if args.debug:
        enable_debug_mode()
    else:
        setup_logging(
            level=args.log_level,
            log_to_console=False,
            log_to_file=not args.no_log_file,
        )


def _print_json(data: Any) -> None:
    """Print data as JSON to stdout."""
    print(json.dumps(data, indent=2, default=str))


def _create_services(args: argparse.Namespace):
    """Load config and build services, synced to the agent's last report."""
    from deck_controller.config import load_config
    from deck_controller.services import DeckServices

    config = load_config(Path(args.config) if args.config else None)
    services = DeckServices.create(config)
    services.reporter.refresh()
    return services


def _print_state(state: Any, as_json: bool) -> None:
    from deck_controller.models import MODE_LABELS, MODEL_LABELS

    if as_json:
        _print_json(state.to_dict())
        return
    print(f"Mode:    {MODE_LABELS[state.permission_mode]} ({state.permission_mode.value})")
    print(f"Model:   {MODEL_LABELS[state.current_model]}")
    print(f"Status:  {state.status.value}")
    print(f"Session: {'active' if state.session_active else 'inactive'}")


def _report(args: argparse.Namespace, result: Any, message: str) -> int:
    """Print a DispatchResult and return the exit code."""
    if args.json:
        _print_json({
            "success": result.success,
            "error": result.error,
            "error_type": result.error_type,
            "state": result.state.to_dict() if result.state else None,
        })
    elif result:
        print(message)
    else:
        print(f"Error: {result.error}", file=sys.stderr)
    return 0 if result else 1


# =============================================================================
# CLI Command Handlers
# =============================================================================


async def cmd_state(args: argparse.Namespace) -> int:
    """Handle state command."""
    services = _create_services(args)
    _print_state(services.store.get_state(), args.json)
    return 0


async def cmd_cycle_mode(args: argparse.Namespace) -> int:
    """Handle cycle-mode command."""
    from deck_controller.models import MODE_LABELS

    services = _create_services(args)
    result = await services.dispatcher.cycle_mode()
    mode = services.store.get_state().permission_mode
    return _report(args, result, f"Mode: {MODE_LABELS[mode]}")


async def cmd_toggle_plan(args: argparse.Namespace) -> int:
    """Handle toggle-plan command."""
    from deck_controller.models import MODE_LABELS

    services = _create_services(args)
    result = await services.dispatcher.toggle_permission_mode()
    mode = services.store.get_state().permission_mode
    return _report(args, result, f"Mode: {MODE_LABELS[mode]}")


async def cmd_switch_model(args: argparse.Namespace) -> int:
    """Handle switch-model command."""
    from deck_controller.models import MODEL_LABELS

    services = _create_services(args)
    result = await services.dispatcher.switch_model()
    model = services.store.get_state().current_model
    return _report(args, result, f"Model: {MODEL_LABELS[model]}")


async def cmd_send(args: argparse.Namespace) -> int:
    """Handle send command."""
    services = _create_services(args)
    result = await services.dispatcher.send_command(args.text)
    return _report(args, result, "Sent.")


async def cmd_signal(args: argparse.Namespace) -> int:
    """Handle signal command."""
    from deck_controller.models import AgentSignal

    services = _create_services(args)
    result = await services.dispatcher.send_signal(AgentSignal(args.signal))
    return _report(args, result, f"Sent {args.signal}.")


def _run_async(coro: Any) -> int:
    """Run an async coroutine and return exit code."""
    return asyncio.run(coro)


# =============================================================================
# Argument Parser Setup
# =============================================================================


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add common arguments to a parser."""
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )


def _create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="deck-controller",
        description="Deck Controller - drive a Claude Code agent from a control surface",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Launch the virtual deck
  python -m deck_controller

  # Show the agent's last reported state
  python -m deck_controller state --json

  # Step the permission mode, or flip plan mode
  python -m deck_controller cycle-mode
  python -m deck_controller toggle-plan

  # Type a command into the agent
  python -m deck_controller send "/review"
""",
    )

    # Global arguments
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to console",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set log level (default: INFO)",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Disable logging to file",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Config file (default: ~/.config/deck-controller/config.json)",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    state_parser = subparsers.add_parser(
        "state",
        help="Show the agent's last reported state",
    )
    _add_common_args(state_parser)

    cycle_parser = subparsers.add_parser(
        "cycle-mode",
        help="Advance the permission mode one step",
    )
    _add_common_args(cycle_parser)

    plan_parser = subparsers.add_parser(
        "toggle-plan",
        help="Enter or leave plan mode",
    )
    _add_common_args(plan_parser)

    model_parser = subparsers.add_parser(
        "switch-model",
        help="Swap between Sonnet and Opus",
    )
    _add_common_args(model_parser)

    send_parser = subparsers.add_parser(
        "send",
        help="Type text into the agent and submit it",
    )
    send_parser.add_argument(
        "text",
        help="Text or slash command to send",
    )
    _add_common_args(send_parser)

    signal_parser = subparsers.add_parser(
        "signal",
        help="Approve, reject, interrupt or toggle thinking",
    )
    signal_parser.add_argument(
        "signal",
        choices=["approve", "reject", "interrupt", "thinking"],
        help="Signal to send",
    )
    _add_common_args(signal_parser)

    return parser


COMMANDS = {
    "state": cmd_state,
    "cycle-mode": cmd_cycle_mode,
    "toggle-plan": cmd_toggle_plan,
    "switch-model": cmd_switch_model,
    "send": cmd_send,
    "signal": cmd_signal,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the Deck Controller application."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    # Initialize logging
    _setup_logging(args)

    from deck_controller.exceptions import ConfigError

    handler = COMMANDS.get(args.command)
    try:
        if handler is not None:
            return _run_async(handler(args))

        # No subcommand - launch the virtual deck
        from deck_controller.config import load_config
        from deck_controller.services import DeckServices
        from deck_controller.surface import DeckApp

        config = load_config(Path(args.config) if args.config else None)
        app = DeckApp(DeckServices.create(config))
        app.run()
        return 0
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
