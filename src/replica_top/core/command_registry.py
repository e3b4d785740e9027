# src/replica_top/core/command_registry.py
import logging
from typing import Callable, Dict

from replica_top.core.handlers.canister_handler import canister_help_text, handle_canister
from replica_top.core.handlers.config_handler import config_help_text, handle_config
from replica_top.core.handlers.export_handler import export_help_text, handle_export
from replica_top.core.handlers.snapshot_handler import handle_snapshot, snapshot_help_text
from replica_top.core.handlers.watch_handler import handle_watch, watch_help_text

logger = logging.getLogger(__name__)

CommandRegistry: Dict[str, Callable[..., int]] = {}
COMMAND_HELP_TEXTS: Dict[str, str] = {}


def register_command(name: str, handler: Callable[..., int], help_text: str = "") -> None:
    """Adds a command, its handler function and its help text to the registry."""
    CommandRegistry[name] = handler
    COMMAND_HELP_TEXTS[name] = help_text
    logger.debug("Registered command '%s'", name)


def register_all_commands() -> None:
    if CommandRegistry:
        return
    register_command("snapshot", handle_snapshot, snapshot_help_text)
    register_command("canister", handle_canister, canister_help_text)
    register_command("watch", handle_watch, watch_help_text)
    register_command("export", handle_export, export_help_text)
    register_command("config", handle_config, config_help_text)
    logger.debug("Registered %d command handlers.", len(CommandRegistry))


def build_help_text() -> str:
    register_all_commands()
    body = "\n\n".join(COMMAND_HELP_TEXTS[name] for name in CommandRegistry)
    return f"Usage: replica-top [--set <key>=<value> ...] <command> [options]\n\nCommands:\n{body}"
