from __future__ import annotations

import logging
import sys
from typing import List, Optional, Tuple

from replica_top.core.command_registry import CommandRegistry, build_help_text, register_all_commands
from replica_top.core.managers.config_manager import config_manager
from replica_top.core.utils.configure_logging import configure_logger

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    configure_logger(
        config_manager.get_nested("debug.level", "WARNING"),
        silenced_loggers=config_manager.get_nested("debug.silenced", {}),
    )


def _apply_overrides(argv: List[str]) -> Tuple[List[str], bool]:
    """
    Consumes leading `--set key=value` pairs, applying each to the config.
    Returns the remaining arguments and whether every override was valid.
    """
    rest = list(argv)
    while rest and rest[0] == "--set":
        if len(rest) < 2 or "=" not in rest[1]:
            print("❌ Usage: --set <key>=<value>")
            return rest, False
        key, value = rest[1].split("=", 1)
        if not config_manager.set_nested(key.strip(), value.strip()):
            print(f"❌ Error: Invalid config override '{rest[1]}'.")
            return rest, False
        rest = rest[2:]
    return rest, True


def main(argv: Optional[List[str]] = None) -> int:
    """Entrypoint of the `replica-top` command."""
    argv = list(sys.argv[1:] if argv is None else argv)
    argv, ok = _apply_overrides(argv)
    if not ok:
        return 1

    _setup_logging()
    register_all_commands()

    if not argv or argv[0] in ("-h", "--help", "help"):
        print(build_help_text())
        return 0 if argv else 1

    command, args = argv[0], argv[1:]
    handler = CommandRegistry.get(command)
    if handler is None:
        print(f"Unknown command: '{command}'. Run 'replica-top help' for a list of commands.")
        return 1

    logger.debug("Running command '%s' with args %s", command, args)
    return handler(args)


if __name__ == "__main__":
    sys.exit(main())
