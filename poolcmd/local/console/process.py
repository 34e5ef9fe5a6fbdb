import logging
from typing import List

from poolcmd.local.console.handler import (
    handle_restart_command,
    handle_run_command,
    handle_serve_command,
    handle_status_command,
    print_help,
)

log = logging.getLogger(__name__)


def execute_command(command: str, args: List[str]) -> int:
    """
    Executes a single command from the user.

    :param command: The main command string (e.g., 'serve', 'restart').
    :param args: A list of arguments for the command.
    :return int: The process exit code.
    """
    log.debug(f"Executing command: {command}, args: {args}")
    command_map = {
        "serve": lambda: handle_serve_command(args),
        "restart": lambda: handle_restart_command(args),
        "run": lambda: handle_run_command(args),
        "status": lambda: handle_status_command(args),
        "help": print_help,
    }

    if command not in command_map:
        log.info(f"Unknown command: '{command}'. Type 'help' for a list of commands.")
        return 2

    result = command_map[command]()
    return 0 if result is None else int(result)
