import json
import time
import logging
import requests
from pathlib import Path
from typing import Any, Dict, List, Optional

from poolcmd.local.config import effective_settings as config
from poolcmd.local.instance import Instance, InstanceError
from poolcmd.web.pool import create_command

log = logging.getLogger(__name__)


def load_parameters(path: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Reads instance parameters from a JSON file.

    :param path: Path to a JSON object, or None for the default parameters.
    :return dict: The parameters, or None when no file was given.
    :raises ValueError: If the file does not contain a JSON object.
    """
    if path is None:
        return None
    with Path(path).open("r", encoding="utf-8") as f:
        parameters = json.load(f)
    if not isinstance(parameters, dict):
        raise ValueError(f"Parameters file '{path}' must contain a JSON object.")
    return parameters


def _pop_option(args: List[str], name: str) -> Optional[str]:
    """Removes `name VALUE` from `args` and returns VALUE."""
    if name not in args:
        return None
    index = args.index(name)
    if index + 1 >= len(args):
        raise ValueError(f"Option '{name}' needs a value.")
    value = args[index + 1]
    del args[index:index + 2]
    return value


def handle_serve_command(args: List[str]) -> int:
    """Boots the front door for a pool URL: serve <url> [params.json]"""
    if not args:
        print("Usage: serve <url> [params.json]")
        return 2
    try:
        command = create_command(args[0], load_parameters(args[1] if len(args) > 1 else None))
    except (InstanceError, ValueError, OSError) as e:
        log.error(f"Cannot serve '{args[0]}': {e}")
        return 1
    command.start()
    return 0


def handle_restart_command(args: List[str]) -> int:
    """Asks a running front door to restart its instance: restart <url>"""
    if not args:
        print("Usage: restart <url>")
        return 2
    try:
        create_command(args[0]).restart()
    except InstanceError as e:
        log.error(f"{e}")
        return 1
    except requests.RequestException as e:
        log.error(f"Restart request to '{args[0]}' failed: {e}")
        return 1
    log.info("Restart request sent.")
    return 0


def handle_status_command(args: List[str]) -> int:
    """Prints the status of a pool instance: status <url>"""
    if not args:
        print("Usage: status <url>")
        return 2
    try:
        command = create_command(args[0])
        response = requests.get(command.url, timeout=config.RESTART_REQUEST_TIMEOUT)
        response.raise_for_status()
        status = response.json()
    except InstanceError as e:
        log.error(f"{e}")
        return 1
    except (requests.RequestException, ValueError) as e:
        log.error(f"Could not fetch status from '{args[0]}': {e}")
        return 1

    print(f"\n--- Pool {status.get('poolId')} ---")
    for key in ("name", "state", "host", "port", "pid"):
        print(f"  {key:<6} : {status.get(key)}")
    print()
    return 0


def handle_run_command(args: List[str]) -> int:
    """Runs one instance in the foreground until Ctrl+C: run [params.json] [--port N]"""
    try:
        port_option = _pop_option(args, "--port")
        port = int(port_option) if port_option is not None else None
        instance = Instance.from_parameters(load_parameters(args[0] if args else None))
    except (ValueError, OSError) as e:
        log.error(f"Invalid arguments: {e}")
        return 2

    try:
        instance.start(port)
    except InstanceError as e:
        log.error(f"Instance failed: {e}")
        instance.stop()
        return 1

    print(f"Instance '{instance.name}' is ready on port {instance.assigned_port}. Press Ctrl+C to stop.")
    try:
        while instance.pid is not None:
            time.sleep(0.5)
        log.warning("Instance process exited.")
    except KeyboardInterrupt:
        log.info("Stopping instance...")
    finally:
        instance.stop()
    return 0


def toggle_verbose_logging() -> None:
    """Toggles verbose (DEBUG level) logging for the console handler."""
    config.VERBOSE_LOGGING = not config.VERBOSE_LOGGING
    new_level = logging.DEBUG if config.VERBOSE_LOGGING else logging.INFO

    for handler in logging.getLogger().handlers:
        if isinstance(handler, logging.StreamHandler):
            handler.setLevel(new_level)
            break
    log.debug("Verbose console logging is ON.")


def print_help() -> None:
    """Prints the main help text for the console."""
    print("\nAvailable commands:")
    print("  serve <url> [params.json]  - Run the pool front door on the URL's port.")
    print("  restart <url>              - Ask the front door to restart the URL's pool instance.")
    print("  status <url>               - Show the state of the URL's pool instance.")
    print("  run [params.json] [--port N] - Run one instance in the foreground until Ctrl+C.")
    print("  help                       - Show this message.")
    print("\nAdd --verbose to any command for DEBUG output.")
    print()
