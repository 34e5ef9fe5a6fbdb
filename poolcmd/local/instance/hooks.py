import logging
import subprocess
from enum import Enum
from typing import Iterable, List

from poolcmd.local.instance.errors import HookFailure
from poolcmd.local.instance.templater import substitute_port

log = logging.getLogger(__name__)


class HookMode(str, Enum):
    """How a hook run reacts to a failing command."""

    FAIL_FAST = "fail_fast"
    BEST_EFFORT = "best_effort"


def split_command(command: str, port: int) -> List[str]:
    """
    Substitutes the port into a hook command and splits it on whitespace.
    There is no shell quoting: every whitespace-separated word is one argument.
    """
    return substitute_port(command, port).split()


def _run_one(argv: List[str], command_log: bool) -> None:
    """Runs one hook to completion, raising HookFailure when it fails."""
    command = " ".join(argv)
    try:
        if command_log:
            # Hook output goes straight to the operator's terminal.
            subprocess.run(argv, check=True, stdin=subprocess.DEVNULL)
        else:
            subprocess.run(argv, check=True, stdin=subprocess.DEVNULL, capture_output=True)
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.decode("utf-8", errors="replace") if e.stderr else ""
        raise HookFailure(command, e.returncode, stderr) from e
    except OSError as e:
        raise HookFailure(command, None, str(e)) from e


def run_hooks(commands: Iterable[str], mode: HookMode, port: int, command_log: bool = False) -> None:
    """
    Runs hook commands one after the other.

    :param commands: Hook command strings, `{PORT}` is replaced with `port`.
    :param mode: FAIL_FAST stops at and raises the first failure,
                 BEST_EFFORT logs failures and carries on.
    :param port: The port assigned to the instance for this lifecycle step.
    :param command_log: Forward hook output to the parent's stdout/stderr.
    :raises HookFailure: In FAIL_FAST mode, for the first failing command.
    """
    for command in commands:
        argv = split_command(command, port)
        if not argv:
            continue

        log.debug(f"Running hook: {' '.join(argv)}")
        try:
            _run_one(argv, command_log)
        except HookFailure as e:
            if mode is HookMode.FAIL_FAST:
                log.error(f"{e}")
                raise
            log.debug(f"Ignoring failed hook during best-effort run: {e}")
