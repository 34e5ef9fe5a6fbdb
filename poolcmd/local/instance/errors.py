"""Exceptions raised by the instance lifecycle."""

from typing import Optional


class InstanceError(Exception):
    """Base class for every failure surfaced by an instance or its front door."""

    kind = "InstanceError"


class InvalidPoolUrl(InstanceError, ValueError):
    """The pool URL does not end with an integer pool id."""

    kind = "InvalidPoolUrl"

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(
            f"url '{url}' needs to end with a poolId as pathname, "
            "for example http://localhost:3001/<poolId>"
        )


class SpawnFailure(InstanceError):
    """The command could not be launched at all."""

    kind = "SpawnFailure"

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to launch '{command}': {reason}")


class StderrObserved(InstanceError):
    """The process wrote to stderr before it became ready."""

    kind = "StderrObserved"

    def __init__(self, output: str) -> None:
        self.output = output
        super().__init__(output)


class HookFailure(InstanceError):
    """An on-ready hook exited non-zero or could not be launched."""

    kind = "HookFailure"

    def __init__(self, command: str, returncode: Optional[int] = None, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        if returncode is None:
            message = f"Hook '{command}' could not be executed"
        else:
            message = f"Hook '{command}' failed with exit code {returncode}"
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)


class AlreadyRunning(InstanceError):
    """start() was called on an instance that is not idle."""

    kind = "AlreadyRunning"

    def __init__(self, name: str, state: str) -> None:
        self.name = name
        self.state = state
        super().__init__(f"Instance '{name}' is {state}; stop it before starting again.")


class ProcessExited(InstanceError):
    """The process terminated before printing its ready message."""

    kind = "ProcessExited"

    def __init__(self, returncode: Optional[int]) -> None:
        self.returncode = returncode
        super().__init__(f"Process exited with code {returncode} before becoming ready.")


class ReadyTimeout(InstanceError):
    """The ready message did not appear in time."""

    kind = "ReadyTimeout"

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Process did not become ready within {timeout:g} seconds.")
