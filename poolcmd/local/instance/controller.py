import logging
import subprocess
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from poolcmd.local import app_process
from poolcmd.local.config import effective_settings as config
from poolcmd.local.instance.errors import AlreadyRunning, InstanceError, ProcessExited, SpawnFailure
from poolcmd.local.instance.hooks import HookMode, run_hooks
from poolcmd.local.instance.readiness import ReadinessDetector
from poolcmd.local.instance.shutdown import terminate_process_tree
from poolcmd.local.instance.templater import templated_args

log = logging.getLogger(__name__)

# Parameter names consumed by InstanceConfig itself, camelCase and snake_case spellings.
_KNOWN_PARAMETERS = {
    "command": "command",
    "readyMessage": "ready_message",
    "ready_message": "ready_message",
    "redirectToFile": "redirect_to_file",
    "redirect_to_file": "redirect_to_file",
    "onReadyCommands": "on_ready_commands",
    "on_ready_commands": "on_ready_commands",
    "onStopCommands": "on_stop_commands",
    "on_stop_commands": "on_stop_commands",
    "commandLog": "command_log",
    "command_log": "command_log",
    "portArgumentName": "port_argument_name",
    "port_argument_name": "port_argument_name",
}


class InstanceState(str, Enum):
    """Lifecycle states of a managed instance."""

    IDLE = "idle"
    STARTING = "starting"
    READY = "ready"
    STOPPING = "stopping"
    FAILED = "failed"


@dataclass(frozen=True)
class InstanceConfig:
    """Immutable description of how to launch and supervise one process."""

    command: str = config.DEFAULT_COMMAND
    ready_message: str = ""
    redirect_to_file: Optional[Path] = None
    on_ready_commands: Tuple[str, ...] = ()
    on_stop_commands: Tuple[str, ...] = ()
    command_log: bool = False
    port_argument_name: str = config.DEFAULT_PORT_ARGUMENT_NAME
    host: str = config.DEFAULT_INSTANCE_HOST
    extra_arguments: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "on_ready_commands", tuple(self.on_ready_commands or ()))
        object.__setattr__(self, "on_stop_commands", tuple(self.on_stop_commands or ()))
        object.__setattr__(self, "extra_arguments", MappingProxyType(dict(self.extra_arguments or {})))
        if self.redirect_to_file is not None:
            object.__setattr__(self, "redirect_to_file", Path(self.redirect_to_file))

    @classmethod
    def from_parameters(cls, parameters: Optional[Mapping[str, Any]]) -> "InstanceConfig":
        """
        Builds a config from an open parameter map.

        Known names (camelCase or snake_case) fill the typed fields; every
        other entry, including the port and `host`, becomes an extra argument
        passed to the command. A missing map launches plain `echo`.

        :param parameters: The instance parameters, or None.
        :return InstanceConfig: The frozen configuration.
        """
        if parameters is None:
            return cls(command=config.DEFAULT_COMMAND)

        fields: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in parameters.items():
            if key in _KNOWN_PARAMETERS:
                fields[_KNOWN_PARAMETERS[key]] = value
            else:
                extra[key] = value

        if fields.get("command") is None:
            fields["command"] = config.DEFAULT_COMMAND
        if fields.get("port_argument_name") is None:
            fields["port_argument_name"] = config.DEFAULT_PORT_ARGUMENT_NAME
        fields["command_log"] = bool(fields.get("command_log", False))
        fields["ready_message"] = fields.get("ready_message") or ""
        host = extra.get("host")
        return cls(
            host=str(host) if host is not None else config.DEFAULT_INSTANCE_HOST,
            extra_arguments=extra,
            **fields
        )

    @property
    def port(self) -> int:
        """The configured port, used whenever start() is not given one."""
        value = self.extra_arguments.get(self.port_argument_name)
        return int(value) if value is not None else config.DEFAULT_INSTANCE_PORT


@dataclass
class RuntimeState:
    """Mutable state of one instance; only the owning Instance touches it."""

    assigned_port: int
    process: Optional[subprocess.Popen] = None


def _discard_unwatched(process: subprocess.Popen) -> None:
    """Kills a process that no pipe reader or exit watcher was attached to."""
    terminate_process_tree(process)
    for pipe in (process.stdout, process.stderr):
        if pipe is not None:
            pipe.close()


class Instance:
    """
    Supervises one external process: start it, wait until it reports ready,
    run its hooks and stop it again.

    State machine: IDLE -> STARTING -> READY -> STOPPING -> IDLE, with FAILED
    reachable from STARTING. A FAILED instance only accepts stop().
    """

    def __init__(self, instance_config: InstanceConfig, ready_timeout: Optional[float] = None) -> None:
        self.config = instance_config
        self.ready_timeout = config.READY_TIMEOUT_SECONDS if ready_timeout is None else ready_timeout
        self.runtime = RuntimeState(assigned_port=instance_config.port)
        self._state = InstanceState.IDLE
        self._lock = threading.Lock()

    @classmethod
    def from_parameters(cls, parameters: Optional[Mapping[str, Any]], **kwargs: Any) -> "Instance":
        return cls(InstanceConfig.from_parameters(parameters), **kwargs)

    # --- Properties ---
    @property
    def name(self) -> str:
        return self.config.command

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def port(self) -> int:
        return self.config.port

    @property
    def state(self) -> InstanceState:
        return self._state

    @property
    def assigned_port(self) -> int:
        return self.runtime.assigned_port

    @property
    def pid(self) -> Optional[int]:
        process = self.runtime.process
        return process.pid if process is not None else None

    def status(self) -> Dict[str, Any]:
        """Returns a JSON-serializable snapshot of the instance."""
        return {
            "name": self.name,
            "host": self.host,
            "state": self._state.value,
            "port": self.runtime.assigned_port,
            "pid": self.pid,
        }

    def _log(self, message: str) -> None:
        """Lifecycle chatter: INFO when the command log is on, DEBUG otherwise."""
        log.log(logging.INFO if self.config.command_log else logging.DEBUG, f"[{self.name}] {message}")

    # --- Lifecycle ---
    def build_command(self, port: int) -> List[str]:
        """
        Returns the argv for a start on `port`: the command's own tokens
        followed by the templated extra arguments.
        """
        tokens = self.config.command.split()
        if not tokens:
            raise SpawnFailure(self.config.command, "the command is empty")
        actual_command, *more_args = tokens
        params = dict(self.config.extra_arguments)
        params[self.config.port_argument_name] = port
        return [actual_command] + more_args + templated_args(params, port)

    def _run_ready_hooks(self, port: int) -> None:
        self._log("Ready")
        if self.config.on_ready_commands:
            self._log("executing onReadyCommands...")
            run_hooks(self.config.on_ready_commands, HookMode.FAIL_FAST, port, self.config.command_log)
        self._log("Resolving...")

    def _on_process_exit(self, process: subprocess.Popen, returncode: int, detector: ReadinessDetector) -> None:
        """Runs on the exit watcher thread once the process and its pipes are done."""
        detector.feed_exit(returncode)
        with self._lock:
            if self.runtime.process is not process or self._state is InstanceState.STOPPING:
                return
            self.runtime.process = None
            if self._state is InstanceState.READY:
                log.warning(f"Instance '{self.name}' exited unexpectedly with code {returncode}.")
                self._state = InstanceState.IDLE

    def start(self, port: Optional[int] = None) -> None:
        """
        Launches the process and blocks until it is ready.

        :param port: Port for this start only; defaults to the configured port.
        :raises ValueError: If `port` is not an integer; the state is left untouched.
        :raises AlreadyRunning: If the instance is not idle.
        :raises InstanceError: If the process fails to launch or become ready.
        """
        assigned_port = self.config.port if port is None else int(port)
        with self._lock:
            if self._state is not InstanceState.IDLE:
                raise AlreadyRunning(self.name, self._state.value)
            self._state = InstanceState.STARTING
            self.runtime.assigned_port = assigned_port

        detector = ReadinessDetector(self.config.ready_message, lambda: self._run_ready_hooks(assigned_port))
        sink = None
        try:
            argv = self.build_command(assigned_port)
            self._log(f"EXECUTING: {' '.join(argv)}")
            sink = app_process.OutputSink(self.name, self.config.redirect_to_file)
            process = app_process.spawn_process(argv)
        except SpawnFailure as e:
            self._abort_start(sink, e)
            raise
        except OSError as e:
            error = SpawnFailure(self.config.command, str(e))
            self._abort_start(sink, error)
            raise error from e

        with self._lock:
            stopped = self._state is not InstanceState.STARTING
            if not stopped:
                self.runtime.process = process
        if stopped:
            # stop() ran before the handle was registered; it could not see this process.
            sink.close()
            _discard_unwatched(process)
            log.warning(f"Instance '{self.name}' was stopped while starting.")
            raise ProcessExited(process.returncode)

        def on_stdout(chunk: bytes) -> None:
            sink.write(chunk, logging.INFO)
            detector.feed_stdout(chunk)

        def on_stderr(chunk: bytes) -> None:
            sink.write(chunk, logging.ERROR)
            if not detector.done:
                self._log(f"ERROR {chunk.decode('utf-8', errors='replace')}")
            detector.feed_stderr(chunk)

        def on_exit(proc: subprocess.Popen, returncode: int) -> None:
            sink.close()
            self._on_process_exit(proc, returncode, detector)

        app_process.watch_process_output(process, self.name, on_stdout, on_stderr, on_exit)

        try:
            detector.wait(self.ready_timeout)
        except InstanceError as e:
            log.error(f"Instance '{self.name}' failed to start: {e}")
            self._fail()
            raise

        with self._lock:
            if self._state is InstanceState.STARTING:
                if self.runtime.process is process:
                    self._state = InstanceState.READY
                else:
                    # Became ready and exited before we got here.
                    log.warning(f"Instance '{self.name}' exited right after becoming ready.")
                    self._state = InstanceState.IDLE
                    return
        log.info(f"Instance '{self.name}' is ready on port {assigned_port}.")

    def _abort_start(self, sink: Optional[app_process.OutputSink], error: SpawnFailure) -> None:
        if sink is not None:
            sink.close()
        log.error(f"{error}")
        self._fail()

    def _fail(self) -> None:
        with self._lock:
            # A concurrent stop() owns the state from here on.
            if self._state is InstanceState.STARTING:
                self._state = InstanceState.FAILED

    def stop(self) -> None:
        """
        Runs the on-stop hooks, then terminates the process tree.
        Never raises; hook and termination failures are only logged.
        """
        with self._lock:
            self._state = InstanceState.STOPPING
            process = self.runtime.process
            port = self.runtime.assigned_port

        self._log("Stopped")
        if self.config.on_stop_commands:
            self._log("executing onStopCommands...")
            run_hooks(self.config.on_stop_commands, HookMode.BEST_EFFORT, port, self.config.command_log)

        if process is not None:
            try:
                terminate_process_tree(process)
            except OSError as e:
                log.error(f"Failed to terminate instance '{self.name}': {e}")

        with self._lock:
            if self.runtime.process is process:
                self.runtime.process = None
            self._state = InstanceState.IDLE

    def restart(self, port: Optional[int] = None) -> None:
        """Stops the instance, then starts it again."""
        self.stop()
        self.start(port)
