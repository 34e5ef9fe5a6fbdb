import psutil
import logging
import subprocess
from typing import List, Set

from poolcmd.local.config import effective_settings as config

log = logging.getLogger(__name__)


def identify_processes_to_stop(pid: int) -> Set[psutil.Process]:
    """
    Collects a process and all of its descendants.

    :param pid: The PID of the instance's process.
    :return: A set of psutil.Process objects to be stopped (empty if it is gone).
    """
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return set()

    all_procs_to_stop: Set[psutil.Process] = {parent}
    try:
        all_procs_to_stop.update(parent.children(recursive=True))
    except psutil.NoSuchProcess:
        log.debug(f"Process {pid} no longer exists, skipping children retrieval.")
    return all_procs_to_stop


def _terminate_processes(processes: Set[psutil.Process]) -> None:
    """Sends SIGTERM to all processes."""
    for proc in processes:
        try:
            log.debug(f"Sending SIGTERM to {proc.name()} (PID {proc.pid})")
            proc.terminate()
        except psutil.NoSuchProcess:
            log.debug(f"Process {proc.pid} no longer exists, skipping termination.")
            continue


def _forceful_kill(processes: List[psutil.Process]) -> None:
    """Forcefully kills processes that didn't terminate gracefully."""
    if not processes:
        return

    log.warning(f"{len(processes)} processes did not terminate gracefully. Forcing shutdown...")
    for proc in processes:
        try:
            log.warning(f"Killing stubborn process {proc.name()} (PID {proc.pid}).")
            proc.kill()
        except psutil.NoSuchProcess:
            continue


def graceful_shutdown_sequence(processes: Set[psutil.Process], timeout: float) -> None:
    """
    Terminates the given processes, waits, then kills whatever is still alive.

    :param processes: A set of psutil.Process objects to shut down.
    :param timeout: Seconds to wait after SIGTERM before SIGKILL.
    """
    _terminate_processes(processes)

    procs_list = list(processes)
    try:
        _, alive = psutil.wait_procs(procs_list, timeout=timeout)
    except psutil.TimeoutExpired:
        alive = procs_list
    except psutil.NoSuchProcess:
        alive = []

    _forceful_kill(alive)


def terminate_process_tree(process: subprocess.Popen) -> None:
    """
    Stops a spawned process together with everything it started, and reaps it.
    Never raises: a process that is already gone is simply skipped.

    :param process: The Popen handle owned by an instance.
    """
    if process.poll() is None:
        try:
            graceful_shutdown_sequence(identify_processes_to_stop(process.pid), config.GRACEFUL_SHUTDOWN_TIMEOUT)
        except psutil.Error as e:
            log.error(f"Failed to stop process tree of PID {process.pid}: {e}")

    try:
        process.wait(timeout=config.GRACEFUL_SHUTDOWN_TIMEOUT)
    except subprocess.TimeoutExpired:
        log.error(f"Process {process.pid} is still running after shutdown; killing it.")
        process.kill()
        process.wait()
