import logging
import subprocess
import sys
import threading
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, List, Optional

from poolcmd.local.config import effective_settings as config

ChunkHandler = Callable[[bytes], None]


def get_popen_creation_flags() -> Dict[str, Any]:
    """
    Returns platform-specific keyword arguments for subprocess.Popen.

    On Windows, the child gets its own process group without a console window.
    Elsewhere it is started in a new session so the whole tree can be signalled.

    :return dict: A dictionary of keyword arguments for Popen.
    """
    if sys.platform == "win32":
        return {
            "creationflags": subprocess.CREATE_NEW_PROCESS_GROUP | subprocess.CREATE_NO_WINDOW
        }
    return {"start_new_session": True}


def spawn_process(argv: List[str]) -> subprocess.Popen:
    """
    Launches `argv` with piped stdout/stderr and no stdin.

    :param argv: The executable followed by its arguments.
    :return subprocess.Popen: The running process.
    :raises OSError: If the executable cannot be launched.
    """
    return subprocess.Popen(
        argv,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=subprocess.DEVNULL,
        **get_popen_creation_flags()
    )


class OutputSink:
    """
    Destination for a child's raw output: either a file the bytes are appended
    to, or the `proc.<name>` logger, one record per non-empty line.
    """

    def __init__(self, process_name: str, redirect_to_file: Optional[Path] = None) -> None:
        self.proc_logger = logging.getLogger(f"proc.{process_name}")
        self._file: Optional[BinaryIO] = None
        self._lock = threading.Lock()
        if redirect_to_file is not None:
            path = Path(redirect_to_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            self._file = path.open("ab")

    def write(self, chunk: bytes, level: int) -> None:
        if self._file is not None:
            with self._lock:
                self._file.write(chunk)
                self._file.flush()
            return
        for line in chunk.decode("utf-8", errors="replace").splitlines():
            line = line.rstrip()
            if line:
                self.proc_logger.log(level, line)

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None


def _read_pipe(pipe: BinaryIO, process_name: str, handler: ChunkHandler) -> None:
    """Target function for reader threads. Hands every chunk read from `pipe` to `handler`."""
    proc_logger = logging.getLogger(f"proc.{process_name}")
    try:
        for chunk in iter(lambda: pipe.read1(config.STREAM_CHUNK_SIZE), b""):
            try:
                handler(chunk)
            except Exception as e:
                proc_logger.error(f"Error in output handler: {e}", exc_info=True)
    except (OSError, ValueError) as e:
        proc_logger.debug(f"Pipe reader for {process_name} stream exited: {e}")
    finally:
        pipe.close()


def _watch_exit(
    process: subprocess.Popen,
    readers: List[threading.Thread],
    on_exit: Callable[[subprocess.Popen, int], None],
) -> None:
    """Waits for `process`, drains its readers, then reports the exit code."""
    returncode = process.wait()
    for reader in readers:
        reader.join()
    on_exit(process, returncode)


def watch_process_output(
    process: subprocess.Popen,
    process_name: str,
    on_stdout: ChunkHandler,
    on_stderr: ChunkHandler,
    on_exit: Callable[[subprocess.Popen, int], None],
) -> List[threading.Thread]:
    """
    Consumes a process's stdout/stderr in background threads.

    Each pipe gets a daemon reader thread so the child never blocks on a full
    pipe. A third thread waits for the process and calls `on_exit` only after
    both readers have drained, so every output chunk is handled before the exit.

    :param process: The `subprocess.Popen` object to monitor.
    :param process_name: The logical name of the process for thread names and logging.
    :param on_stdout: Called with each stdout chunk, in arrival order.
    :param on_stderr: Called with each stderr chunk, in arrival order.
    :param on_exit: Called with the process and its return code once it has exited.
    :return list: The started threads (stdout reader, stderr reader, exit watcher).
    """
    readers: List[threading.Thread] = []
    for pipe, handler, stream in ((process.stdout, on_stdout, "stdout"), (process.stderr, on_stderr, "stderr")):
        if pipe is None:
            continue
        reader = threading.Thread(
            target=_read_pipe,
            args=(pipe, process_name, handler),
            daemon=True,
            name=f"{process_name}-{stream}-reader"
        )
        reader.start()
        readers.append(reader)

    watcher = threading.Thread(
        target=_watch_exit,
        args=(process, readers, on_exit),
        daemon=True,
        name=f"{process_name}-exit-watcher"
    )
    watcher.start()
    return readers + [watcher]
