import re
import logging
import threading
from concurrent.futures import Future
from typing import Callable, Optional, Union

from poolcmd.local.instance.errors import InstanceError, ProcessExited, ReadyTimeout, StderrObserved

log = logging.getLogger(__name__)

# ESC, up to two of "[(?);", optional ";digit" groups, then the command character.
ANSI_ESCAPE = re.compile(r"\x1b[\[\(\?\);]{0,2}(?:;?\d)*.")

Chunk = Union[bytes, str]


def strip_ansi(text: str) -> str:
    """Removes terminal escape sequences (colors, cursor moves) from `text`."""
    return ANSI_ESCAPE.sub("", text)


def _decode(chunk: Chunk) -> str:
    if isinstance(chunk, bytes):
        return chunk.decode("utf-8", errors="replace")
    return chunk


class ReadinessDetector:
    """
    Turns the output of a starting process into a single ready/failed outcome.

    Output chunks are fed in arrival order by the pipe reader threads; feeding
    never blocks, so the readers keep draining the pipes. The first stdout
    chunk containing the ready message marks the process as matched, and the
    thread blocked in `wait()` then runs `on_ready` (the on-ready hooks) and
    resolves once it returns. Stderr output, an exit before the match or a
    failing hook reject the waiter instead. Whatever settles first wins, later
    events are ignored.
    """

    def __init__(self, ready_message: str, on_ready: Optional[Callable[[], None]] = None) -> None:
        self.ready_message = ready_message
        self._on_ready = on_ready
        self._future: "Future[None]" = Future()
        self._lock = threading.Lock()
        self._matched = False
        # Set on the match or on any settlement, whichever comes first.
        self._signal = threading.Event()

    @property
    def done(self) -> bool:
        return self._future.done()

    @property
    def matched(self) -> bool:
        """True once the ready message has been seen, even if hooks are still running."""
        return self._matched

    def _settle(self, error: Optional[InstanceError] = None) -> bool:
        """Resolves or rejects the waiter; returns False if it was already settled."""
        with self._lock:
            if self._future.done():
                return False
            if error is None:
                self._future.set_result(None)
            else:
                self._future.set_exception(error)
        self._signal.set()
        return True

    def feed_stdout(self, chunk: Chunk) -> None:
        message = strip_ansi(_decode(chunk))
        with self._lock:
            if self._matched or self._future.done():
                return
            if self.ready_message not in message:
                return
            self._matched = True
        log.debug("Ready message received.")
        self._signal.set()

    def feed_stderr(self, chunk: Chunk) -> None:
        self._settle(StderrObserved(_decode(chunk)))

    def feed_exit(self, returncode: Optional[int]) -> None:
        # After the match, an exit is the controller's business, not a start failure.
        with self._lock:
            if self._matched:
                return
        self._settle(ProcessExited(returncode))

    def reject(self, error: InstanceError) -> None:
        self._settle(error)

    def wait(self, timeout: Optional[float] = None) -> None:
        """
        Blocks until the process is ready, running the on-ready callback on
        the calling thread once the ready message arrives.

        :param timeout: Seconds to wait for the ready message; None or 0 waits
            forever. The on-ready callback itself is not timed.
        :raises InstanceError: The rejection reason, or ReadyTimeout.
        """
        if not self._signal.wait(timeout or None):
            with self._lock:
                matched = self._matched
            if not matched:
                error = ReadyTimeout(timeout)
                if self._settle(error):
                    raise error
        if self._future.done():
            self._future.result()
            return

        on_ready, self._on_ready = self._on_ready, None
        if on_ready is not None:
            try:
                on_ready()
            except InstanceError as e:
                self._settle(e)
        self._settle()
        # Stderr that arrived while the callback ran wins over its success.
        self._future.result()
