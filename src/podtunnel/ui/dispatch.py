"""Task queue handing work from background threads to the UI loop.

Background threads only enqueue callables; the UI loop is the single
consumer and runs them one at a time, in submission order.
"""

import logging
import queue
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class UIQueue:
    """FIFO of callables drained exclusively by the UI loop."""

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[Callable[[], None]] = queue.SimpleQueue()
        self._exec_lock = threading.Lock()

    def run_on_ui_thread(self, fn: Callable[[], None]) -> None:
        """Queue ``fn`` for the next drain. Safe from any thread."""
        self._queue.put(fn)

    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self, timeout: float | None = None) -> int:
        """Run every queued callable.

        Args:
            timeout: If given, wait up to this many seconds for the first
                callable when the queue is empty

        Returns:
            Number of callables executed
        """
        executed = 0
        if timeout is not None:
            try:
                first = self._queue.get(timeout=timeout)
            except queue.Empty:
                return 0
            self._execute(first)
            executed += 1

        while True:
            try:
                fn = self._queue.get_nowait()
            except queue.Empty:
                return executed
            self._execute(fn)
            executed += 1

    def _execute(self, fn: Callable[[], None]) -> None:
        with self._exec_lock:
            try:
                fn()
            except Exception:
                logger.exception("UI task failed")
