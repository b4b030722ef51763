"""
Periodic Task

Runs a callback on a fixed interval in a daemon thread, using
threading.Event for sleep/wake so stop() takes effect immediately.
"""

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Calls ``callback()`` every ``interval_s`` seconds until stopped.

    The first call happens one interval after start. A task can be started
    once; create a new one for the next session.
    """

    def __init__(self, callback: Callable[[], None], interval_s: float, name: str = "PeriodicTask"):
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._callback = callback
        self._interval_s = interval_s
        self._name = name

        # Shutdown signal (like a CancellationToken)
        self._shutdown = threading.Event()
        self._thread: threading.Thread | None = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._shutdown.is_set()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError(f"{self._name} already started")

        logger.debug(f"Starting {self._name} every {self._interval_s:g}s")
        self._thread = threading.Thread(
            target=self._run,
            name=self._name,
            daemon=True,  # Dies with parent process
        )
        self._thread.start()

    def stop(self) -> None:
        """
        Stop the task.

        Safe to call from the callback itself (e.g. a check that aborts the
        session): the loop exits after the callback returns.
        """
        if not self._thread:
            return

        self._shutdown.set()  # Wakes thread immediately from wait()
        if self._thread is threading.current_thread():
            return

        self._thread.join(timeout=2.0)
        if self._thread.is_alive():
            logger.warning(f"{self._name} did not stop cleanly")
        else:
            logger.debug(f"{self._name} stopped")

    def _run(self) -> None:
        # Returns True if shutdown was signaled, False if timeout
        while not self._shutdown.wait(timeout=self._interval_s):
            self.ticks += 1
            try:
                self._callback()
            except Exception as e:
                logger.error(f"{self._name} callback failed: {e}", exc_info=True)

        logger.debug(f"{self._name} loop exited")
