"""
Recurring Scan Timer
=====================
Drives the poll cycle from a single worker thread.

  - Non-reentrant: the callback runs on one thread, so a tick never
    overlaps the previous one. A slow tick delays the next tick
    instead of queueing behind it.
  - Fixed delay: the interval is measured from the end of one tick
    to the start of the next.
  - Fault-surviving: an exception raised by a tick is logged and the
    timer re-arms for the next interval.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ScanTimer:
    """Background timer that calls `callback` every `interval_ms`."""

    def __init__(
        self,
        callback: Callable[[], None],
        interval_ms: int = 100,
        name: str = "scan-timer",
    ):
        self.callback = callback
        self.interval_ms = interval_ms
        self.name = name
        self._lock = threading.Lock()
        self._running = False
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self):
        """Arm the timer. Calling start on a running timer is a no-op."""
        with self._lock:
            if self._running:
                return
            self._running = True
            # Fresh event per run: a worker still finishing its last tick
            # after stop() keeps observing its own (set) event.
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,),
                name=self.name, daemon=True,
            )
            self._thread.start()

    def stop(self, timeout: float = 5.0):
        """
        Disarm the timer and wait for an in-flight tick to finish.

        When called from inside a tick the join is skipped; the worker
        exits as soon as the current tick returns.
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._stop_event.set()
            thread = self._thread
            self._thread = None

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(
                    "%s: tick still running after %.1f s", self.name, timeout
                )

    def _run(self, stop_event: threading.Event):
        interval_sec = self.interval_ms / 1000.0
        while not stop_event.wait(interval_sec):
            try:
                self.callback()
            except Exception:
                logger.exception("Scan cycle exception")
