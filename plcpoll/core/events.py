"""
Change Notification
====================
A payload-less signal: subscribers are told "something changed"
and re-read whatever public properties they care about.

Delivery is synchronous on the thread that fires the signal (the
scan thread, or the caller of connect/disconnect). Subscribers
must return quickly; a slow subscriber delays the next scan.
"""

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class Signal:
    """Subscribe/fire list of zero-argument callbacks."""

    def __init__(self, name: str = "signal"):
        self.name = name
        self._lock = threading.Lock()
        self._subscribers: list[Callback] = []

    def subscribe(self, callback: Callback) -> Callback:
        """Attach a callback. Returns it so this can be used as a decorator."""
        with self._lock:
            self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback: Callback):
        with self._lock:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def fire(self):
        """Invoke every subscriber on the current thread."""
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback()
            except Exception:
                logger.exception("Subscriber to %s raised", self.name)
