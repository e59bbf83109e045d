"""
Cooperative cancellation handle shared by a ping, its streams and its runners.

A ``CancellationToken`` is set once at configuration time. Runners and
interval waits register a one-shot callback for the duration of a single
operation and must remove it on every exit path, so a long-running stream
never accumulates listeners.
"""

import logging
import threading
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Thread-safe "cancel once" flag with callback notification.

    Callbacks run on the thread that calls ``cancel()``; asyncio consumers are
    expected to hop back onto their loop with ``loop.call_soon_threadsafe``.
    """

    def __init__(self):
        self._event = threading.Event()
        # Reentrant: cancel() may run from a signal handler on a thread that
        # is already inside add_callback() or remove_callback().
        self._lock = threading.RLock()
        self._callbacks: List[Callable[[], None]] = []
        self._timer: Optional[threading.Timer] = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Trigger cancellation and notify every registered callback once."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

        logger.debug(f"Cancellation requested, notifying {len(callbacks)} listeners")
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Cancellation callback {callback!r} failed: {e}")

    def cancel_after(self, seconds: float) -> "CancellationToken":
        """Schedule ``cancel()`` after ``seconds``; returns self for chaining."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(seconds, self.cancel)
            timer.daemon = True
            self._timer = timer
        timer.start()
        return self

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Register a one-shot callback; runs immediately if already cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                if not self._event.is_set():
                    return
                # cancel() ran re-entrantly during the append
                if callback not in self._callbacks:
                    return
                self._callbacks.remove(callback)
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        """Detach a callback registered with ``add_callback``; no-op if absent."""
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def __repr__(self) -> str:
        state = "cancelled" if self.is_cancelled else "active"
        return f"CancellationToken({state})"
