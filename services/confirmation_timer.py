"""
Deferred confirmation timers.

One single-shot timer per order, scheduled at placement for the free
cancellation window. When it fires it sends the order to the chef. It is
cancelled when the customer cancels or confirms early, so cancelled orders
never leave a live timer behind.

Thread Model:
    Main / request threads
    └── schedule() / cancel()

    Timer threads (one per pending order, named "Confirm-<order id>")
    └── wait for the grace window, then call the callback

Thread Safety:
    - The registry of pending timers is guarded by a lock
    - cancel() is idempotent: unknown, fired and already-cancelled ids are
      no-ops
    - A timer that has already woken up when cancel() runs still calls its
      callback. The engine makes that harmless: the callback takes the same
      per-order lock as cancel_order() and then finds an order that is no
      longer payment_confirmed.

Usage:
    timers = ConfirmationTimers(delay_seconds=30.0)
    timers.schedule(order_id, engine.send_to_chef)
    timers.cancel(order_id)
    timers.cancel_all()    # at shutdown
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Optional

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


TimerCallback = Callable[[str], object]
TimerFactory = Callable[[float, Callable[[], None], str], object]


def thread_timer(delay_seconds: float, function: Callable[[], None], name: str) -> threading.Timer:
    """Default timer factory: a daemon threading.Timer with a readable name."""
    timer = threading.Timer(delay_seconds, function)
    timer.name = name
    timer.daemon = True
    return timer


class _PendingTimer:
    """Registry entry; identity tells a stale fire from the current one."""

    __slots__ = ("order_id", "timer")

    def __init__(self, order_id: str):
        self.order_id = order_id
        self.timer = None


class ConfirmationTimers:
    """
    Cancellable, per-order delayed actions.

    Attributes:
        delay_seconds: Default delay used by schedule()
    """

    def __init__(
        self,
        delay_seconds: float,
        timer_factory: Optional[TimerFactory] = None,
    ):
        """
        Initialize the timer registry.

        Args:
            delay_seconds: Default delay (the grace window)
            timer_factory: Builds timer objects exposing start() and cancel().
                Defaults to thread_timer; tests inject a manual factory.
        """
        self.delay_seconds = delay_seconds
        self._timer_factory = timer_factory or thread_timer
        self._pending: Dict[str, _PendingTimer] = {}
        self._lock = threading.Lock()

        logger.info(f"ConfirmationTimers initialized (delay: {delay_seconds}s)")

    def schedule(
        self,
        order_id: str,
        callback: TimerCallback,
        delay_seconds: Optional[float] = None,
    ) -> None:
        """
        Schedule callback(order_id) after the delay.

        Scheduling an order that already has a pending timer replaces it.
        """
        delay = self.delay_seconds if delay_seconds is None else delay_seconds
        entry = _PendingTimer(order_id)
        entry.timer = self._timer_factory(
            delay,
            lambda: self._fire(entry, callback),
            f"Confirm-{order_id}",
        )

        with self._lock:
            previous = self._pending.pop(order_id, None)
            self._pending[order_id] = entry
            entry.timer.start()

        if previous is not None:
            previous.timer.cancel()
            logger.warning(f"Replaced pending confirmation timer for {order_id}")

        logger.debug(f"Confirmation timer for {order_id} scheduled in {delay}s")

    def cancel(self, order_id: str) -> bool:
        """
        Cancel the pending timer for an order.

        Returns:
            True if a pending timer was cancelled, False if there was none
        """
        with self._lock:
            entry = self._pending.pop(order_id, None)
        if entry is None:
            return False

        entry.timer.cancel()
        logger.debug(f"Confirmation timer for {order_id} cancelled")
        return True

    def is_pending(self, order_id: str) -> bool:
        with self._lock:
            return order_id in self._pending

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def cancel_all(self) -> int:
        """
        Cancel every pending timer.

        Call this during application shutdown.

        Returns:
            Number of timers cancelled
        """
        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()

        for entry in entries:
            entry.timer.cancel()

        if entries:
            logger.info(f"Cancelled {len(entries)} pending confirmation timers")
        return len(entries)

    def _fire(self, entry: _PendingTimer, callback: TimerCallback) -> None:
        """Timer thread body."""
        with self._lock:
            if self._pending.get(entry.order_id) is entry:
                del self._pending[entry.order_id]

        logger.info(f"Grace window elapsed for {entry.order_id}")

        try:
            callback(entry.order_id)
        except Exception as e:
            # Nobody is waiting on a timer thread; the log is the only report
            logger.error(f"Confirmation timer for {entry.order_id} failed: {e}", exc_info=True)
