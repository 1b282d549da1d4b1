"""
Notification dispatcher with bounded fan-out.

Takes the messages produced by a committed transition and:
1. Appends each one to the recipient's in-process notification log
   (synchronously, so the log reflects a transition as soon as it commits)
2. Hands each one to the external transport on a worker pool
   (push/SMS delivery is the transport's concern)

Thread Model:
    Engine thread (request or timer)
    └── dispatch(messages) - never blocks on the transport

    Notify worker threads (ThreadPoolExecutor, NOTIFICATION_WORKERS)
    └── transport.notify(...) one task per message

Thread Safety:
    - NotificationLog uses threading.Lock for all operations
    - Transport failures are logged on the worker and never reach the engine
    - Nothing here knows about orders or their locks; dispatch() is always
      called after the order lock has been released

Usage:
    dispatcher = NotificationDispatcher(transport=LoggingTransport(), max_workers=4)
    dispatcher.dispatch(messages)

    # Polling (UI)
    dispatcher.log.for_recipient("cust_1")

    # At app shutdown
    dispatcher.shutdown()
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set

from models.notification import Notification, OutgoingMessage
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class NotificationTransport(Protocol):
    """External delivery channel (push, SMS, persisted inbox)."""

    def notify(self, recipient_id: str, title: str, body: str, payload: Dict[str, Any]) -> None:
        ...


class LoggingTransport:
    """Transport that only writes the message to the log."""

    def notify(self, recipient_id: str, title: str, body: str, payload: Dict[str, Any]) -> None:
        logger.info(f"Notification to {recipient_id}: {title} - {body}")


class NotificationLog:
    """
    Thread-safe per-recipient notification inbox.

    Newest entries first, matching how the apps render them.
    """

    def __init__(self):
        self._entries: Dict[str, List[Notification]] = {}
        self._lock = threading.Lock()

    def append(self, notification: Notification) -> None:
        with self._lock:
            self._entries.setdefault(notification.recipient_id, []).insert(0, notification)

    def for_recipient(self, recipient_id: str, order_id: Optional[str] = None) -> List[Notification]:
        with self._lock:
            entries = list(self._entries.get(recipient_id, []))
        if order_id is not None:
            entries = [n for n in entries if n.order_id == order_id]
        return entries

    def unread_count(self, recipient_id: str) -> int:
        with self._lock:
            return sum(1 for n in self._entries.get(recipient_id, []) if not n.is_read)

    def mark_as_read(self, recipient_id: str, notification_id: str) -> bool:
        with self._lock:
            for notification in self._entries.get(recipient_id, []):
                if notification.id == notification_id:
                    notification.is_read = True
                    return True
        return False

    def mark_all_as_read(self, recipient_id: str) -> int:
        marked = 0
        with self._lock:
            for notification in self._entries.get(recipient_id, []):
                if not notification.is_read:
                    notification.is_read = True
                    marked += 1
        return marked

    def count(self) -> int:
        with self._lock:
            return sum(len(v) for v in self._entries.values())


class NotificationDispatcher:
    """
    Fan-out of outgoing messages.

    Attributes:
        log: NotificationLog for reading delivered notifications
    """

    def __init__(
        self,
        transport: Optional[NotificationTransport] = None,
        max_workers: int = 4,
        log: Optional[NotificationLog] = None,
    ):
        """
        Initialize dispatcher.

        Args:
            transport: External delivery channel (defaults to LoggingTransport)
            max_workers: Upper bound on concurrent transport calls
            log: Notification log (a fresh one if not provided)
        """
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        self._transport = transport or LoggingTransport()
        self._log = log or NotificationLog()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="Notify")

        # Track in-flight deliveries for flush()
        self._in_flight: Set[Future] = set()
        self._in_flight_lock = threading.Lock()
        self._is_shutdown = False

        logger.info(f"NotificationDispatcher initialized ({max_workers} workers)")

    @property
    def log(self) -> NotificationLog:
        return self._log

    def dispatch(self, messages: Iterable[OutgoingMessage]) -> List[Notification]:
        """
        Record and deliver messages.

        Args:
            messages: Messages from one committed transition

        Returns:
            The notifications appended to the log
        """
        notifications = []
        for message in messages:
            notification = Notification.from_message(message)
            self._log.append(notification)
            notifications.append(notification)
            self._submit(message)
        return notifications

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for in-flight transport calls.

        Returns:
            True if everything finished within the timeout
        """
        with self._in_flight_lock:
            pending = list(self._in_flight)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_pending: bool = True) -> None:
        """Stop the worker pool. Call this during application shutdown."""
        if self._is_shutdown:
            return
        self._is_shutdown = True
        logger.info("Shutting down notification workers...")
        self._executor.shutdown(wait=wait_for_pending)
        logger.info("Notification dispatcher shutdown complete")

    def _submit(self, message: OutgoingMessage) -> None:
        if self._is_shutdown:
            logger.warning(f"Dispatcher is shut down; '{message.title}' to {message.recipient_id} kept in log only")
            return

        try:
            future = self._executor.submit(self._deliver, message)
        except RuntimeError:
            # Lost a race with shutdown()
            logger.warning(f"Dispatcher is shut down; '{message.title}' to {message.recipient_id} kept in log only")
            return
        with self._in_flight_lock:
            self._in_flight.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._in_flight_lock:
            self._in_flight.discard(future)

    def _deliver(self, message: OutgoingMessage) -> None:
        """Worker body: one transport call, failures logged."""
        try:
            self._transport.notify(
                message.recipient_id,
                message.title,
                message.body,
                dict(message.payload),
            )
        except Exception as e:
            logger.error(
                f"Transport failed for '{message.title}' to {message.recipient_id}: {e}",
                exc_info=True,
            )
