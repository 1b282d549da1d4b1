"""
Services layer for the order lifecycle engine.

This package contains the stateful services:
- OrderEngine: The order state machine
- InMemoryOrderStore: Authoritative order collection
- DeliveryPartnerDirectory: Candidate couriers and availability
- ConfirmationTimers: Per-order deferred send-to-chef timers
- NotificationDispatcher: Bounded notification fan-out and inbox

Thread Model:
    Main Thread (Flask)
    ├── Request threads (engine operations)
    ├── Confirmation timer threads (one per pending order)
    └── Notify worker pool (NOTIFICATION_WORKERS)

All services are constructed once in create_app() and injected into the
engine.
"""

from .order_store import OrderStore, InMemoryOrderStore
from .partner_directory import DeliveryPartnerDirectory, DEFAULT_PARTNERS
from .confirmation_timer import ConfirmationTimers, thread_timer
from .notification_dispatcher import (
    LoggingTransport,
    NotificationDispatcher,
    NotificationLog,
    NotificationTransport,
)
from .order_engine import OrderEngine

__all__ = [
    "OrderStore",
    "InMemoryOrderStore",
    "DeliveryPartnerDirectory",
    "DEFAULT_PARTNERS",
    "ConfirmationTimers",
    "thread_timer",
    "LoggingTransport",
    "NotificationDispatcher",
    "NotificationLog",
    "NotificationTransport",
    "OrderEngine",
]
