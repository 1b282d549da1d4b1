"""
Data models for the order lifecycle engine.

This module contains dataclasses for:
- Order: the order aggregate with its items, timeline and tips
- DeliveryPartner: courier directory entry
- Notification / OutgoingMessage: notification log entry and outgoing message

Thread safety:
- DeliveryPartner, TimelineEvent and OutgoingMessage are frozen (immutable)
- Order is mutable but is only ever mutated on a private copy by the engine
"""

from .order import (
    Order,
    OrderItem,
    OrderStatus,
    OrderTips,
    OrderTotals,
    DeliveryAddress,
    TimelineEvent,
    CancellationResult,
)
from .delivery_partner import DeliveryPartner, Location
from .notification import Notification, OutgoingMessage

__all__ = [
    # Order models
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderTips",
    "OrderTotals",
    "DeliveryAddress",
    "TimelineEvent",
    "CancellationResult",
    # Delivery models
    "DeliveryPartner",
    "Location",
    # Notification models
    "Notification",
    "OutgoingMessage",
]
