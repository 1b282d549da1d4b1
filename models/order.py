"""
Order data models.

These models represent a food order as it moves from placement through
the chef and the delivery partner to the customer's door.

Thread Safety:
    - Order is a mutable dataclass, but only the engine mutates it, and only
      on a private copy while holding that order's lock
    - Readers receive detached copies from the store (Order.copy())
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Any, List, Optional


class OrderStatus(Enum):
    """
    Status of an order.

    Lifecycle:
        PAYMENT_CONFIRMED -> SENT_TO_CHEF -> CHEF_ACCEPTED -> PREPARING
        -> READY_FOR_PICKUP -> DELIVERY_ASSIGNED -> PICKED_UP
        -> OUT_FOR_DELIVERY -> DELIVERED
        Any pre-delivery status -> CANCELLED
    """

    PENDING_PAYMENT = "pending_payment"
    """Waiting for the payment gateway. Owned by the gateway, not the engine."""

    PAYMENT_CONFIRMED = "payment_confirmed"
    """Placed and paid; still inside the free-cancellation window."""

    SENT_TO_CHEF = "sent_to_chef"
    """Waiting for the chef to accept."""

    CHEF_ACCEPTED = "chef_accepted"
    """Chef accepted and gave an ETA."""

    PREPARING = "preparing"
    """Chef is cooking."""

    READY_FOR_PICKUP = "ready_for_pickup"
    """Food is packed and waiting for a courier."""

    DELIVERY_ASSIGNED = "delivery_assigned"
    """A delivery partner has been assigned."""

    PICKED_UP = "picked_up"
    """Courier collected the food."""

    OUT_FOR_DELIVERY = "out_for_delivery"
    """Courier is on the way to the customer."""

    DELIVERED = "delivered"
    """Terminal: handed to the customer."""

    CANCELLED = "cancelled"
    """Terminal: cancelled before delivery."""

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _parse_quantity(value: Any) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValueError(f"quantity must be a whole number, got {value!r}")
    return int(value)


@dataclass
class OrderItem:
    """A single line of an order."""

    dish_id: str
    """Menu item identifier."""

    dish_name: str
    """Display name of the dish."""

    quantity: int
    """Number of portions."""

    price: float
    """Unit price."""

    special_instructions: str = ""
    """Optional note for the chef."""

    @property
    def line_total(self) -> float:
        return round(self.quantity * self.price, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dish_id": self.dish_id,
            "dish_name": self.dish_name,
            "quantity": self.quantity,
            "price": self.price,
            "line_total": self.line_total,
            "special_instructions": self.special_instructions,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrderItem":
        return cls(
            dish_id=str(data.get("dish_id", "")),
            dish_name=str(data.get("dish_name", "")),
            quantity=_parse_quantity(data.get("quantity", 0)),
            price=float(data.get("price", 0.0)),
            special_instructions=str(data.get("special_instructions") or ""),
        )


@dataclass
class DeliveryAddress:
    """Where the order is going."""

    full_address: str
    latitude: float = 0.0
    longitude: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "full_address": self.full_address,
            "coordinates": {"latitude": self.latitude, "longitude": self.longitude},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeliveryAddress":
        coordinates = data.get("coordinates") or {}
        return cls(
            full_address=str(data.get("full_address", "")),
            latitude=float(coordinates.get("latitude", data.get("latitude", 0.0))),
            longitude=float(coordinates.get("longitude", data.get("longitude", 0.0))),
        )


@dataclass
class OrderTotals:
    """
    Money captured at placement.

    total is always subtotal + delivery_fee + taxes; use from_parts().
    """

    subtotal: float
    delivery_fee: float
    taxes: float
    total: float

    @classmethod
    def from_parts(cls, subtotal: float, delivery_fee: float, taxes: float) -> "OrderTotals":
        return cls(
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            taxes=taxes,
            total=round(subtotal + delivery_fee + taxes, 2),
        )


@dataclass(frozen=True)
class TimelineEvent:
    """One entry of an order's append-only history."""

    status: OrderStatus
    timestamp: datetime
    message: str
    estimated_time: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "status": self.status.value,
            "timestamp": _iso(self.timestamp),
            "message": self.message,
        }
        if self.estimated_time:
            data["estimated_time"] = self.estimated_time
        return data


@dataclass
class OrderTips:
    """Tips per recipient kind. Setting a tip again replaces it."""

    chef_tip: Optional[float] = None
    chef_message: Optional[str] = None
    chef_tipped_at: Optional[datetime] = None
    delivery_tip: Optional[float] = None
    delivery_message: Optional[str] = None
    delivery_tipped_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chef_tip": self.chef_tip,
            "chef_message": self.chef_message,
            "chef_tipped_at": _iso(self.chef_tipped_at),
            "delivery_tip": self.delivery_tip,
            "delivery_message": self.delivery_message,
            "delivery_tipped_at": _iso(self.delivery_tipped_at),
        }


@dataclass
class Order:
    """
    The order aggregate.

    Lifecycle:
        1. Created by OrderEngine.place_order() in PAYMENT_CONFIRMED
        2. Sent to the chef by the confirmation timer (or early confirm)
        3. Moved forward by chef and courier actions
        4. Ends DELIVERED or CANCELLED and stays queryable

    Commerce fields never change after placement.
    """

    id: str
    customer_id: str
    chef_id: str
    items: List[OrderItem]
    delivery_address: DeliveryAddress
    subtotal: float
    delivery_fee: float
    taxes: float
    total: float
    placed_at: datetime
    status: OrderStatus = OrderStatus.PAYMENT_CONFIRMED

    customer_name: str = ""
    chef_name: str = ""

    delivery_partner_id: Optional[str] = None
    delivery_partner_name: Optional[str] = None

    estimated_delivery_time: Optional[datetime] = None
    timeline: List[TimelineEvent] = field(default_factory=list)

    can_cancel_free: bool = True
    """Frozen to False the moment the order is sent to the chef."""

    cancellation_penalty: float = 0.0
    """Penalty that applies once free cancellation is gone (set at placement)."""

    cancellation_reason: Optional[str] = None
    penalty_amount: Optional[float] = None
    refund_amount: Optional[float] = None

    tips: OrderTips = field(default_factory=OrderTips)

    can_rate: bool = False
    can_tip: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def last_event(self) -> Optional[TimelineEvent]:
        return self.timeline[-1] if self.timeline else None

    def copy(self) -> "Order":
        """Detached deep copy, safe to hand to another thread."""
        return deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain JSON-safe data for API responses."""
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "chef_id": self.chef_id,
            "chef_name": self.chef_name,
            "items": [item.to_dict() for item in self.items],
            "delivery_address": self.delivery_address.to_dict(),
            "subtotal": self.subtotal,
            "delivery_fee": self.delivery_fee,
            "taxes": self.taxes,
            "total": self.total,
            "status": self.status.value,
            "placed_at": _iso(self.placed_at),
            "estimated_delivery_time": _iso(self.estimated_delivery_time),
            "delivery_partner_id": self.delivery_partner_id,
            "delivery_partner_name": self.delivery_partner_name,
            "timeline": [event.to_dict() for event in self.timeline],
            "can_cancel_free": self.can_cancel_free,
            "cancellation_penalty": self.cancellation_penalty,
            "cancellation_reason": self.cancellation_reason,
            "penalty_amount": self.penalty_amount,
            "refund_amount": self.refund_amount,
            "tips": self.tips.to_dict(),
            "can_rate": self.can_rate,
            "can_tip": self.can_tip,
        }


@dataclass(frozen=True)
class CancellationResult:
    """What the customer is charged and refunded when cancelling."""

    order_id: str
    penalty_amount: float
    refund_amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "penalty_amount": self.penalty_amount,
            "refund_amount": self.refund_amount,
        }


@dataclass(frozen=True)
class ReceivedTip:
    """One tip as seen by the chef or courier who got it."""

    order_id: str
    recipient_kind: str
    """Either chef or delivery."""

    amount: float
    message: Optional[str]
    tipped_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "recipient_kind": self.recipient_kind,
            "amount": self.amount,
            "message": self.message,
            "tipped_at": _iso(self.tipped_at),
        }


@dataclass(frozen=True)
class TipsReceived:
    """Every tip one chef or delivery partner received, newest first."""

    recipient_id: str
    tips: List[ReceivedTip]

    @property
    def total(self) -> float:
        return round(sum(tip.amount for tip in self.tips), 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recipient_id": self.recipient_id,
            "tips": [tip.to_dict() for tip in self.tips],
            "count": len(self.tips),
            "total": self.total,
        }
