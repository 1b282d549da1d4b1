"""
Declarative notification table.

Each committed transition (from_status, to_status) maps to the list of
messages it produces. Rules are rendered against a context dict the engine
builds after the commit, so the fan-out is data rather than code spread
across the transition handlers.

Recipient selectors:
    CUSTOMER            - the order's customer
    CHEF                - the order's chef
    DELIVERY_PARTNER    - the assigned partner (skipped when none)
    AVAILABLE_PARTNERS  - every partner the directory reports available

Usage:
    rules = TRANSITION_RULES.get((OrderStatus.PREPARING, OrderStatus.READY_FOR_PICKUP), [])
    messages = build_messages(rules, order, context)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from models.delivery_partner import DeliveryPartner
from models.notification import OutgoingMessage
from models.order import Order, OrderStatus
from modules.transitions import CANCELLABLE


class Recipient(str, Enum):
    CUSTOMER = "customer"
    CHEF = "chef"
    DELIVERY_PARTNER = "delivery_partner"
    AVAILABLE_PARTNERS = "available_partners"


@dataclass(frozen=True)
class NotificationRule:
    """
    One message template.

    title and body are str.format() templates over the context. payload
    always carries order_id plus the context values named in payload_keys.
    condition, when given, must return True for the rule to fire.
    """

    recipient: Recipient
    title: str
    body: str
    payload_keys: Tuple[str, ...] = ()
    condition: Optional[Callable[[Dict[str, Any]], bool]] = None

    def applies(self, context: Dict[str, Any]) -> bool:
        return self.condition is None or bool(self.condition(context))

    def render(self, recipient_id: str, context: Dict[str, Any]) -> OutgoingMessage:
        payload = {"order_id": context["order_id"]}
        for key in self.payload_keys:
            payload[key] = context.get(key)
        return OutgoingMessage(
            recipient_id=recipient_id,
            title=self.title.format(**context),
            body=self.body.format(**context),
            payload=payload,
        )


def _has_penalty(context: Dict[str, Any]) -> bool:
    return context.get("penalty_amount", 0) > 0


def _no_penalty(context: Dict[str, Any]) -> bool:
    return not _has_penalty(context)


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================

_CUSTOMER_CANCELLED_WITH_PENALTY = NotificationRule(
    Recipient.CUSTOMER,
    "Order Cancelled",
    "Your order has been cancelled. Penalty: ₹{penalty_amount:.2f}. "
    "Refund: ₹{refund_amount:.2f} will be processed in 3-5 business days.",
    ("penalty_amount", "refund_amount"),
    condition=_has_penalty,
)

_CUSTOMER_CANCELLED_FREE = NotificationRule(
    Recipient.CUSTOMER,
    "Order Cancelled",
    "Your order has been cancelled successfully. "
    "Full refund of ₹{refund_amount:.2f} will be processed immediately.",
    ("penalty_amount", "refund_amount"),
    condition=_no_penalty,
)

_CHEF_CANCELLED_WITH_COMPENSATION = NotificationRule(
    Recipient.CHEF,
    "Order Cancelled",
    "Order #{order_id} has been cancelled by the customer. "
    "Compensation of ₹{compensation_amount:.2f} will be credited to your account.",
    ("compensation_amount",),
    condition=_has_penalty,
)

_CHEF_CANCELLED = NotificationRule(
    Recipient.CHEF,
    "Order Cancelled",
    "Order #{order_id} has been cancelled by the customer.",
    ("compensation_amount",),
    condition=_no_penalty,
)


def _cancellation_rules() -> Dict[Tuple[OrderStatus, OrderStatus], List[NotificationRule]]:
    rules = {}
    for status in CANCELLABLE:
        customer = [_CUSTOMER_CANCELLED_WITH_PENALTY, _CUSTOMER_CANCELLED_FREE]
        # The chef only hears about orders that already reached them
        if status == OrderStatus.PAYMENT_CONFIRMED:
            rules[(status, OrderStatus.CANCELLED)] = customer
        else:
            rules[(status, OrderStatus.CANCELLED)] = customer + [
                _CHEF_CANCELLED_WITH_COMPENSATION,
                _CHEF_CANCELLED,
            ]
    return rules


TRANSITION_RULES: Dict[Tuple[OrderStatus, OrderStatus], List[NotificationRule]] = {
    (OrderStatus.PAYMENT_CONFIRMED, OrderStatus.SENT_TO_CHEF): [
        NotificationRule(
            Recipient.CHEF,
            "New Order Received!",
            "You have a new order #{order_id} worth ₹{order_total:.2f}. "
            "Please accept or decline.",
            ("order_total",),
        ),
        NotificationRule(
            Recipient.CUSTOMER,
            "Order Sent to Chef",
            "Your order #{order_id} has been sent to {chef_name} for confirmation.",
        ),
    ],
    (OrderStatus.SENT_TO_CHEF, OrderStatus.CHEF_ACCEPTED): [
        NotificationRule(
            Recipient.CUSTOMER,
            "Order Accepted!",
            "{chef_name} has accepted your order. "
            "Estimated delivery time: {estimated_minutes} minutes.",
            ("estimated_minutes", "chef_name"),
        ),
        NotificationRule(
            Recipient.AVAILABLE_PARTNERS,
            "New Delivery Available!",
            "Pickup from {chef_name} to {delivery_address}. Earnings: ₹{earnings:.2f}",
            ("pickup_location", "dropoff_location", "earnings"),
        ),
    ],
    (OrderStatus.CHEF_ACCEPTED, OrderStatus.PREPARING): [
        NotificationRule(
            Recipient.CUSTOMER,
            "Order Being Prepared!",
            "{chef_name} has started preparing your order #{order_id}.",
        ),
    ],
    (OrderStatus.PREPARING, OrderStatus.READY_FOR_PICKUP): [
        NotificationRule(
            Recipient.CUSTOMER,
            "Order Ready!",
            "Your order is ready for pickup. Delivery partner will collect it soon.",
        ),
    ],
    (OrderStatus.READY_FOR_PICKUP, OrderStatus.DELIVERY_ASSIGNED): [
        NotificationRule(
            Recipient.CUSTOMER,
            "Delivery Partner Assigned!",
            "{partner_name} will deliver your order. Vehicle: {vehicle_info}",
            ("partner_name", "vehicle_info"),
        ),
        NotificationRule(
            Recipient.CHEF,
            "Delivery Partner Assigned",
            "{partner_name} will pick up order #{order_id} once it's ready.",
            ("partner_name",),
        ),
        NotificationRule(
            Recipient.DELIVERY_PARTNER,
            "Delivery Accepted!",
            "You've been assigned order #{order_id}. "
            "Please coordinate with {chef_name} for pickup.",
            ("chef_name",),
        ),
    ],
    (OrderStatus.DELIVERY_ASSIGNED, OrderStatus.PICKED_UP): [
        NotificationRule(
            Recipient.CUSTOMER,
            "Order Picked Up!",
            "{partner_name} has picked up your order and is on the way.",
            ("partner_name",),
        ),
    ],
    (OrderStatus.PICKED_UP, OrderStatus.OUT_FOR_DELIVERY): [
        NotificationRule(
            Recipient.CUSTOMER,
            "Out for Delivery!",
            "Your order is on the way! Expected delivery in 15-20 minutes.",
        ),
    ],
    (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED): [
        NotificationRule(
            Recipient.CUSTOMER,
            "Order Delivered!",
            "Your order has been delivered successfully. Enjoy your meal! "
            "Don't forget to rate and tip.",
            ("can_rate", "can_tip"),
        ),
        NotificationRule(
            Recipient.CHEF,
            "Order Completed!",
            "Order #{order_id} has been delivered successfully. Great job!",
        ),
        NotificationRule(
            Recipient.DELIVERY_PARTNER,
            "Delivery Completed!",
            "Order #{order_id} delivered successfully. "
            "Earnings will be credited to your account.",
        ),
    ],
}
TRANSITION_RULES.update(_cancellation_rules())


# =============================================================================
# TIPS
# =============================================================================

_TIP_SENT = NotificationRule(
    Recipient.CUSTOMER,
    "Tip Sent Successfully!",
    "Your tip of ₹{tip_amount:.2f} has been sent to {recipient_name}. "
    "Thank you for your generosity!",
    ("tip_amount", "recipient_name"),
)

TIP_RULES: Dict[str, List[NotificationRule]] = {
    "chef": [
        NotificationRule(
            Recipient.CHEF,
            "Tip Received!",
            "You received a tip of ₹{tip_amount:.2f} from {customer_name}{tip_message_suffix}",
            ("tip_amount", "tip_message"),
        ),
        _TIP_SENT,
    ],
    "delivery": [
        NotificationRule(
            Recipient.DELIVERY_PARTNER,
            "Tip Received!",
            "You received a tip of ₹{tip_amount:.2f} from {customer_name}{tip_message_suffix}",
            ("tip_amount", "tip_message"),
        ),
        _TIP_SENT,
    ],
}


# =============================================================================
# RENDERING
# =============================================================================

def resolve_recipients(
    recipient: Recipient,
    order: Order,
    available_partners: Sequence[DeliveryPartner] = (),
) -> List[str]:
    """Map a selector to concrete recipient ids for this order."""
    if recipient == Recipient.CUSTOMER:
        return [order.customer_id]
    if recipient == Recipient.CHEF:
        return [order.chef_id]
    if recipient == Recipient.DELIVERY_PARTNER:
        return [order.delivery_partner_id] if order.delivery_partner_id else []
    if recipient == Recipient.AVAILABLE_PARTNERS:
        return [partner.id for partner in available_partners if partner.is_available]
    raise ValueError(f"Unknown recipient selector: {recipient}")


def build_messages(
    rules: Iterable[NotificationRule],
    order: Order,
    context: Dict[str, Any],
    available_partners: Sequence[DeliveryPartner] = (),
) -> List[OutgoingMessage]:
    """
    Render rules into concrete messages, one per resolved recipient.

    Args:
        rules: Rules for the event that just committed
        order: The committed order (post-transition)
        context: Template values; must contain order_id
        available_partners: Directory snapshot for AVAILABLE_PARTNERS

    Returns:
        Messages in rule order
    """
    messages = []
    for rule in rules:
        if not rule.applies(context):
            continue
        for recipient_id in resolve_recipients(rule.recipient, order, available_partners):
            messages.append(rule.render(recipient_id, context))
    return messages
