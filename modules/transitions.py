"""
Order status transition graph.

The only legal forward edges. Everything that moves an order checks
against this table before touching it.
"""

from typing import Dict, FrozenSet, Iterable, Optional

from models.order import OrderStatus


# Main path, in order. Each status' successor is the next entry.
HAPPY_PATH = (
    OrderStatus.PENDING_PAYMENT,
    OrderStatus.PAYMENT_CONFIRMED,
    OrderStatus.SENT_TO_CHEF,
    OrderStatus.CHEF_ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.DELIVERY_ASSIGNED,
    OrderStatus.PICKED_UP,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

CANCELLABLE: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.PAYMENT_CONFIRMED,
    OrderStatus.SENT_TO_CHEF,
    OrderStatus.CHEF_ACCEPTED,
    OrderStatus.PREPARING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.DELIVERY_ASSIGNED,
    OrderStatus.PICKED_UP,
    OrderStatus.OUT_FOR_DELIVERY,
})

# Targets reachable through the generic advance operation. The others have
# dedicated operations (send to chef, accept, assign, cancel).
ADVANCEABLE: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.PREPARING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.PICKED_UP,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
})


def _build_transitions() -> Dict[OrderStatus, FrozenSet[OrderStatus]]:
    transitions: Dict[OrderStatus, set] = {status: set() for status in OrderStatus}
    for current, following in zip(HAPPY_PATH, HAPPY_PATH[1:]):
        transitions[current].add(following)
    for status in CANCELLABLE:
        transitions[status].add(OrderStatus.CANCELLED)
    return {status: frozenset(targets) for status, targets in transitions.items()}


ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = _build_transitions()


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def next_status(current: OrderStatus) -> Optional[OrderStatus]:
    """Immediate successor on the main path, or None for terminal states."""
    if current not in HAPPY_PATH:
        return None
    index = HAPPY_PATH.index(current)
    if index + 1 >= len(HAPPY_PATH):
        return None
    return HAPPY_PATH[index + 1]


def is_valid_path(statuses: Iterable[OrderStatus]) -> bool:
    """True when every consecutive pair is a legal edge."""
    statuses = list(statuses)
    return all(can_transition(a, b) for a, b in zip(statuses, statuses[1:]))
