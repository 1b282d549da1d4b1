"""
Order lifecycle engine (the state machine).

Validates and applies every transition of an order, appends the timeline,
freezes cancellation terms, and triggers the notification fan-out.

Thread Model:
    Request threads (Flask)        -> place / accept / assign / advance / cancel / tip
    Confirmation timer threads     -> send_to_chef(order_id, source="timer")
    Notify worker threads          <- dispatcher, after every commit

Thread Safety:
    - One lock per order id. Two transitions on the same order never
      interleave; different orders never wait on each other
    - Every write works on a detached copy and is committed with a single
      store.put(), together with its timeline entry. A rejected operation
      leaves nothing behind and dispatches nothing
    - A timer fire racing an explicit confirm or cancel is serialized by
      the same lock: whoever gets it first wins, the other is a no-op
    - Notifications are dispatched after the lock is released

Flow:
    1. place_order() stores the order (payment_confirmed) and schedules the
       confirmation timer for the grace window
    2. The timer (or an early confirm) calls send_to_chef()
    3. Chef: accept_order(), advance_status(preparing / ready_for_pickup)
    4. Dispatch: assign_delivery_partner()
    5. Courier: advance_status(picked_up / out_for_delivery / delivered)
    cancel_order() and add_tip() can happen along the way

Usage:
    engine = OrderEngine(store, directory, dispatcher, policy)
    order_id = engine.place_order("cust_1", "chef_1", items, address, totals)
    engine.accept_order(order_id, estimated_minutes=30)
    result = engine.cancel_order(order_id, "Changed my mind")
    engine.shutdown()
"""

from __future__ import annotations

import math
import threading
import uuid
from datetime import datetime, timedelta, timezone
from numbers import Real
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from core.exceptions import (
    InvalidRecipientError,
    InvalidTransitionError,
    OrderNotFoundError,
    ValidationError,
)
from models.delivery_partner import DeliveryPartner
from models.order import (
    CancellationResult,
    DeliveryAddress,
    Order,
    OrderItem,
    OrderStatus,
    OrderTotals,
    ReceivedTip,
    TimelineEvent,
    TipsReceived,
)
from modules.cancellation_policy import CancellationPolicy, CancellationQuote
from modules.notification_rules import TIP_RULES, TRANSITION_RULES, build_messages
from modules.transitions import ADVANCEABLE, can_transition, next_status
from services.confirmation_timer import ConfirmationTimers
from services.notification_dispatcher import NotificationDispatcher
from services.order_store import OrderStore
from services.partner_directory import DeliveryPartnerDirectory
from logging_config import get_logger, get_order_logger


# Module logger
logger = get_logger(__name__)


DEFAULT_STATUS_MESSAGES = {
    OrderStatus.PREPARING: "Chef started preparing your order",
    OrderStatus.READY_FOR_PICKUP: "Order is ready for pickup",
    OrderStatus.PICKED_UP: "Order picked up by delivery partner",
    OrderStatus.OUT_FOR_DELIVERY: "Order is out for delivery",
    OrderStatus.DELIVERED: "Order delivered successfully",
}

TIP_RECIPIENT_KINDS = ("chef", "delivery")

# Allowed rounding slack when a caller-computed total is checked
TOTAL_TOLERANCE = 0.01

# Longest ETA a chef may quote (one day)
MAX_ESTIMATED_MINUTES = 24 * 60


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def _format_minutes(minutes: Real) -> Union[int, float]:
    return int(minutes) if float(minutes).is_integer() else float(minutes)


class OrderEngine:
    """
    The order state machine.

    Collaborators are injected so each can be swapped (persistent store,
    real push transport, manual timers in tests).
    """

    def __init__(
        self,
        store: OrderStore,
        directory: DeliveryPartnerDirectory,
        dispatcher: NotificationDispatcher,
        policy: CancellationPolicy,
        timers: Optional[ConfirmationTimers] = None,
        clock: Optional[Callable[[], datetime]] = None,
        delivery_earnings: float = 85.0,
    ):
        """
        Initialize the engine.

        Args:
            store: Order store (constructed once at service start)
            directory: Delivery partner directory
            dispatcher: Notification dispatcher
            policy: Cancellation policy
            timers: Confirmation timers (defaults to thread timers with the
                policy's grace window)
            clock: Returns the current tz-aware time (defaults to UTC now)
            delivery_earnings: Amount quoted in the delivery broadcast
        """
        self._store = store
        self._directory = directory
        self._dispatcher = dispatcher
        self._policy = policy
        self._timers = timers or ConfirmationTimers(policy.grace_window_seconds)
        self._clock = clock or utc_now
        self._delivery_earnings = delivery_earnings

        # Per-order write locks, created on first use. The guard only
        # protects the registry itself.
        self._order_locks: Dict[str, threading.Lock] = {}
        self._order_locks_guard = threading.Lock()

        logger.info(
            f"OrderEngine initialized (grace window: {policy.grace_window_seconds}s, "
            f"penalty rate: {policy.penalty_rate})"
        )

    @property
    def policy(self) -> CancellationPolicy:
        return self._policy

    @property
    def timers(self) -> ConfirmationTimers:
        return self._timers

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    @property
    def directory(self) -> DeliveryPartnerDirectory:
        return self._directory

    # =========================================================================
    # PLACEMENT
    # =========================================================================

    def place_order(
        self,
        customer_id: str,
        chef_id: str,
        items: Sequence[Union[OrderItem, Mapping[str, Any]]],
        delivery_address: Union[DeliveryAddress, Mapping[str, Any], str],
        totals: Mapping[str, Any],
        customer_name: str = "",
        chef_name: str = "",
    ) -> str:
        """
        Place a paid order and start its free-cancellation window.

        Payment is already confirmed by the gateway when this is called, so
        the order starts in payment_confirmed. No notification is sent; the
        "you can still cancel" hint is available from cancellation_hint().

        Args:
            customer_id: Customer placing the order
            chef_id: Chef cooking the order
            items: Line items (OrderItem or dicts)
            delivery_address: DeliveryAddress, dict, or plain address text
            totals: subtotal, delivery_fee, taxes and optionally total
            customer_name: Display name used in messages
            chef_name: Display name used in messages

        Returns:
            The new order id

        Raises:
            ValidationError: If any input is malformed
        """
        if not customer_id:
            raise ValidationError("customer_id is required", field="customer_id")
        if not chef_id:
            raise ValidationError("chef_id is required", field="chef_id")

        parsed_items = self._parse_items(items)
        address = self._parse_address(delivery_address)
        order_totals = self._parse_totals(totals)

        order_id = self._new_order_id()
        placed_at = self._clock()
        quote = self._policy.evaluate(placed_at, placed_at, order_totals.total)

        order = Order(
            id=order_id,
            customer_id=customer_id,
            customer_name=customer_name,
            chef_id=chef_id,
            chef_name=chef_name,
            items=parsed_items,
            delivery_address=address,
            subtotal=order_totals.subtotal,
            delivery_fee=order_totals.delivery_fee,
            taxes=order_totals.taxes,
            total=order_totals.total,
            placed_at=placed_at,
            status=OrderStatus.PAYMENT_CONFIRMED,
            can_cancel_free=quote.can_cancel_free,
            cancellation_penalty=quote.penalty,
        )
        order.timeline.append(TimelineEvent(
            status=OrderStatus.PAYMENT_CONFIRMED,
            timestamp=placed_at,
            message="Order placed and payment confirmed",
        ))

        with self._lock_for(order_id, create=True):
            self._store.put(order)
            self._timers.schedule(order_id, self._on_grace_window_elapsed)

        get_order_logger(order_id).info(
            f"Order {order_id} placed by {customer_id} for chef {chef_id}: "
            f"total={order.total}, penalty after window={order.cancellation_penalty}"
        )
        return order_id

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def send_to_chef(self, order_id: str, source: str = "customer") -> bool:
        """
        Move a payment_confirmed order to the chef.

        Called by the confirmation timer or by an early "confirm now" from
        the customer. These two can race; only the first one has an effect.

        Args:
            order_id: Order to send
            source: "timer" or "customer", for the log

        Returns:
            True if the order was sent, False if it had already moved on
            (sent, cancelled) and the call was skipped

        Raises:
            OrderNotFoundError: If the order does not exist
        """
        order_logger = get_order_logger(order_id)

        with self._lock_for(order_id):
            order = self._require(order_id)
            if order.status != OrderStatus.PAYMENT_CONFIRMED:
                order_logger.info(
                    f"Send to chef ({source}) skipped for {order_id}: already {order.status.value}"
                )
                return False

            from_status = order.status
            order.can_cancel_free = False
            self._append_event(order, OrderStatus.SENT_TO_CHEF, "Order sent to chef for confirmation")
            self._store.put(order)
            self._timers.cancel(order_id)

        order_logger.info(f"Order {order_id} sent to chef {order.chef_id} ({source})")
        self._dispatch_transition(from_status, order, self._context(order))
        return True

    def accept_order(self, order_id: str, estimated_minutes: Real) -> Order:
        """
        Chef accepts the order with an ETA.

        Also broadcasts the delivery opportunity to every partner that is
        available right now. This is not an assignment.

        Raises:
            ValidationError: If estimated_minutes is not a positive number
                of at most MAX_ESTIMATED_MINUTES
            OrderNotFoundError: If the order does not exist
            InvalidTransitionError: If the order is not sent_to_chef
        """
        if not _is_number(estimated_minutes) or estimated_minutes <= 0:
            raise ValidationError("estimated_minutes must be a positive number", field="estimated_minutes")
        if estimated_minutes > MAX_ESTIMATED_MINUTES:
            raise ValidationError(
                f"estimated_minutes must be at most {MAX_ESTIMATED_MINUTES}",
                field="estimated_minutes",
            )
        minutes = _format_minutes(estimated_minutes)

        with self._lock_for(order_id):
            order = self._require(order_id)
            if order.status != OrderStatus.SENT_TO_CHEF:
                raise InvalidTransitionError(
                    order_id, order.status.value, OrderStatus.CHEF_ACCEPTED.value,
                    reason="chef can only accept an order that was sent to them",
                )

            from_status = order.status
            now = self._clock()
            order.estimated_delivery_time = now + timedelta(minutes=float(estimated_minutes))
            self._append_event(
                order,
                OrderStatus.CHEF_ACCEPTED,
                f"Chef accepted order. Estimated delivery: {minutes} minutes",
                estimated_time=f"{minutes} minutes",
                now=now,
            )
            self._store.put(order)

        get_order_logger(order_id).info(f"Order {order_id} accepted by chef, ETA {minutes} minutes")

        available = self._directory.available()
        context = self._context(
            order,
            estimated_minutes=minutes,
            earnings=self._delivery_earnings,
            pickup_location=self._context(order)["chef_name"],
            dropoff_location=order.delivery_address.full_address,
        )
        self._dispatch_transition(from_status, order, context, available)
        return order

    def assign_delivery_partner(self, order_id: str, partner_id: str) -> Order:
        """
        Assign a courier to an order that is ready for pickup.

        Raises:
            OrderNotFoundError: If the order does not exist
            PartnerNotFoundError: If the partner is not in the directory
            InvalidTransitionError: If a partner is already assigned, or the
                order is not ready_for_pickup (including terminal orders)
        """
        with self._lock_for(order_id):
            order = self._require(order_id)
            partner = self._directory.require(partner_id)

            if order.delivery_partner_id:
                raise InvalidTransitionError(
                    order_id, order.status.value, OrderStatus.DELIVERY_ASSIGNED.value,
                    reason=f"delivery partner {order.delivery_partner_id} already assigned",
                )
            self._check_transition(order, OrderStatus.DELIVERY_ASSIGNED)

            from_status = order.status
            order.delivery_partner_id = partner.id
            order.delivery_partner_name = partner.name
            self._append_event(order, OrderStatus.DELIVERY_ASSIGNED, f"Delivery partner {partner.name} assigned")
            self._store.put(order)

        get_order_logger(order_id).info(f"Order {order_id} assigned to partner {partner.id}")
        self._dispatch_transition(from_status, order, self._context(order, partner=partner))
        return order

    def advance_status(
        self,
        order_id: str,
        target_status: Union[OrderStatus, str],
        message: Optional[str] = None,
    ) -> Order:
        """
        Generic forward step for chef and courier progress.

        Only preparing, ready_for_pickup, picked_up, out_for_delivery and
        delivered are reachable here, and only as the immediate successor of
        the current status.

        Raises:
            ValidationError: If target_status is not a known status
            OrderNotFoundError: If the order does not exist
            InvalidTransitionError: If target is not the next step
        """
        target = self._parse_status(target_status)

        with self._lock_for(order_id):
            order = self._require(order_id)
            if target not in ADVANCEABLE or next_status(order.status) != target:
                raise InvalidTransitionError(
                    order_id, order.status.value, target.value,
                    reason=self._terminal_reason(order) or "not the next step for this order",
                )

            from_status = order.status
            self._append_event(order, target, message or DEFAULT_STATUS_MESSAGES[target])
            if target == OrderStatus.DELIVERED:
                order.can_rate = True
                order.can_tip = True
            self._store.put(order)

        get_order_logger(order_id).info(f"Order {order_id}: {from_status.value} -> {target.value}")
        self._dispatch_transition(from_status, order, self._context(order))
        return order

    def cancel_order(self, order_id: str, reason: str) -> CancellationResult:
        """
        Cancel an order that has not been delivered.

        The penalty is zero while free cancellation still holds, otherwise
        the penalty frozen at placement. The confirmation timer is cancelled
        before this returns, so it cannot act on the order afterwards.

        Returns:
            CancellationResult with penalty and refund

        Raises:
            OrderNotFoundError: If the order does not exist
            InvalidTransitionError: If the order is delivered or cancelled
        """
        reason = (reason or "").strip() or "No reason given"

        with self._lock_for(order_id):
            order = self._require(order_id)
            self._check_transition(order, OrderStatus.CANCELLED)

            self._timers.cancel(order_id)

            from_status = order.status
            penalty = CancellationQuote(order.can_cancel_free, order.cancellation_penalty).amount_due
            refund = round(order.total - penalty, 2)

            order.can_cancel_free = False
            order.cancellation_reason = reason
            order.penalty_amount = penalty
            order.refund_amount = refund
            self._append_event(order, OrderStatus.CANCELLED, f"Order cancelled: {reason}")
            self._store.put(order)

        get_order_logger(order_id).info(
            f"Order {order_id} cancelled from {from_status.value}: penalty={penalty}, refund={refund}"
        )
        context = self._context(
            order,
            penalty_amount=penalty,
            refund_amount=refund,
            compensation_amount=penalty,
        )
        self._dispatch_transition(from_status, order, context)
        return CancellationResult(order_id=order_id, penalty_amount=penalty, refund_amount=refund)

    def add_tip(
        self,
        order_id: str,
        recipient_kind: str,
        amount: Real,
        message: Optional[str] = None,
    ) -> Order:
        """
        Tip the chef or the delivery partner.

        A second tip to the same recipient kind replaces the first.

        Raises:
            ValidationError: If recipient_kind or amount is invalid
            OrderNotFoundError: If the order does not exist
            InvalidRecipientError: If tipping delivery with no partner assigned
        """
        if recipient_kind not in TIP_RECIPIENT_KINDS:
            raise ValidationError(
                f"recipient_kind must be one of {', '.join(TIP_RECIPIENT_KINDS)}",
                field="recipient_kind",
            )
        if not _is_number(amount) or amount <= 0:
            raise ValidationError("Tip amount must be a positive number", field="amount")
        amount = round(float(amount), 2)

        with self._lock_for(order_id):
            order = self._require(order_id)
            now = self._clock()
            if recipient_kind == "delivery":
                if not order.delivery_partner_id:
                    raise InvalidRecipientError(order_id, recipient_kind)
                order.tips.delivery_tip = amount
                order.tips.delivery_message = message
                order.tips.delivery_tipped_at = now
            else:
                order.tips.chef_tip = amount
                order.tips.chef_message = message
                order.tips.chef_tipped_at = now
            self._store.put(order)

        get_order_logger(order_id).info(f"Tip of {amount} to {recipient_kind} on order {order_id}")

        context = self._context(
            order,
            tip_amount=amount,
            tip_message=message,
            tip_message_suffix=f': "{message}"' if message else "",
        )
        context["recipient_name"] = (
            context["chef_name"] if recipient_kind == "chef" else context["partner_name"]
        )
        self._dispatch(build_messages(TIP_RULES[recipient_kind], order, context))
        return order

    # =========================================================================
    # READS
    # =========================================================================

    def get_order(self, order_id: str) -> Order:
        """
        Raises:
            OrderNotFoundError: If the order does not exist
        """
        return self._require(order_id)

    def list_orders_for_chef(self, chef_id: str) -> List[Order]:
        return self._store.list_by_chef(chef_id)

    def list_orders_for_delivery_partner(self, partner_id: str) -> List[Order]:
        return self._store.list_by_delivery_partner(partner_id)

    def list_orders_for_customer(self, customer_id: str) -> List[Order]:
        return self._store.list_by_customer(customer_id)

    def tips_received(self, recipient_id: str, since: Optional[datetime] = None) -> TipsReceived:
        """
        Tips a chef or delivery partner received across all their orders.

        Args:
            recipient_id: Chef id or delivery partner id
            since: Only count tips given at or after this time

        Returns:
            TipsReceived, newest tip first, with the running total
        """
        tips = []
        for order in self._store.list_by_chef(recipient_id):
            if order.tips.chef_tip is not None:
                tips.append(ReceivedTip(
                    order_id=order.id,
                    recipient_kind="chef",
                    amount=order.tips.chef_tip,
                    message=order.tips.chef_message,
                    tipped_at=order.tips.chef_tipped_at,
                ))
        for order in self._store.list_by_delivery_partner(recipient_id):
            if order.tips.delivery_tip is not None:
                tips.append(ReceivedTip(
                    order_id=order.id,
                    recipient_kind="delivery",
                    amount=order.tips.delivery_tip,
                    message=order.tips.delivery_message,
                    tipped_at=order.tips.delivery_tipped_at,
                ))

        if since is not None:
            tips = [tip for tip in tips if tip.tipped_at and tip.tipped_at >= since]
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        tips.sort(key=lambda tip: tip.tipped_at or oldest, reverse=True)
        return TipsReceived(recipient_id=recipient_id, tips=tips)

    def cancellation_hint(self, order_id: str) -> Dict[str, Any]:
        """
        Advisory "you can still cancel" state for the customer UI.

        Not a notification; nothing is dispatched.
        """
        order = self._require(order_id)
        remaining = 0.0
        if order.can_cancel_free:
            remaining = self._policy.seconds_remaining(order.placed_at, self._clock())
        return {
            "order_id": order.id,
            "can_cancel_free": order.can_cancel_free,
            "seconds_remaining": remaining,
            "penalty_after_window": order.cancellation_penalty,
        }

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def shutdown(self) -> None:
        """Cancel pending timers and stop notification workers."""
        logger.info("Shutting down order engine...")
        self._timers.cancel_all()
        self._dispatcher.shutdown()
        logger.info("Order engine shutdown complete")

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _on_grace_window_elapsed(self, order_id: str) -> None:
        self.send_to_chef(order_id, source="timer")

    def _lock_for(self, order_id: str, create: bool = False) -> threading.Lock:
        """
        Get the write lock of an order.

        Only place_order passes create=True. Any other caller gets a lock
        only for an order that is in the store, so unknown ids never leave
        an entry behind.

        Raises:
            OrderNotFoundError: If the order does not exist and create is False
        """
        with self._order_locks_guard:
            lock = self._order_locks.get(order_id)
            if lock is None:
                if not create and not self._store.exists(order_id):
                    raise OrderNotFoundError(order_id)
                lock = self._order_locks[order_id] = threading.Lock()
            return lock

    def _require(self, order_id: str) -> Order:
        order = self._store.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def _check_transition(self, order: Order, target: OrderStatus) -> None:
        if not can_transition(order.status, target):
            raise InvalidTransitionError(
                order.id, order.status.value, target.value,
                reason=self._terminal_reason(order),
            )

    @staticmethod
    def _terminal_reason(order: Order) -> Optional[str]:
        if order.is_terminal:
            return f"order is already {order.status.value}"
        return None

    def _append_event(
        self,
        order: Order,
        status: OrderStatus,
        message: str,
        estimated_time: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        timestamp = now or self._clock()
        last = order.last_event
        if last is not None and timestamp < last.timestamp:
            # Keep the timeline ordered even if the clock steps back
            timestamp = last.timestamp
        order.timeline.append(TimelineEvent(
            status=status,
            timestamp=timestamp,
            message=message,
            estimated_time=estimated_time,
        ))
        order.status = status

    def _context(
        self,
        order: Order,
        partner: Optional[DeliveryPartner] = None,
        **extra: Any,
    ) -> Dict[str, Any]:
        """Template values for notification rules."""
        partner_name = order.delivery_partner_name or order.delivery_partner_id or ""
        context = {
            "order_id": order.id,
            "order_total": order.total,
            "customer_name": order.customer_name or "a customer",
            "chef_name": order.chef_name or order.chef_id,
            "delivery_address": order.delivery_address.full_address,
            "partner_name": partner.name if partner else partner_name,
            "vehicle_info": partner.vehicle_info if partner else "",
            "can_rate": order.can_rate,
            "can_tip": order.can_tip,
        }
        context.update(extra)
        return context

    def _dispatch_transition(
        self,
        from_status: OrderStatus,
        order: Order,
        context: Dict[str, Any],
        available_partners: Sequence[DeliveryPartner] = (),
    ) -> None:
        rules = TRANSITION_RULES.get((from_status, order.status), [])
        try:
            messages = build_messages(rules, order, context, available_partners)
        except (KeyError, ValueError) as e:
            # Already committed; report and move on
            logger.error(
                f"Could not render notifications for {order.id} "
                f"({from_status.value} -> {order.status.value}): {e}",
                exc_info=True,
            )
            return
        self._dispatch(messages)

    def _dispatch(self, messages: Iterable) -> None:
        notifications = self._dispatcher.dispatch(messages)
        logger.debug(f"Dispatched {len(notifications)} notifications")

    def _new_order_id(self) -> str:
        while True:
            order_id = f"ORD{uuid.uuid4().hex[:12].upper()}"
            if not self._store.exists(order_id):
                return order_id

    @staticmethod
    def _parse_status(value: Union[OrderStatus, str]) -> OrderStatus:
        if isinstance(value, OrderStatus):
            return value
        try:
            return OrderStatus(str(value))
        except ValueError:
            raise ValidationError(f"Unknown order status: {value}", field="target_status")

    @staticmethod
    def _parse_items(items: Sequence[Union[OrderItem, Mapping[str, Any]]]) -> List[OrderItem]:
        if not items:
            raise ValidationError("An order needs at least one item", field="items")

        parsed = []
        for index, item in enumerate(items):
            if not isinstance(item, OrderItem):
                try:
                    item = OrderItem.from_dict(item)
                except (TypeError, ValueError, AttributeError) as e:
                    raise ValidationError(f"Item {index} is malformed: {e}", field="items")
            if not item.dish_id:
                raise ValidationError(f"Item {index} has no dish_id", field="items")
            if item.quantity <= 0:
                raise ValidationError(f"Item {index} quantity must be positive", field="items")
            if item.price < 0:
                raise ValidationError(f"Item {index} price must not be negative", field="items")
            parsed.append(item)
        return parsed

    @staticmethod
    def _parse_address(address: Union[DeliveryAddress, Mapping[str, Any], str]) -> DeliveryAddress:
        if isinstance(address, DeliveryAddress):
            parsed = address
        elif isinstance(address, str):
            parsed = DeliveryAddress(full_address=address)
        else:
            try:
                parsed = DeliveryAddress.from_dict(address)
            except (TypeError, ValueError, AttributeError) as e:
                raise ValidationError(f"Delivery address is malformed: {e}", field="delivery_address")
        if not parsed.full_address.strip():
            raise ValidationError("Delivery address is required", field="delivery_address")
        return parsed

    @staticmethod
    def _parse_totals(totals: Mapping[str, Any]) -> OrderTotals:
        if totals is None:
            raise ValidationError("Order totals are required", field="totals")

        values = {}
        for name in ("subtotal", "delivery_fee", "taxes"):
            value = totals.get(name, 0.0)
            if not _is_number(value):
                raise ValidationError(f"{name} must be a number", field=name)
            if value < 0:
                raise ValidationError(f"{name} must not be negative", field=name)
            values[name] = float(value)

        order_totals = OrderTotals.from_parts(**values)

        stated = totals.get("total")
        if stated is not None:
            if not _is_number(stated) or stated < 0:
                raise ValidationError("total must be a non-negative number", field="total")
            if abs(float(stated) - order_totals.total) > TOTAL_TOLERANCE:
                raise ValidationError(
                    f"total {stated} does not equal subtotal + delivery_fee + taxes "
                    f"({order_totals.total})",
                    field="total",
                )
        return order_totals
