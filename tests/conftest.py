"""
Shared fixtures.

The engine is built with a fake clock and a manual timer factory so tests
decide exactly when the grace window elapses.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from models.order import DeliveryAddress, Order, OrderItem, OrderStatus, TimelineEvent
from modules.cancellation_policy import CancellationPolicy
from services.confirmation_timer import ConfirmationTimers
from services.notification_dispatcher import NotificationDispatcher
from services.order_engine import OrderEngine
from services.order_store import InMemoryOrderStore
from services.partner_directory import DeliveryPartnerDirectory


START = datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class ManualTimer:
    """Stand-in for threading.Timer that runs only when fire() is called."""

    def __init__(self, delay, function, name):
        self.delay = delay
        self.function = function
        self.name = name
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled:
            self.function()


class ManualTimerFactory:
    """Timer factory that remembers every timer it built."""

    def __init__(self):
        self.timers = []

    def __call__(self, delay, function, name):
        timer = ManualTimer(delay, function, name)
        self.timers.append(timer)
        return timer

    def latest(self, order_id: str) -> ManualTimer:
        name = f"Confirm-{order_id}"
        matches = [t for t in self.timers if t.name == name]
        assert matches, f"no timer scheduled for {order_id}"
        return matches[-1]

    def fire(self, order_id: str) -> None:
        self.latest(order_id).fire()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timer_factory():
    return ManualTimerFactory()


@pytest.fixture
def transport():
    """Mock notification transport."""
    return Mock()


@pytest.fixture
def policy():
    return CancellationPolicy()


@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def directory():
    return DeliveryPartnerDirectory()


@pytest.fixture
def dispatcher(transport):
    dispatcher = NotificationDispatcher(transport=transport, max_workers=2)
    yield dispatcher
    dispatcher.shutdown()


@pytest.fixture
def engine(store, directory, dispatcher, policy, timer_factory, clock):
    """Engine wired with manual timers and a fake clock."""
    timers = ConfirmationTimers(policy.grace_window_seconds, timer_factory=timer_factory)
    engine = OrderEngine(
        store=store,
        directory=directory,
        dispatcher=dispatcher,
        policy=policy,
        timers=timers,
        clock=clock,
        delivery_earnings=85.0,
    )
    yield engine
    engine.shutdown()


@pytest.fixture
def order_input():
    """Placement input for a 500.00 order."""
    return {
        "customer_id": "cust_1",
        "customer_name": "Priya",
        "chef_id": "chef_1",
        "chef_name": "Chef Meera",
        "items": [
            {"dish_id": "dish_1", "dish_name": "Paneer Butter Masala", "quantity": 2, "price": 180.0},
            {"dish_id": "dish_2", "dish_name": "Garlic Naan", "quantity": 3, "price": 30.0},
        ],
        "delivery_address": {
            "full_address": "12 Hill Road, Bandra West, Mumbai",
            "coordinates": {"latitude": 19.0544, "longitude": 72.8402},
        },
        "totals": {"subtotal": 450.0, "delivery_fee": 30.0, "taxes": 20.0, "total": 500.0},
    }


@pytest.fixture
def placed_order_id(engine, order_input):
    return engine.place_order(**order_input)


@pytest.fixture
def make_order():
    """Build a bare Order for tests that do not go through the engine."""

    def _make(order_id="ORD000000000001", status=OrderStatus.PAYMENT_CONFIRMED, placed_at=START, **overrides):
        fields = dict(
            id=order_id,
            customer_id="cust_1",
            customer_name="Priya",
            chef_id="chef_1",
            chef_name="Chef Meera",
            items=[OrderItem("dish_1", "Paneer Butter Masala", 2, 180.0)],
            delivery_address=DeliveryAddress("12 Hill Road, Bandra West, Mumbai"),
            subtotal=450.0,
            delivery_fee=30.0,
            taxes=20.0,
            total=500.0,
            placed_at=placed_at,
            status=status,
            timeline=[TimelineEvent(status, placed_at, "created")],
        )
        fields.update(overrides)
        return Order(**fields)

    return _make


@pytest.fixture
def drive(engine, timer_factory):
    """Returns drive(order_id, target): moves an order along the main path."""

    def _drive(order_id, target, partner_id="dp_1"):
        steps = [
            (OrderStatus.SENT_TO_CHEF, lambda: timer_factory.fire(order_id)),
            (OrderStatus.CHEF_ACCEPTED, lambda: engine.accept_order(order_id, 30)),
            (OrderStatus.PREPARING, lambda: engine.advance_status(order_id, OrderStatus.PREPARING)),
            (OrderStatus.READY_FOR_PICKUP, lambda: engine.advance_status(order_id, OrderStatus.READY_FOR_PICKUP)),
            (OrderStatus.DELIVERY_ASSIGNED, lambda: engine.assign_delivery_partner(order_id, partner_id)),
            (OrderStatus.PICKED_UP, lambda: engine.advance_status(order_id, OrderStatus.PICKED_UP)),
            (OrderStatus.OUT_FOR_DELIVERY, lambda: engine.advance_status(order_id, OrderStatus.OUT_FOR_DELIVERY)),
            (OrderStatus.DELIVERED, lambda: engine.advance_status(order_id, OrderStatus.DELIVERED)),
        ]
        for status, step in steps:
            step()
            assert engine.get_order(order_id).status == status
            if status == target:
                return engine.get_order(order_id)
        raise AssertionError(f"{target} is not on the main path")

    return _drive
