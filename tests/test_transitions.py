"""
Tests for the order status graph.
"""

import pytest

from models.order import OrderStatus
from modules.transitions import (
    ADVANCEABLE,
    ALLOWED_TRANSITIONS,
    CANCELLABLE,
    HAPPY_PATH,
    can_transition,
    is_valid_path,
    next_status,
)


class TestGraph:

    def test_main_path_edges(self):
        for current, following in zip(HAPPY_PATH, HAPPY_PATH[1:]):
            assert can_transition(current, following)
            assert next_status(current) == following

    def test_terminal_states_have_no_exits(self):
        assert ALLOWED_TRANSITIONS[OrderStatus.DELIVERED] == frozenset()
        assert ALLOWED_TRANSITIONS[OrderStatus.CANCELLED] == frozenset()
        assert next_status(OrderStatus.DELIVERED) is None
        assert next_status(OrderStatus.CANCELLED) is None

    @pytest.mark.parametrize("status", sorted(CANCELLABLE, key=lambda s: s.value))
    def test_every_pre_delivery_status_can_cancel(self, status):
        assert can_transition(status, OrderStatus.CANCELLED)

    def test_pending_payment_cannot_cancel_through_the_engine(self):
        assert not can_transition(OrderStatus.PENDING_PAYMENT, OrderStatus.CANCELLED)

    def test_no_skipping_or_going_back(self):
        assert not can_transition(OrderStatus.SENT_TO_CHEF, OrderStatus.PREPARING)
        assert not can_transition(OrderStatus.PREPARING, OrderStatus.CHEF_ACCEPTED)
        assert not can_transition(OrderStatus.PICKED_UP, OrderStatus.PICKED_UP)

    def test_advanceable_excludes_dedicated_operations(self):
        assert OrderStatus.SENT_TO_CHEF not in ADVANCEABLE
        assert OrderStatus.CHEF_ACCEPTED not in ADVANCEABLE
        assert OrderStatus.DELIVERY_ASSIGNED not in ADVANCEABLE
        assert OrderStatus.CANCELLED not in ADVANCEABLE


class TestIsValidPath:

    def test_happy_path_is_valid(self):
        assert is_valid_path(HAPPY_PATH[1:])

    def test_cancel_midway_is_valid(self):
        assert is_valid_path([
            OrderStatus.PAYMENT_CONFIRMED,
            OrderStatus.SENT_TO_CHEF,
            OrderStatus.CANCELLED,
        ])

    def test_skip_is_invalid(self):
        assert not is_valid_path([OrderStatus.PAYMENT_CONFIRMED, OrderStatus.CHEF_ACCEPTED])

    def test_single_entry_is_valid(self):
        assert is_valid_path([OrderStatus.PAYMENT_CONFIRMED])
