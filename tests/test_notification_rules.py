"""
Tests for the declarative notification table.
"""

import pytest

from models.delivery_partner import DeliveryPartner, Location
from models.order import OrderStatus
from modules.notification_rules import (
    TIP_RULES,
    TRANSITION_RULES,
    NotificationRule,
    Recipient,
    build_messages,
    resolve_recipients,
)
from modules.transitions import CANCELLABLE, HAPPY_PATH


def _partner(partner_id, is_available=True):
    return DeliveryPartner(
        id=partner_id,
        name=f"Partner {partner_id}",
        rating=4.5,
        vehicle_type="Scooter",
        vehicle_number="MH01XY0001",
        current_location=Location(19.0, 72.8),
        is_available=is_available,
    )


def _context(order, **extra):
    context = {
        "order_id": order.id,
        "order_total": order.total,
        "customer_name": order.customer_name,
        "chef_name": order.chef_name,
        "delivery_address": order.delivery_address.full_address,
        "partner_name": "",
        "vehicle_info": "",
        "can_rate": order.can_rate,
        "can_tip": order.can_tip,
    }
    context.update(extra)
    return context


class TestTableCoverage:

    def test_every_forward_edge_after_payment_has_rules(self):
        for current, following in zip(HAPPY_PATH[1:], HAPPY_PATH[2:]):
            assert TRANSITION_RULES.get((current, following)), (current, following)

    def test_every_cancellable_status_has_cancel_rules(self):
        for status in CANCELLABLE:
            assert TRANSITION_RULES.get((status, OrderStatus.CANCELLED))

    def test_tip_rules_exist_for_both_kinds(self):
        assert set(TIP_RULES) == {"chef", "delivery"}


class TestRecipients:

    def test_delivery_partner_skipped_when_unassigned(self, make_order):
        order = make_order()
        assert resolve_recipients(Recipient.DELIVERY_PARTNER, order) == []

    def test_available_partners_filters_unavailable(self, make_order):
        order = make_order()
        partners = [_partner("dp_1"), _partner("dp_2", is_available=False)]
        assert resolve_recipients(Recipient.AVAILABLE_PARTNERS, order, partners) == ["dp_1"]


class TestBuildMessages:

    def test_sent_to_chef(self, make_order):
        order = make_order(status=OrderStatus.SENT_TO_CHEF)
        rules = TRANSITION_RULES[(OrderStatus.PAYMENT_CONFIRMED, OrderStatus.SENT_TO_CHEF)]

        messages = build_messages(rules, order, _context(order))

        assert [m.recipient_id for m in messages] == ["chef_1", "cust_1"]
        chef_message = messages[0]
        assert chef_message.title == "New Order Received!"
        assert "₹500.00" in chef_message.body
        assert chef_message.payload == {"order_id": order.id, "order_total": 500.0}
        assert "Chef Meera" in messages[1].body

    def test_accept_broadcasts_to_available_partners(self, make_order):
        order = make_order(status=OrderStatus.CHEF_ACCEPTED)
        rules = TRANSITION_RULES[(OrderStatus.SENT_TO_CHEF, OrderStatus.CHEF_ACCEPTED)]
        context = _context(
            order,
            estimated_minutes=30,
            earnings=85.0,
            pickup_location="Chef Meera",
            dropoff_location=order.delivery_address.full_address,
        )

        messages = build_messages(rules, order, context, [_partner("dp_1"), _partner("dp_2")])

        assert [m.recipient_id for m in messages] == ["cust_1", "dp_1", "dp_2"]
        assert "30 minutes" in messages[0].body
        broadcast = messages[1]
        assert broadcast.title == "New Delivery Available!"
        assert broadcast.body == (
            "Pickup from Chef Meera to 12 Hill Road, Bandra West, Mumbai. Earnings: ₹85.00"
        )
        assert broadcast.payload["earnings"] == 85.0

    def test_cancel_before_chef_only_tells_customer(self, make_order):
        order = make_order(status=OrderStatus.CANCELLED)
        rules = TRANSITION_RULES[(OrderStatus.PAYMENT_CONFIRMED, OrderStatus.CANCELLED)]
        context = _context(order, penalty_amount=0.0, refund_amount=500.0, compensation_amount=0.0)

        messages = build_messages(rules, order, context)

        assert len(messages) == 1
        assert messages[0].recipient_id == "cust_1"
        assert "Full refund of ₹500.00" in messages[0].body

    def test_cancel_after_chef_compensates_chef(self, make_order):
        order = make_order(status=OrderStatus.CANCELLED)
        rules = TRANSITION_RULES[(OrderStatus.SENT_TO_CHEF, OrderStatus.CANCELLED)]
        context = _context(order, penalty_amount=200.0, refund_amount=300.0, compensation_amount=200.0)

        messages = build_messages(rules, order, context)

        assert [m.recipient_id for m in messages] == ["cust_1", "chef_1"]
        assert "Penalty: ₹200.00" in messages[0].body
        assert "Refund: ₹300.00" in messages[0].body
        assert "Compensation of ₹200.00" in messages[1].body

    def test_delivered_skips_missing_partner(self, make_order):
        order = make_order(status=OrderStatus.DELIVERED, can_rate=True, can_tip=True)
        rules = TRANSITION_RULES[(OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED)]

        messages = build_messages(rules, order, _context(order))

        assert [m.recipient_id for m in messages] == ["cust_1", "chef_1"]
        assert messages[0].payload == {"order_id": order.id, "can_rate": True, "can_tip": True}

    def test_tip_to_chef(self, make_order):
        order = make_order()
        context = _context(
            order,
            tip_amount=50.0,
            tip_message="Loved it",
            tip_message_suffix=': "Loved it"',
            recipient_name="Chef Meera",
        )

        messages = build_messages(TIP_RULES["chef"], order, context)

        assert [m.title for m in messages] == ["Tip Received!", "Tip Sent Successfully!"]
        assert messages[0].body == 'You received a tip of ₹50.00 from Priya: "Loved it"'
        assert messages[1].recipient_id == "cust_1"

    def test_condition_gates_rule(self, make_order):
        order = make_order()
        rule = NotificationRule(
            Recipient.CUSTOMER, "t", "b", condition=lambda ctx: ctx.get("flag", False)
        )

        assert build_messages([rule], order, _context(order)) == []
        assert len(build_messages([rule], order, _context(order, flag=True))) == 1

    def test_missing_template_value_raises(self, make_order):
        order = make_order()
        rule = NotificationRule(Recipient.CUSTOMER, "t", "{not_there}")

        with pytest.raises(KeyError):
            build_messages([rule], order, _context(order))
