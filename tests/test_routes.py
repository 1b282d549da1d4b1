"""
HTTP API tests through the Flask test client.
"""

import pytest

from app import create_app


@pytest.fixture
def app(transport, timer_factory, clock):
    app = create_app(
        "config.TestingConfig",
        transport=transport,
        timer_factory=timer_factory,
        clock=clock,
    )
    yield app
    app.config["ORDER_ENGINE"].shutdown()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def placed(client, order_input):
    response = client.post("/orders", json=order_input)
    assert response.status_code == 201
    return response.get_json()["order"]["id"]


def _post(client, path, body=None):
    return client.post(path, json=body or {})


class TestPlaceAndRead:

    def test_place_order(self, client, order_input):
        order_input["customer_name"] = "<b>Priya</b>"
        order_input["items"][0]["special_instructions"] = "<i>Less spicy</i>"

        response = client.post("/orders", json=order_input)

        assert response.status_code == 201
        data = response.get_json()
        order = data["order"]
        assert order["status"] == "payment_confirmed"
        assert order["total"] == 500.0
        assert order["customer_name"] == "Priya"
        assert order["items"][0]["special_instructions"] == "Less spicy"
        assert order["timeline"][0]["status"] == "payment_confirmed"
        assert data["cancellation"]["can_cancel_free"] is True
        assert data["cancellation"]["seconds_remaining"] == 3600.0
        assert data["cancellation"]["penalty_after_window"] == 200.0

    def test_free_text_keeps_ampersands(self, client, order_input):
        order_input["items"][0]["dish_name"] = "Fish & Chips"
        order_input["items"][0]["special_instructions"] = "<b>Salt & vinegar</b>, no \"mayo\""

        response = client.post("/orders", json=order_input)

        item = response.get_json()["order"]["items"][0]
        assert item["dish_name"] == "Fish & Chips"
        assert item["special_instructions"] == "Salt & vinegar, no \"mayo\""
        assert item["line_total"] == 360.0

    def test_non_finite_total_rejected(self, client):
        response = client.post(
            "/orders",
            data='{"customer_id": "cust_1", "chef_id": "chef_1", '
                 '"items": [{"dish_id": "d", "dish_name": "Dal", "quantity": 1, "price": 120.0}], '
                 '"delivery_address": "1 MG Road", "totals": {"subtotal": NaN}}',
            content_type="application/json",
        )

        assert response.status_code == 400
        assert response.get_json()["details"] == {"field": "subtotal"}

    def test_place_order_validation_error(self, client, order_input):
        order_input["items"] = []

        response = client.post("/orders", json=order_input)

        assert response.status_code == 400
        body = response.get_json()
        assert body["error"] == "validation_error"
        assert body["details"] == {"field": "items"}

    def test_body_must_be_object(self, client):
        response = client.post("/orders", json=["not", "an", "object"])
        assert response.status_code == 400

    def test_get_order(self, client, placed):
        response = client.get(f"/orders/{placed}")
        assert response.status_code == 200
        assert response.get_json()["order"]["id"] == placed

    def test_unknown_order(self, client):
        response = client.get("/orders/ORDDOESNOTEXIST")
        assert response.status_code == 404
        assert response.get_json() == {
            "error": "order_not_found",
            "message": "Order not found: ORDDOESNOTEXIST",
            "details": {"order_id": "ORDDOESNOTEXIST"},
        }

    def test_unknown_route_is_json(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.get_json()["error"] == "not_found"


class TestTransitions:

    def test_confirm_is_idempotent(self, client, placed):
        first = _post(client, f"/orders/{placed}/confirm")
        second = _post(client, f"/orders/{placed}/confirm")

        assert first.get_json()["sent_to_chef"] is True
        assert second.get_json()["sent_to_chef"] is False
        assert second.get_json()["order"]["status"] == "sent_to_chef"

    def test_accept_requires_sent_to_chef(self, client, placed):
        response = _post(client, f"/orders/{placed}/accept", {"estimated_minutes": 30})

        assert response.status_code == 409
        body = response.get_json()
        assert body["error"] == "invalid_transition"
        assert body["details"]["current_status"] == "payment_confirmed"

    def test_accept_validation(self, client, placed):
        _post(client, f"/orders/{placed}/confirm")
        response = _post(client, f"/orders/{placed}/accept", {"estimated_minutes": "soon"})
        assert response.status_code == 400

    def test_accept_huge_estimate_is_400(self, client, placed):
        _post(client, f"/orders/{placed}/confirm")
        response = _post(client, f"/orders/{placed}/accept", {"estimated_minutes": 1e12})

        assert response.status_code == 400
        assert response.get_json()["details"] == {"field": "estimated_minutes"}

    def test_unknown_order_write_is_404(self, client, app):
        response = _post(client, "/orders/ORDDOESNOTEXIST/cancel", {"reason": "x"})

        assert response.status_code == 404
        assert app.config["ORDER_ENGINE"]._order_locks == {}

    def test_full_flow(self, client, placed):
        _post(client, f"/orders/{placed}/confirm")
        assert _post(client, f"/orders/{placed}/accept", {"estimated_minutes": 25}).status_code == 200
        for status in ("preparing", "ready_for_pickup"):
            response = _post(client, f"/orders/{placed}/status", {"status": status})
            assert response.get_json()["order"]["status"] == status

        response = _post(client, f"/orders/{placed}/assign", {"partner_id": "dp_1"})
        assert response.get_json()["order"]["delivery_partner_name"] == "Rajesh Kumar"

        for status in ("picked_up", "out_for_delivery", "delivered"):
            response = _post(client, f"/orders/{placed}/status", {"status": status})
            assert response.status_code == 200

        order = response.get_json()["order"]
        assert order["can_rate"] is True
        assert order["can_tip"] is True

        response = _post(client, f"/orders/{placed}/tips", {
            "recipient_kind": "delivery",
            "amount": 30,
            "message": "Quick delivery",
        })
        assert response.get_json()["order"]["tips"]["delivery_tip"] == 30.0

        response = _post(client, f"/orders/{placed}/cancel", {"reason": "too late"})
        assert response.status_code == 409

    def test_assign_unknown_partner(self, client, placed):
        response = _post(client, f"/orders/{placed}/assign", {"partner_id": "dp_404"})
        assert response.status_code == 404
        assert response.get_json()["error"] == "partner_not_found"

    def test_assign_requires_partner_id(self, client, placed):
        response = _post(client, f"/orders/{placed}/assign", {})
        assert response.status_code == 400

    def test_status_skip_rejected(self, client, placed):
        _post(client, f"/orders/{placed}/confirm")
        response = _post(client, f"/orders/{placed}/status", {"status": "delivered"})
        assert response.status_code == 409

    def test_cancel(self, client, placed):
        response = _post(client, f"/orders/{placed}/cancel", {"reason": "<b>Changed</b> my mind"})

        assert response.status_code == 200
        data = response.get_json()
        assert data["cancellation"] == {"order_id": placed, "penalty_amount": 0.0, "refund_amount": 500.0}
        assert data["order"]["status"] == "cancelled"
        assert data["order"]["cancellation_reason"] == "Changed my mind"

    def test_delivery_tip_without_partner(self, client, placed):
        response = _post(client, f"/orders/{placed}/tips", {"recipient_kind": "delivery", "amount": 20})
        assert response.status_code == 409
        assert response.get_json()["error"] == "invalid_recipient"


class TestListingsAndNotifications:

    def test_listings(self, client, placed):
        assert [o["id"] for o in client.get("/customers/cust_1/orders").get_json()["orders"]] == [placed]
        assert [o["id"] for o in client.get("/chefs/chef_1/orders").get_json()["orders"]] == [placed]
        assert client.get("/delivery-partners/dp_1/orders").get_json()["orders"] == []

    def test_partner_directory(self, client, app):
        app.config["ORDER_ENGINE"].directory.set_availability("dp_1", False)

        everyone = client.get("/delivery-partners").get_json()["partners"]
        available = client.get("/delivery-partners?available=1").get_json()["partners"]

        assert [p["id"] for p in everyone] == ["dp_1", "dp_2"]
        assert [p["id"] for p in available] == ["dp_2"]

    def test_notifications_and_read_state(self, client, placed):
        _post(client, f"/orders/{placed}/confirm")

        data = client.get("/notifications/chef_1").get_json()
        assert data["unread_count"] == 1
        notification = data["notifications"][0]
        assert notification["title"] == "New Order Received!"
        assert notification["order_id"] == placed

        response = _post(client, "/notifications/chef_1/read", {"notification_id": notification["id"]})
        assert response.get_json() == {"marked": 1, "unread_count": 0}

        response = _post(client, "/notifications/chef_1/read", {"notification_id": "missing"})
        assert response.status_code == 404

    def test_mark_all_read(self, client, placed):
        _post(client, f"/orders/{placed}/confirm")
        _post(client, f"/orders/{placed}/cancel", {"reason": "x"})

        response = _post(client, "/notifications/cust_1/read")

        assert response.get_json() == {"marked": 2, "unread_count": 0}

    def test_notifications_filtered_by_order(self, client, placed, order_input):
        other = client.post("/orders", json=order_input).get_json()["order"]["id"]
        _post(client, f"/orders/{placed}/confirm")
        _post(client, f"/orders/{other}/confirm")

        data = client.get(f"/notifications/cust_1?order_id={other}").get_json()

        assert [n["order_id"] for n in data["notifications"]] == [other]
        assert data["unread_count"] == 2


    def test_tips_received(self, client, placed, clock):
        _post(client, f"/orders/{placed}/tips", {"recipient_kind": "chef", "amount": 50, "message": "Fish & Chips!"})

        data = client.get("/tips/chef_1").get_json()

        assert data["recipient_id"] == "chef_1"
        assert data["count"] == 1
        assert data["total"] == 50.0
        assert data["tips"][0] == {
            "order_id": placed,
            "recipient_kind": "chef",
            "amount": 50.0,
            "message": "Fish & Chips!",
            "tipped_at": clock.now.isoformat(),
        }

        later = client.get("/tips/chef_1", query_string={"since": "2099-01-01T00:00:00"}).get_json()
        assert later["tips"] == []
        assert later["total"] == 0

    def test_tips_received_bad_since(self, client):
        response = client.get("/tips/chef_1", query_string={"since": "yesterday"})

        assert response.status_code == 400
        assert response.get_json()["details"] == {"field": "since"}


class TestHealth:

    def test_health(self, client, placed):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "ok"
        assert body["environment"] == "testing"
        assert body["checks"]["engine"] == "ok"
        assert body["checks"]["orders"] == 1
        assert body["checks"]["pending_confirmations"] == 1
        assert body["checks"]["delivery_partners"] == 2
