"""
Order routes (JSON API).

Handles:
- POST /orders                         - Place a paid order
- GET  /orders/<id>                    - Order snapshot
- POST /orders/<id>/confirm            - Customer confirms early (send to chef)
- POST /orders/<id>/accept             - Chef accepts with ETA
- POST /orders/<id>/assign             - Assign a delivery partner
- POST /orders/<id>/status             - Chef/courier progress
- POST /orders/<id>/cancel             - Customer cancels
- POST /orders/<id>/tips               - Tip chef or courier
- GET  /chefs/<id>/orders              - Orders for a chef
- GET  /delivery-partners/<id>/orders  - Orders for a courier
- GET  /customers/<id>/orders          - Orders for a customer
- GET  /tips/<id>?since=<iso>          - Tips a chef or courier received

Engine errors are turned into JSON responses by handle_engine_error().
"""

import html
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import bleach
from flask import Blueprint, current_app, jsonify, request

from core.exceptions import (
    OrderLifecycleError,
    OrderNotFoundError,
    PartnerNotFoundError,
    ValidationError,
)
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

orders_bp = Blueprint("orders", __name__)

# Constants
MAX_NAME_LENGTH = 200
MAX_ADDRESS_LENGTH = 500
MAX_REASON_LENGTH = 500
MAX_MESSAGE_LENGTH = 1000


def _sanitize_text(text: str, max_length: int = None) -> str:
    """Sanitize user input text."""
    if not text:
        return ""
    text = str(text).strip()
    text = bleach.clean(text, tags=[], strip=True)
    # Plain text out: undo entity escaping
    text = html.unescape(text)
    if max_length and len(text) > max_length:
        text = text[:max_length]
    return text


def _engine():
    return current_app.config["ORDER_ENGINE"]


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _clean_items(items):
    if not isinstance(items, list):
        raise ValidationError("items must be a list", field="items")
    cleaned = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("Each item must be an object", field="items")
        item = dict(item)
        item["dish_name"] = _sanitize_text(item.get("dish_name"), MAX_NAME_LENGTH)
        item["special_instructions"] = _sanitize_text(
            item.get("special_instructions"), MAX_MESSAGE_LENGTH
        )
        cleaned.append(item)
    return cleaned


def _clean_address(address):
    if isinstance(address, dict):
        address = dict(address)
        address["full_address"] = _sanitize_text(address.get("full_address"), MAX_ADDRESS_LENGTH)
        return address
    return _sanitize_text(address, MAX_ADDRESS_LENGTH)


def _parse_since(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 query value; naive times are taken as UTC."""
    if not value:
        return None
    try:
        since = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"since must be an ISO-8601 time, got {value!r}", field="since")
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    return since


# =============================================================================
# ERROR HANDLING
# =============================================================================

@orders_bp.app_errorhandler(OrderLifecycleError)
def handle_engine_error(e: OrderLifecycleError):
    """Map engine errors to HTTP status codes."""
    if isinstance(e, ValidationError):
        status_code = 400
    elif isinstance(e, (OrderNotFoundError, PartnerNotFoundError)):
        status_code = 404
    else:
        status_code = 409

    logger.warning(f"{request.method} {request.path} rejected ({status_code}): {e}")
    return jsonify(e.to_dict()), status_code


# =============================================================================
# ORDERS
# =============================================================================

@orders_bp.route("/orders", methods=["POST"])
def place_order():
    """
    Place an order whose payment is already confirmed.

    Returns 201 with the order and its cancellation hint.
    """
    data = _json_body()
    engine = _engine()

    totals = data.get("totals")
    if totals is not None and not isinstance(totals, dict):
        raise ValidationError("totals must be an object", field="totals")

    order_id = engine.place_order(
        customer_id=_sanitize_text(data.get("customer_id"), MAX_NAME_LENGTH),
        chef_id=_sanitize_text(data.get("chef_id"), MAX_NAME_LENGTH),
        items=_clean_items(data.get("items") or []),
        delivery_address=_clean_address(data.get("delivery_address")),
        totals=totals,
        customer_name=_sanitize_text(data.get("customer_name"), MAX_NAME_LENGTH),
        chef_name=_sanitize_text(data.get("chef_name"), MAX_NAME_LENGTH),
    )

    return jsonify({
        "order": engine.get_order(order_id).to_dict(),
        "cancellation": engine.cancellation_hint(order_id),
    }), 201


@orders_bp.route("/orders/<order_id>", methods=["GET"])
def get_order(order_id: str):
    engine = _engine()
    return jsonify({
        "order": engine.get_order(order_id).to_dict(),
        "cancellation": engine.cancellation_hint(order_id),
    })


@orders_bp.route("/orders/<order_id>/confirm", methods=["POST"])
def confirm_order(order_id: str):
    """Customer skips the rest of the free-cancellation window."""
    engine = _engine()
    sent = engine.send_to_chef(order_id, source="customer")
    return jsonify({
        "sent_to_chef": sent,
        "order": engine.get_order(order_id).to_dict(),
    })


@orders_bp.route("/orders/<order_id>/accept", methods=["POST"])
def accept_order(order_id: str):
    data = _json_body()
    order = _engine().accept_order(order_id, data.get("estimated_minutes"))
    return jsonify({"order": order.to_dict()})


@orders_bp.route("/orders/<order_id>/assign", methods=["POST"])
def assign_delivery_partner(order_id: str):
    data = _json_body()
    partner_id = data.get("partner_id")
    if not partner_id:
        raise ValidationError("partner_id is required", field="partner_id")
    order = _engine().assign_delivery_partner(order_id, str(partner_id))
    return jsonify({"order": order.to_dict()})


@orders_bp.route("/orders/<order_id>/status", methods=["POST"])
def advance_status(order_id: str):
    data = _json_body()
    target = data.get("status")
    if not target:
        raise ValidationError("status is required", field="status")
    message = _sanitize_text(data.get("message"), MAX_MESSAGE_LENGTH) or None
    order = _engine().advance_status(order_id, target, message)
    return jsonify({"order": order.to_dict()})


@orders_bp.route("/orders/<order_id>/cancel", methods=["POST"])
def cancel_order(order_id: str):
    data = _json_body()
    engine = _engine()
    result = engine.cancel_order(order_id, _sanitize_text(data.get("reason"), MAX_REASON_LENGTH))
    return jsonify({
        "cancellation": result.to_dict(),
        "order": engine.get_order(order_id).to_dict(),
    })


@orders_bp.route("/orders/<order_id>/tips", methods=["POST"])
def add_tip(order_id: str):
    data = _json_body()
    order = _engine().add_tip(
        order_id,
        data.get("recipient_kind"),
        data.get("amount"),
        _sanitize_text(data.get("message"), MAX_MESSAGE_LENGTH) or None,
    )
    return jsonify({"order": order.to_dict()})


# =============================================================================
# LISTINGS
# =============================================================================

@orders_bp.route("/chefs/<chef_id>/orders", methods=["GET"])
def chef_orders(chef_id: str):
    orders = _engine().list_orders_for_chef(chef_id)
    return jsonify({"orders": [order.to_dict() for order in orders]})


@orders_bp.route("/delivery-partners/<partner_id>/orders", methods=["GET"])
def delivery_partner_orders(partner_id: str):
    orders = _engine().list_orders_for_delivery_partner(partner_id)
    return jsonify({"orders": [order.to_dict() for order in orders]})


@orders_bp.route("/customers/<customer_id>/orders", methods=["GET"])
def customer_orders(customer_id: str):
    orders = _engine().list_orders_for_customer(customer_id)
    return jsonify({"orders": [order.to_dict() for order in orders]})


@orders_bp.route("/tips/<recipient_id>", methods=["GET"])
def tips_received(recipient_id: str):
    since = _parse_since(request.args.get("since"))
    return jsonify(_engine().tips_received(recipient_id, since=since).to_dict())
