"""
API routes (supporting endpoints).

Handles:
- /delivery-partners                     - Partner directory (?available=1)
- /notifications/<recipient>             - Notification inbox polling
- /notifications/<recipient>/read        - Mark one or all as read
- /health                                - Health check endpoint
"""

from flask import (
    Blueprint,
    current_app,
    jsonify,
    request,
)

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


def _is_truthy(value) -> bool:
    return str(value).lower() in ("1", "true", "yes")


@api_bp.route("/delivery-partners", methods=["GET"])
def delivery_partners():
    """
    Directory listing.

    ?available=1 limits the list to partners currently available.
    """
    directory = current_app.config["ORDER_ENGINE"].directory
    if _is_truthy(request.args.get("available", "")):
        partners = directory.available()
    else:
        partners = directory.all()
    return jsonify({"partners": [partner.to_dict() for partner in partners]})


@api_bp.route("/notifications/<recipient_id>", methods=["GET"])
def notifications(recipient_id: str):
    """
    AJAX endpoint polled by the apps.

    Optional ?order_id= narrows the list to one order.
    """
    log = current_app.config["ORDER_ENGINE"].dispatcher.log
    entries = log.for_recipient(recipient_id, order_id=request.args.get("order_id"))
    return jsonify({
        "recipient_id": recipient_id,
        "unread_count": log.unread_count(recipient_id),
        "notifications": [entry.to_dict() for entry in entries],
    })


@api_bp.route("/notifications/<recipient_id>/read", methods=["POST"])
def mark_notifications_read(recipient_id: str):
    """Mark one notification (notification_id in body) or all of them as read."""
    log = current_app.config["ORDER_ENGINE"].dispatcher.log
    data = request.get_json(silent=True) or {}
    notification_id = data.get("notification_id") if isinstance(data, dict) else None

    if notification_id:
        if not log.mark_as_read(recipient_id, str(notification_id)):
            return jsonify({
                "error": "notification_not_found",
                "message": f"Notification not found: {notification_id}",
                "details": {"notification_id": notification_id},
            }), 404
        marked = 1
    else:
        marked = log.mark_all_as_read(recipient_id)

    return jsonify({
        "marked": marked,
        "unread_count": log.unread_count(recipient_id),
    })


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    engine = current_app.config.get("ORDER_ENGINE")
    if engine:
        health_status["checks"]["engine"] = "ok"
        health_status["checks"]["pending_confirmations"] = engine.timers.pending_count()
        health_status["checks"]["notifications_logged"] = engine.dispatcher.log.count()
        health_status["checks"]["delivery_partners"] = len(engine.directory)
    else:
        health_status["checks"]["engine"] = "not_available"
        health_status["status"] = "degraded"

    store = current_app.config.get("ORDER_STORE")
    if store is not None and hasattr(store, "count"):
        health_status["checks"]["orders"] = store.count()

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code
