"""
Custom exceptions for the order lifecycle engine.

Exception Hierarchy:
    OrderLifecycleError (base)
    ├── ValidationError        - Malformed input (empty items, negative totals)
    ├── OrderNotFoundError     - No order with the given id
    ├── PartnerNotFoundError   - No delivery partner with the given id
    ├── InvalidTransitionError - Operation not legal from the current status
    └── InvalidRecipientError  - Tip addressed to a delivery partner that
                                 has not been assigned yet

Usage:
    All errors are raised synchronously before any mutation happens, so an
    order is never left half-updated. The HTTP layer maps each class to a
    status code (see routes/orders.py).
"""

from typing import Optional, Dict, Any


class OrderLifecycleError(Exception):
    """
    Base exception for all engine errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all engine errors with a single except clause if needed.
    """

    #: Short machine-readable kind, returned to API clients.
    kind = "order_lifecycle_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe error body."""
        return {
            "error": self.kind,
            "message": self.message,
            "details": dict(self.details),
        }


class ValidationError(OrderLifecycleError):
    """
    Input to an operation is malformed.

    Raised for placement input (no items, negative totals, total that does
    not add up) and for bad arguments such as a non-positive tip.
    """

    kind = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, details)
        self.field = field


class OrderNotFoundError(OrderLifecycleError):
    """No order exists with the requested id."""

    kind = "order_not_found"

    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}", {"order_id": order_id})
        self.order_id = order_id


class PartnerNotFoundError(OrderLifecycleError):
    """The delivery partner id is not in the directory."""

    kind = "partner_not_found"

    def __init__(self, partner_id: str):
        super().__init__(
            f"Delivery partner not found: {partner_id}",
            {"partner_id": partner_id},
        )
        self.partner_id = partner_id


class InvalidTransitionError(OrderLifecycleError):
    """
    The requested operation is not legal from the order's current status.

    Typical causes:
    - Skipping a step (preparing -> delivered)
    - Acting on a terminal order (delivered, cancelled)
    - Assigning a second delivery partner
    """

    kind = "invalid_transition"

    def __init__(
        self,
        order_id: str,
        current_status: str,
        target: str,
        reason: Optional[str] = None,
    ):
        message = f"Cannot move order {order_id} from '{current_status}' to '{target}'"
        if reason:
            message = f"{message}: {reason}"
        details = {
            "order_id": order_id,
            "current_status": current_status,
            "target": target,
        }
        super().__init__(message, details)
        self.order_id = order_id
        self.current_status = current_status
        self.target = target


class InvalidRecipientError(OrderLifecycleError):
    """A tip was addressed to a recipient the order does not have."""

    kind = "invalid_recipient"

    def __init__(self, order_id: str, recipient_kind: str):
        super().__init__(
            f"Order {order_id} has no {recipient_kind} recipient to tip",
            {
                "order_id": order_id,
                "recipient_kind": recipient_kind,
                "resolution": "Tip the delivery partner after one is assigned",
            },
        )
        self.order_id = order_id
        self.recipient_kind = recipient_kind
