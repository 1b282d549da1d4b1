"""
Core module for the order lifecycle engine.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
"""

from .exceptions import (
    OrderLifecycleError,
    ValidationError,
    OrderNotFoundError,
    PartnerNotFoundError,
    InvalidTransitionError,
    InvalidRecipientError,
)

__all__ = [
    "OrderLifecycleError",
    "ValidationError",
    "OrderNotFoundError",
    "PartnerNotFoundError",
    "InvalidTransitionError",
    "InvalidRecipientError",
]
