"""Pure helper modules for the order lifecycle engine."""

__all__ = [
    "cancellation_policy",
    "notification_rules",
    "transitions",
]
