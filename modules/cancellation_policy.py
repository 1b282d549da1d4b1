"""
Cancellation policy.

Decides whether an order can still be cancelled for free and how much the
customer pays otherwise. Everything here is a pure function of its inputs;
the engine evaluates it once at placement and stores the result on the
order.

Formula:
    free     = 0 <= (now - placed_at) <= grace_window_seconds
    penalty  = min(max(total × penalty_rate, min_penalty), max_penalty, total)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping


@dataclass(frozen=True)
class CancellationQuote:
    """Result of evaluating the policy for one order at one instant."""

    can_cancel_free: bool
    penalty: float
    """Amount charged when cancelling outside the free window."""

    @property
    def amount_due(self) -> float:
        """What cancelling right now would cost."""
        return 0.0 if self.can_cancel_free else self.penalty


@dataclass(frozen=True)
class CancellationPolicy:
    """Policy parameters, usually built from app config."""

    grace_window_seconds: float = 30.0
    penalty_rate: float = 0.40
    min_penalty: float = 20.0
    max_penalty: float = 500.0

    def __post_init__(self):
        if self.grace_window_seconds < 0:
            raise ValueError("grace_window_seconds must be >= 0")
        if not 0 <= self.penalty_rate <= 1:
            raise ValueError("penalty_rate must be between 0 and 1")
        if self.min_penalty < 0 or self.max_penalty < self.min_penalty:
            raise ValueError("penalty bounds must satisfy 0 <= min <= max")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "CancellationPolicy":
        return cls(
            grace_window_seconds=float(config.get("CANCELLATION_GRACE_SECONDS", 30.0)),
            penalty_rate=float(config.get("CANCELLATION_PENALTY_RATE", 0.40)),
            min_penalty=float(config.get("MIN_CANCELLATION_PENALTY", 20.0)),
            max_penalty=float(config.get("MAX_CANCELLATION_PENALTY", 500.0)),
        )

    def penalty_for(self, order_total: float) -> float:
        penalty = max(order_total * self.penalty_rate, self.min_penalty)
        penalty = min(penalty, self.max_penalty, order_total)
        return round(max(penalty, 0.0), 2)

    def is_within_grace_window(self, placed_at: datetime, now: datetime) -> bool:
        elapsed = (now - placed_at).total_seconds()
        return 0 <= elapsed <= self.grace_window_seconds

    def evaluate(self, placed_at: datetime, now: datetime, order_total: float) -> CancellationQuote:
        """
        Evaluate the policy.

        Args:
            placed_at: When the order was placed
            now: The instant to evaluate at
            order_total: Order total the penalty is derived from

        Returns:
            CancellationQuote with the free flag and the post-window penalty
        """
        return CancellationQuote(
            can_cancel_free=self.is_within_grace_window(placed_at, now),
            penalty=self.penalty_for(order_total),
        )

    def seconds_remaining(self, placed_at: datetime, now: datetime) -> float:
        """Countdown for the "you can still cancel" hint; 0 once the window closes."""
        elapsed = (now - placed_at).total_seconds()
        return max(0.0, round(self.grace_window_seconds - elapsed, 3))
