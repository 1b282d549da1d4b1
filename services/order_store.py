"""
Order store.

The authoritative collection of order aggregates, keyed by order id.

The engine is written against the abstract OrderStore interface, so an
in-memory dict, a relational table or a document store can sit behind it.
InMemoryOrderStore is the one this service ships with.

Thread Safety:
    - get() returns a detached deep copy; callers can never observe a
      half-applied transition
    - put() swaps the whole aggregate in one step
    - The internal lock is held only for the dict access itself, never
      across a transition. Serializing writers of one order is the engine's
      job (per-order locks), not the store's.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from models.order import Order
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class OrderStore(ABC):
    """Storage interface the engine depends on."""

    @abstractmethod
    def get(self, order_id: str) -> Optional[Order]:
        """Return a detached copy of the order, or None."""

    @abstractmethod
    def put(self, order: Order) -> None:
        """Insert or replace the order."""

    @abstractmethod
    def list_by_chef(self, chef_id: str) -> List[Order]:
        """Orders for a chef, newest first."""

    @abstractmethod
    def list_by_delivery_partner(self, partner_id: str) -> List[Order]:
        """Orders assigned to a delivery partner, newest first."""

    @abstractmethod
    def list_by_customer(self, customer_id: str) -> List[Order]:
        """Orders placed by a customer, newest first."""

    def exists(self, order_id: str) -> bool:
        return self.get(order_id) is not None


class InMemoryOrderStore(OrderStore):
    """
    Process-local order store.

    Constructed once at service start (see app.create_app) and injected
    into the engine. Orders are never deleted.
    """

    def __init__(self):
        self._orders: Dict[str, Order] = {}
        self._lock = threading.Lock()

    def get(self, order_id: str) -> Optional[Order]:
        with self._lock:
            order = self._orders.get(order_id)
        return order.copy() if order else None

    def put(self, order: Order) -> None:
        stored = order.copy()
        with self._lock:
            is_new = order.id not in self._orders
            self._orders[order.id] = stored
        if is_new:
            logger.debug(f"Stored new order {order.id}")

    def exists(self, order_id: str) -> bool:
        with self._lock:
            return order_id in self._orders

    def count(self) -> int:
        with self._lock:
            return len(self._orders)

    def list_by_chef(self, chef_id: str) -> List[Order]:
        return self._select(lambda order: order.chef_id == chef_id)

    def list_by_delivery_partner(self, partner_id: str) -> List[Order]:
        return self._select(lambda order: order.delivery_partner_id == partner_id)

    def list_by_customer(self, customer_id: str) -> List[Order]:
        return self._select(lambda order: order.customer_id == customer_id)

    def _select(self, predicate) -> List[Order]:
        with self._lock:
            matches = [order for order in self._orders.values() if predicate(order)]
        matches.sort(key=lambda order: order.placed_at, reverse=True)
        return [order.copy() for order in matches]
