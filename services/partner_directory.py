"""
Delivery partner directory.

A small registry of candidate couriers with availability flags. The engine
reads it when broadcasting delivery opportunities and when assigning a
partner; availability itself is owned by the external dispatch system.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from core.exceptions import PartnerNotFoundError
from models.delivery_partner import DeliveryPartner, Location
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


# Fixed candidate list used when no directory file is configured
DEFAULT_PARTNERS = (
    DeliveryPartner(
        id="dp_1",
        name="Rajesh Kumar",
        rating=4.7,
        vehicle_type="Motorcycle",
        vehicle_number="MH12AB1234",
        current_location=Location(latitude=19.0596, longitude=72.8295),
        is_available=True,
    ),
    DeliveryPartner(
        id="dp_2",
        name="Amit Patel",
        rating=4.9,
        vehicle_type="Scooter",
        vehicle_number="GJ01CD5678",
        current_location=Location(latitude=19.0580, longitude=72.8310),
        is_available=True,
    ),
)


class DeliveryPartnerDirectory:
    """
    Thread-safe registry of delivery partners.

    Entries are immutable; set_availability() swaps in a new entry.
    """

    def __init__(self, partners: Iterable[DeliveryPartner] = DEFAULT_PARTNERS):
        self._partners: Dict[str, DeliveryPartner] = {p.id: p for p in partners}
        self._lock = threading.Lock()
        logger.info(f"DeliveryPartnerDirectory initialized with {len(self._partners)} partners")

    @classmethod
    def from_json_file(cls, path: str) -> "DeliveryPartnerDirectory":
        """
        Load the directory from a JSON file.

        Expected format: a list of objects with id, name, rating,
        vehicle_type, vehicle_number, current_location, is_available.
        """
        with open(Path(path), "r", encoding="utf-8") as f:
            data = json.load(f)
        partners = [DeliveryPartner.from_dict(entry) for entry in data]
        logger.info(f"Loaded {len(partners)} delivery partners from {path}")
        return cls(partners)

    def get(self, partner_id: str) -> Optional[DeliveryPartner]:
        with self._lock:
            return self._partners.get(partner_id)

    def require(self, partner_id: str) -> DeliveryPartner:
        """Like get(), but raises PartnerNotFoundError for unknown ids."""
        partner = self.get(partner_id)
        if partner is None:
            raise PartnerNotFoundError(partner_id)
        return partner

    def all(self) -> List[DeliveryPartner]:
        with self._lock:
            return list(self._partners.values())

    def available(self) -> List[DeliveryPartner]:
        with self._lock:
            return [p for p in self._partners.values() if p.is_available]

    def set_availability(self, partner_id: str, is_available: bool) -> DeliveryPartner:
        """Called by the external dispatch system."""
        with self._lock:
            partner = self._partners.get(partner_id)
            if partner is None:
                raise PartnerNotFoundError(partner_id)
            updated = partner.with_availability(is_available)
            self._partners[partner_id] = updated
        logger.info(f"Partner {partner_id} availability set to {is_available}")
        return updated

    def __len__(self) -> int:
        with self._lock:
            return len(self._partners)
