"""
Delivery partner data models.

Thread Safety:
    - DeliveryPartner is a frozen dataclass (immutable)
    - Availability changes replace the whole entry in the directory
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Any


@dataclass(frozen=True)
class Location:
    """Last known courier position."""

    latitude: float
    longitude: float

    def to_dict(self) -> Dict[str, Any]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class DeliveryPartner:
    """
    A courier in the directory.

    The engine only reads availability; the external dispatch system
    updates it through DeliveryPartnerDirectory.set_availability().
    """

    id: str
    name: str
    rating: float
    vehicle_type: str
    vehicle_number: str
    current_location: Location
    is_available: bool = True

    @property
    def vehicle_info(self) -> str:
        """Formatted vehicle string for messages (e.g., 'Scooter (GJ01CD5678)')."""
        return f"{self.vehicle_type} ({self.vehicle_number})"

    def with_availability(self, is_available: bool) -> "DeliveryPartner":
        return replace(self, is_available=is_available)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "rating": self.rating,
            "vehicle_type": self.vehicle_type,
            "vehicle_number": self.vehicle_number,
            "current_location": self.current_location.to_dict(),
            "is_available": self.is_available,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeliveryPartner":
        location = data.get("current_location") or {}
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            rating=float(data.get("rating", 0.0)),
            vehicle_type=str(data.get("vehicle_type", "")),
            vehicle_number=str(data.get("vehicle_number", "")),
            current_location=Location(
                latitude=float(location.get("latitude", 0.0)),
                longitude=float(location.get("longitude", 0.0)),
            ),
            is_available=bool(data.get("is_available", True)),
        )
