"""
Notification data models.

OutgoingMessage is what the engine produces for one recipient after a
committed transition. Notification is the copy kept in the in-process
notification log, with read state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from uuid import uuid4


@dataclass(frozen=True)
class OutgoingMessage:
    """One directed message: (recipient, title, body, payload)."""

    recipient_id: str
    title: str
    body: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Notification:
    """An entry in a recipient's notification log."""

    recipient_id: str
    title: str
    body: str
    payload: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_read: bool = False

    @property
    def order_id(self) -> Optional[str]:
        return self.payload.get("order_id")

    @classmethod
    def from_message(cls, message: OutgoingMessage) -> "Notification":
        return cls(
            recipient_id=message.recipient_id,
            title=message.title,
            body=message.body,
            payload=dict(message.payload),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "recipient_id": self.recipient_id,
            "title": self.title,
            "body": self.body,
            "payload": dict(self.payload),
            "order_id": self.order_id,
            "created_at": self.created_at.isoformat(),
            "is_read": self.is_read,
        }
