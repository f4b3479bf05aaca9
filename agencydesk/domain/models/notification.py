"""In-app notification record delivered to a user's dashboard."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

ADMIN_ACCESS_GRANTED = "admin_access_granted"
ADMIN_ACCESS_REVOKED = "admin_access_revoked"


@dataclass(slots=True)
class Notification:
    id: int
    recipient_id: int
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime
    sender_id: Optional[int] = None
