"""
Notification domain models.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from fixdesk.domains.tickets import utcnow


class NotificationType(str, Enum):
    """Kind of notification emitted by the engine."""
    TICKET_STATUS = "ticket_status"
    ASSIGNMENT = "assignment"
    NEW_ASSIGNMENT = "new_assignment"


class NotificationPriority(str, Enum):
    """Delivery priority hint for the notification sink."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Notification(BaseModel):
    """Notification stored by the sink."""
    id: str = Field("", description="Unique identifier")
    user_id: str = Field(..., description="Recipient")
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    ticket_id: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    sent_at: datetime = Field(default_factory=utcnow)
    read: bool = False
