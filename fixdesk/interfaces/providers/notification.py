from abc import ABC, abstractmethod
from typing import List

from fixdesk.domains import Notification


class NotificationProvider(ABC):
    """Interface for the notification sink.

    Delivery channels and subscription state belong to the sink, not the engine.
    """

    @abstractmethod
    async def send_notification(self, notification: Notification) -> str:
        """Record and dispatch a notification, returning its id."""
        pass

    @abstractmethod
    async def list_notifications(self, user_id: str, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        """List a user's notifications, newest first."""
        pass

    @abstractmethod
    async def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification of a user as read in one batch."""
        pass
