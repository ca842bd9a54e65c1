from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from fixdesk.domains import NotificationPriority, NotificationType, Ticket, TicketStatus


class NotificationService(ABC):
    """Interface for lifecycle notification triggers."""

    @abstractmethod
    async def notify(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        ticket_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """Send one notification without raising."""
        pass

    @abstractmethod
    async def notify_ticket_assigned(
        self,
        ticket: Ticket,
        technician_name: Optional[str] = None,
        assigned_by: Optional[str] = None,
    ) -> None:
        """Notify the assignee and the reporter."""
        pass

    @abstractmethod
    async def notify_status_changed(
        self,
        ticket: Ticket,
        previous_status: TicketStatus,
        updated_by: Optional[str] = None,
    ) -> None:
        """Notify the reporter and the assignee of a status change."""
        pass

    @abstractmethod
    async def notify_merged(self, absorbed_reporter: str, absorbed_id: str, target: Ticket) -> None:
        """Notify the reporter of an absorbed ticket."""
        pass
