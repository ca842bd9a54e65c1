"""
Notification triggers for ticket lifecycle events.

Delivery is fire-and-forget: a failing sink is logged and never undoes the
state change that triggered it.
"""
import logging
from typing import Any, Dict, Optional

from fixdesk.domains import (
    Notification,
    NotificationPriority,
    NotificationType,
    Ticket,
    TicketPriority,
    TicketStatus,
)
from fixdesk.interfaces.providers.notification import NotificationProvider
from fixdesk.interfaces.services.notification import (
    NotificationService as NotificationServiceInterface,
)

logger = logging.getLogger(__name__)


class NotificationService(NotificationServiceInterface):
    """Service for emitting ticket notifications."""

    def __init__(self, notification_provider: NotificationProvider):
        """Initialize the notification service.

        Args:
            notification_provider: Sink that stores or delivers notifications
        """
        self.provider = notification_provider

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
        """Send one notification. Returns None when the sink failed."""
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            priority=priority,
            ticket_id=ticket_id,
            data=data or {},
        )
        try:
            return await self.provider.send_notification(notification)
        except Exception as e:
            logger.error(
                f"Failed to send {notification_type.value} notification to {user_id} for ticket {ticket_id}: {e}"
            )
            return None

    async def notify_ticket_assigned(
        self,
        ticket: Ticket,
        technician_name: Optional[str] = None,
        assigned_by: Optional[str] = None,
    ) -> None:
        """Notify the assignee and the reporter of a new assignment."""
        if not ticket.assigned_to:
            return

        metadata = ticket.assignment_metadata
        assignment_data = {
            "category": ticket.category,
            "location": ticket.location,
            "assigned_by": assigned_by,
            "assignment_method": metadata.assignment_method if metadata else "manual",
            "assignment_reason": metadata.assignment_reason if metadata else None,
            "assignment_score": metadata.assignment_score if metadata else None,
            "estimated_duration": ticket.estimated_duration,
        }

        await self.notify(
            ticket.assigned_to,
            NotificationType.NEW_ASSIGNMENT,
            "New Ticket Assigned",
            f"You have been assigned a new {ticket.category} ticket: {ticket.title}",
            priority=(
                NotificationPriority.HIGH
                if ticket.priority == TicketPriority.HIGH
                else NotificationPriority.MEDIUM
            ),
            ticket_id=ticket.id,
            data={
                **assignment_data,
                "required_tools": [tool.model_dump() for tool in ticket.required_tools],
                "required_materials": [
                    material.model_dump() for material in ticket.required_materials
                ],
                "difficulty_level": ticket.difficulty_level,
            },
        )

        if ticket.reported_by and ticket.reported_by != ticket.assigned_to:
            await self.notify(
                ticket.reported_by,
                NotificationType.ASSIGNMENT,
                "Your Ticket Has Been Assigned",
                f'Your {ticket.category} ticket "{ticket.title}" has been assigned to a technician',
                ticket_id=ticket.id,
                data={**assignment_data, "technician_name": technician_name or "Technician"},
            )

    async def notify_status_changed(
        self,
        ticket: Ticket,
        previous_status: TicketStatus,
        updated_by: Optional[str] = None,
    ) -> None:
        """Notify the reporter, and the assignee unless they made the change."""
        new_status = ticket.status
        data = {
            "new_status": new_status.value,
            "previous_status": previous_status.value,
            "updated_by": updated_by,
        }

        await self.notify(
            ticket.reported_by,
            NotificationType.TICKET_STATUS,
            "Ticket Status Update",
            f'Your ticket "{ticket.title}" status changed from {previous_status.value} to {new_status.value}',
            priority=(
                NotificationPriority.HIGH
                if new_status == TicketStatus.RESOLVED
                else NotificationPriority.MEDIUM
            ),
            ticket_id=ticket.id,
            data=data,
        )

        if ticket.assigned_to and ticket.assigned_to != updated_by:
            await self.notify(
                ticket.assigned_to,
                NotificationType.TICKET_STATUS,
                "Ticket Status Update",
                f'Ticket "{ticket.title}" status changed to {new_status.value}',
                ticket_id=ticket.id,
                data=data,
            )

    async def notify_merged(self, absorbed_reporter: str, absorbed_id: str, target: Ticket) -> None:
        """Tell the reporter of an absorbed ticket where their report went."""
        await self.notify(
            absorbed_reporter,
            NotificationType.TICKET_STATUS,
            "Ticket Merged",
            f'Your report was merged into existing ticket "{target.title}"',
            ticket_id=target.id,
            data={"merged_ticket_id": absorbed_id, "target_ticket_id": target.id},
        )
