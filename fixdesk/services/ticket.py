"""
Ticket lifecycle service.

This is the only service that writes ticket state. Every write that depends
on what was read before it is a compare-and-set on the ticket version, so a
concurrent writer makes the loser fail with ConflictError instead of
silently overwriting.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional

from fixdesk.domains import (
    AIMetadata,
    ASSIGNEE_STATUSES,
    AssignmentMetadata,
    ClassificationOutcome,
    MergedTicket,
    SpamMetadata,
    SpamReport,
    SpamSummary,
    Ticket,
    TicketDraft,
    TicketPriority,
    TicketStats,
    TicketStatus,
    TRIAGE_STATUSES,
    is_backward_transition,
    utcnow,
)
from fixdesk.domains.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from fixdesk.interfaces.repositories import TechnicianDirectory, TicketRepository
from fixdesk.interfaces.services.notification import NotificationService
from fixdesk.interfaces.services.ticket import (
    TicketService as TicketServiceInterface,
)
from fixdesk.services.dedup import MERGE_SEPARATOR

logger = logging.getLogger(__name__)

REQUIRED_DRAFT_FIELDS = [
    "title",
    "description",
    "reported_by",
    "category",
    "location",
    "community_id",
]

# Fields a reporter may change after creation.
EDITABLE_FIELDS = ["title", "description", "location", "category", "priority", "images"]


def _as_image_list(value: Any, field: str) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ValidationError(f"{field} must be a string or a list of strings")


def normalize_images(images: Optional[Any] = None, image_url: Optional[Any] = None) -> List[str]:
    """Merge the image list and the legacy image field, dropping junk.

    Either field may hold a single URL or a list of URLs.
    """
    candidates = _as_image_list(images, "images") + _as_image_list(image_url, "image_url")
    return [image for image in candidates if isinstance(image, str) and image.strip()]


class TicketService(TicketServiceInterface):
    """Service that owns the ticket state machine."""

    def __init__(
        self,
        ticket_repository: TicketRepository,
        technician_directory: TechnicianDirectory,
        notification_service: NotificationService,
        allow_backward_transitions: bool = True,
    ):
        """Initialize the ticket service.

        Args:
            ticket_repository: Ticket store
            technician_directory: Read-only user and technician lookup
            notification_service: Notification triggers
            allow_backward_transitions: Whether e.g. resolved -> open is permitted
        """
        self.ticket_repository = ticket_repository
        self.technician_directory = technician_directory
        self.notification_service = notification_service
        self.allow_backward_transitions = allow_backward_transitions

    def validate_draft(self, draft: TicketDraft) -> None:
        """Reject drafts missing any required field."""
        missing = [
            field for field in REQUIRED_DRAFT_FIELDS
            if not str(getattr(draft, field) or "").strip()
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    def create_ticket(self, draft: TicketDraft) -> Ticket:
        """Persist a new open ticket from a reporter draft."""
        self.validate_draft(draft)

        if not self.technician_directory.get_user(draft.reported_by):
            raise NotFoundError(f"Reporter {draft.reported_by} not found")
        if not self.technician_directory.community_exists(draft.community_id):
            raise NotFoundError(f"Community {draft.community_id} not found")

        ticket = Ticket(
            id=str(uuid.uuid4()),
            title=draft.title.strip(),
            description=draft.description.strip(),
            images=normalize_images(draft.images),
            reported_by=draft.reported_by,
            community_id=draft.community_id,
            category=draft.category,
            location=draft.location.strip(),
            priority=draft.priority,
            status=TicketStatus.OPEN,
            last_updated_by=draft.reported_by,
        )
        self.ticket_repository.create(ticket)
        logger.info(
            f"Created ticket {ticket.id} in community {ticket.community_id} ({len(ticket.images)} images)"
        )
        return ticket

    def get_ticket(self, ticket_id: str) -> Ticket:
        """Get a ticket or raise NotFoundError."""
        ticket = self.ticket_repository.get_by_id(ticket_id)
        if not ticket:
            raise NotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    def list_tickets(
        self,
        community_id: Optional[str] = None,
        reported_by: Optional[str] = None,
        status: Optional[str] = None,
        category: Optional[str] = None,
        assigned_to: Optional[str] = None,
        limit: int = 0,
    ) -> List[Ticket]:
        """List tickets newest first."""
        status_in = [self._parse_status(status)] if status else None
        return self.ticket_repository.find_tickets(
            community_id=community_id,
            reported_by=reported_by,
            status_in=status_in,
            category=category,
            assigned_to=assigned_to,
            limit=limit,
        )

    def get_stats(
        self, community_id: Optional[str] = None, assigned_to: Optional[str] = None
    ) -> TicketStats:
        """Count tickets by status. Spam is not part of the total."""
        base_query: Dict[str, Any] = {}
        if community_id:
            base_query["community_id"] = community_id
        if assigned_to:
            base_query["assigned_to"] = assigned_to

        counts = {
            status.value: self.ticket_repository.count({**base_query, "status": status.value})
            for status in TicketStatus
        }
        total = sum(count for status, count in counts.items() if status != TicketStatus.SPAM.value)
        return TicketStats(**counts, total=total)

    def get_spam_tickets(self, community_id: Optional[str] = None, limit: int = 50) -> SpamReport:
        """List spam tickets with a confidence summary."""
        tickets = self.ticket_repository.find_tickets(
            community_id=community_id,
            status_in=[TicketStatus.SPAM],
            limit=limit,
        )

        summary = SpamSummary(total=len(tickets))
        for ticket in tickets:
            confidence = ticket.spam_metadata.confidence if ticket.spam_metadata else 0.0
            if confidence > 0.8:
                summary.high_confidence += 1
            elif confidence > 0.5:
                summary.medium_confidence += 1
            else:
                summary.low_confidence += 1

        return SpamReport(tickets=tickets, summary=summary)

    def update_ticket(self, ticket_id: str, updates: Dict[str, Any], updated_by: str) -> Ticket:
        """Apply reporter edits. Engine-owned and lifecycle fields are rejected."""
        rejected = sorted(set(updates) - set(EDITABLE_FIELDS))
        if rejected:
            raise ValidationError(f"Fields cannot be updated: {', '.join(rejected)}")

        changes: Dict[str, Any] = {}
        for field, value in updates.items():
            if field == "images":
                changes["images"] = normalize_images(value)
            elif field == "priority":
                try:
                    changes["priority"] = TicketPriority(value)
                except ValueError:
                    raise ValidationError(f"Invalid priority: {value}")
            else:
                if not isinstance(value, str) or not value.strip():
                    raise ValidationError(f"{field} must be a non-empty string")
                changes[field] = value.strip()

        ticket = self.get_ticket(ticket_id)
        if not changes:
            return ticket

        changes["last_updated_by"] = updated_by
        updated = self.ticket_repository.update(ticket_id, changes, expected_version=ticket.version)
        if not updated:
            raise ConflictError(f"Ticket {ticket_id} was modified concurrently")
        return updated

    def apply_enrichment(
        self, ticket_id: str, outcome: ClassificationOutcome
    ) -> Ticket:
        """Write the classification onto a freshly created ticket."""
        ticket = self.get_ticket(ticket_id)
        result = outcome.result

        if outcome.kind == "parsed":
            priority = (
                TicketPriority.HIGH
                if result.predicted_urgency == "high"
                else TicketPriority.LOW
            )
            fallback_reason = None
        else:
            priority = (
                TicketPriority.MEDIUM
                if ticket.priority == TicketPriority.AUTO
                else ticket.priority
            )
            fallback_reason = outcome.reason

        ai_metadata = AIMetadata(
            predicted_category=result.predicted_category,
            predicted_urgency=result.predicted_urgency,
            confidence=result.confidence,
            similar_past_tickets=result.similar_ticket_ids,
            recommended_technician=result.recommended_technician,
            alternative_technicians=result.alternative_technicians,
            fallback_reason=fallback_reason,
        )

        updated = self.ticket_repository.update(
            ticket_id,
            {
                "ai_metadata": ai_metadata,
                "category": result.predicted_category,
                "priority": priority,
                "required_tools": result.required_tools,
                "required_materials": result.required_materials,
                "estimated_duration": result.estimated_duration,
                "difficulty_level": result.difficulty_level,
                "last_updated_by": "system",
            },
        )
        if not updated:
            raise NotFoundError(f"Ticket {ticket_id} not found")
        return updated

    async def flag_as_spam(
        self,
        ticket_id: str,
        confidence: float = 1.0,
        reason: str = "",
        marked_by: str = "system",
        notify: bool = True,
    ) -> Ticket:
        """Move a ticket to the spam branch, keeping its previous assignee on record."""
        ticket = self.get_ticket(ticket_id)
        if ticket.status == TicketStatus.SPAM:
            return ticket

        spam_metadata = SpamMetadata(
            confidence=confidence,
            reason=reason or "Manually marked as spam",
            marked_by=marked_by,
            previous_assignee=ticket.assigned_to,
        )
        updated = self.ticket_repository.update(
            ticket_id,
            {
                "status": TicketStatus.SPAM,
                "assigned_to": None,
                "spam_metadata": spam_metadata,
                "last_updated_by": marked_by,
            },
            expected_version=ticket.version,
        )
        if not updated:
            raise ConflictError(f"Ticket {ticket_id} was modified concurrently")

        logger.info(
            f"Ticket {ticket_id} flagged as spam by {marked_by} (confidence {confidence})"
        )
        if notify:
            await self.notification_service.notify_status_changed(
                updated, ticket.status, marked_by
            )
        return updated

    async def unmark_spam(
        self,
        ticket_id: str,
        unmarked_by: str,
        target_status: TicketStatus = TicketStatus.OPEN,
    ) -> Ticket:
        """Leave the spam branch. The spam record is annotated, not removed."""
        target_status = self._parse_status(target_status)
        if target_status == TicketStatus.SPAM:
            raise ValidationError("Target status cannot be spam")

        ticket = self.get_ticket(ticket_id)
        if ticket.status != TicketStatus.SPAM:
            raise InvalidTransitionError(f"Ticket {ticket_id} is not marked as spam")

        spam_metadata = ticket.spam_metadata or SpamMetadata(reason="Unknown")
        assigned_to = None
        if target_status in ASSIGNEE_STATUSES:
            assigned_to = spam_metadata.previous_assignee
            if not assigned_to:
                raise InvalidTransitionError(
                    f"Cannot restore ticket {ticket_id} to {target_status.value} without an assignee"
                )

        spam_metadata = spam_metadata.model_copy(
            update={"unmarked_at": utcnow(), "unmarked_by": unmarked_by}
        )
        updated = self.ticket_repository.update(
            ticket_id,
            {
                "status": target_status,
                "assigned_to": assigned_to,
                "spam_metadata": spam_metadata,
                "last_updated_by": unmarked_by,
            },
            expected_version=ticket.version,
        )
        if not updated:
            raise ConflictError(f"Ticket {ticket_id} was modified concurrently")

        logger.info(f"Ticket {ticket_id} unmarked as spam by {unmarked_by} -> {target_status.value}")
        await self.notification_service.notify_status_changed(
            updated, TicketStatus.SPAM, unmarked_by
        )
        return updated

    async def assign(
        self,
        ticket_id: str,
        technician_id: str,
        assigned_by: str,
        metadata: Optional[AssignmentMetadata] = None,
        expected_version: Optional[int] = None,
    ) -> Ticket:
        """Assign or reassign a ticket to a technician."""
        technician = self.technician_directory.get_technician(technician_id)
        if not technician:
            raise NotFoundError(f"Technician {technician_id} not found")

        ticket = self.get_ticket(ticket_id)
        if ticket.status == TicketStatus.SPAM:
            raise InvalidTransitionError(f"Ticket {ticket_id} is marked as spam")
        self._check_transition(ticket, TicketStatus.ASSIGNED)

        if expected_version is None:
            expected_version = ticket.version

        if metadata is None:
            metadata = AssignmentMetadata(
                auto_assigned=False,
                assignment_method="manual",
                assigned_by=assigned_by,
            )

        updated = self.ticket_repository.update(
            ticket_id,
            {
                "assigned_to": technician.id,
                "status": TicketStatus.ASSIGNED,
                "assignment_metadata": metadata,
                "last_updated_by": assigned_by,
            },
            expected_version=expected_version,
        )
        if not updated:
            raise ConflictError(
                f"Ticket {ticket_id} was modified concurrently, assignment not applied"
            )

        logger.info(
            f"Ticket {ticket_id} assigned to {technician.id} ({metadata.assignment_method})"
        )
        await self.notification_service.notify_ticket_assigned(
            updated, technician.name, assigned_by
        )
        return updated

    async def update_status(
        self,
        ticket_id: str,
        status: Any,
        updated_by: str,
        expected_version: Optional[int] = None,
    ) -> Ticket:
        """Move a ticket along its lifecycle."""
        new_status = self._parse_status(status)
        if new_status == TicketStatus.SPAM:
            raise ValidationError("Use mark-spam to flag a ticket as spam")

        ticket = self.get_ticket(ticket_id)
        if ticket.status == TicketStatus.SPAM:
            raise InvalidTransitionError(
                f"Ticket {ticket_id} is marked as spam, unmark it first"
            )
        if ticket.status == new_status:
            return ticket

        self._check_transition(ticket, new_status)

        changes: Dict[str, Any] = {"status": new_status, "last_updated_by": updated_by}
        if new_status == TicketStatus.OPEN:
            changes["assigned_to"] = None
            changes["assignment_metadata"] = None
        elif new_status in ASSIGNEE_STATUSES and not ticket.assigned_to:
            raise InvalidTransitionError(
                f"Ticket {ticket_id} has no assigned technician, cannot move to {new_status.value}"
            )

        updated = self.ticket_repository.update(
            ticket_id,
            changes,
            expected_version=ticket.version if expected_version is None else expected_version,
        )
        if not updated:
            raise ConflictError(f"Ticket {ticket_id} was modified concurrently")

        logger.info(
            f"Ticket {ticket_id} status {ticket.status.value} -> {new_status.value} by {updated_by}"
        )
        await self.notification_service.notify_status_changed(
            updated, ticket.status, updated_by
        )
        return updated

    async def absorb(self, ticket_id: str, target_ticket_id: str) -> Optional[Ticket]:
        """Merge a new ticket into an existing one and delete it.

        Returns the absorbing ticket, or None when the target is gone, no
        longer in triage, or changed while merging. The new ticket is left
        untouched in that case.
        """
        ticket = self.get_ticket(ticket_id)
        target = self.ticket_repository.get_by_id(target_ticket_id)
        if not target or target.status not in TRIAGE_STATUSES:
            logger.warning(
                f"Merge target {target_ticket_id} unavailable, keeping ticket {ticket_id}"
            )
            return None

        snapshot = MergedTicket(
            id=ticket.id,
            description=ticket.description,
            images=ticket.images,
            reported_by=ticket.reported_by,
        )
        merged = self.ticket_repository.update(
            target.id,
            {
                "description": f"{target.description}{MERGE_SEPARATOR}{ticket.description}",
                "images": target.images + ticket.images,
                "history": target.history + [snapshot],
                "last_updated_by": "system",
            },
            expected_version=target.version,
        )
        if not merged:
            logger.warning(
                f"Merge target {target_ticket_id} changed during merge, keeping ticket {ticket_id}"
            )
            return None

        self.ticket_repository.delete(ticket.id)
        logger.info(f"Ticket {ticket.id} merged into {target.id}")

        await self.notification_service.notify_merged(ticket.reported_by, ticket.id, merged)
        return merged

    def _parse_status(self, status: Any) -> TicketStatus:
        try:
            return TicketStatus(status)
        except ValueError:
            raise ValidationError(f"Invalid status: {status}")

    def _check_transition(self, ticket: Ticket, target: TicketStatus) -> None:
        if not is_backward_transition(ticket.status, target):
            return
        if not self.allow_backward_transitions:
            raise InvalidTransitionError(
                f"Ticket {ticket.id} cannot move back from {ticket.status.value} to {target.value}"
            )
        logger.warning(
            f"Ticket {ticket.id} moved back from {ticket.status.value} to {target.value}"
        )
