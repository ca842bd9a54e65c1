"""
Intake orchestration for new ticket reports.

A report is persisted first, then classified. The classification decides
between the spam branch, a merge into an existing ticket, or normal
enrichment with optional auto-assignment. Oracle trouble never fails the
submission.
"""
import asyncio
import logging
from datetime import timedelta
from typing import Optional

from fixdesk.domains import (
    AssignmentResult,
    CommunityContext,
    IntakeOutcome,
    Ticket,
    TicketDraft,
    TRIAGE_STATUSES,
    utcnow,
)
from fixdesk.domains.errors import TicketEngineError
from fixdesk.interfaces.repositories import TechnicianDirectory, TicketRepository
from fixdesk.interfaces.services.assignment import AssignmentService
from fixdesk.interfaces.services.classification import ClassificationService
from fixdesk.interfaces.services.dedup import DeduplicationResolver
from fixdesk.interfaces.services.intake import (
    IntakeService as IntakeServiceInterface,
)
from fixdesk.interfaces.services.ticket import TicketService

logger = logging.getLogger(__name__)


class IntakeService(IntakeServiceInterface):
    """Sequences creation, classification, spam, merge and assignment."""

    def __init__(
        self,
        ticket_service: TicketService,
        classification_service: ClassificationService,
        dedup_resolver: DeduplicationResolver,
        assignment_service: AssignmentService,
        ticket_repository: TicketRepository,
        technician_directory: TechnicianDirectory,
        context_ticket_limit: int = 20,
        spam_threshold: float = 0.8,
        reporter_window_hours: int = 24,
        assign_on_recommendation: bool = True,
    ):
        """Initialize the intake service.

        Args:
            ticket_service: Lifecycle service
            classification_service: Oracle-backed classifier
            dedup_resolver: Merge decision maker
            assignment_service: Technician selection
            ticket_repository: Ticket store, read for oracle context
            technician_directory: Technician roster, read for oracle context
            context_ticket_limit: Community tickets offered to the oracle
            spam_threshold: Spam confidence above which a ticket is flagged
            reporter_window_hours: Look-back for the reporter's own tickets
            assign_on_recommendation: Auto-assign when the oracle recommends someone
        """
        self.ticket_service = ticket_service
        self.classification_service = classification_service
        self.dedup_resolver = dedup_resolver
        self.assignment_service = assignment_service
        self.ticket_repository = ticket_repository
        self.technician_directory = technician_directory
        self.context_ticket_limit = context_ticket_limit
        self.spam_threshold = spam_threshold
        self.reporter_window_hours = reporter_window_hours
        self.assign_on_recommendation = assign_on_recommendation

    def build_context(self, ticket: Ticket) -> CommunityContext:
        """Collect the read-only context the oracle sees for a ticket."""
        recent = [
            other
            for other in self.ticket_repository.find_tickets(
                community_id=ticket.community_id,
                status_in=TRIAGE_STATUSES,
                limit=self.context_ticket_limit + 1,
            )
            if other.id != ticket.id
        ][: self.context_ticket_limit]

        reporter_recent = [
            other
            for other in self.ticket_repository.find_tickets(
                reported_by=ticket.reported_by,
                created_after=utcnow() - timedelta(hours=self.reporter_window_hours),
            )
            if other.id != ticket.id
        ]

        return CommunityContext(
            recent_tickets=recent,
            technicians=self.technician_directory.list_technicians(ticket.community_id),
            reporter_recent_tickets=reporter_recent,
        )

    async def submit(
        self,
        draft: TicketDraft,
        auto_assign: bool = False,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> IntakeOutcome:
        """Handle one ticket report end to end.

        Args:
            draft: Reporter-supplied fields
            auto_assign: Assign to the best technician even without a recommendation
            cancel_event: Set on client disconnect; abandons the oracle call

        Returns:
            Created, merged or spam outcome
        """
        ticket = self.ticket_service.create_ticket(draft)
        context = self.build_context(ticket)

        outcome = await self.classification_service.classify(
            draft.model_copy(update={"images": ticket.images}),
            context,
            cancel_event=cancel_event,
            ticket_id=ticket.id,
        )
        result = outcome.result
        fallback_reason = outcome.reason if outcome.kind == "fallback" else None

        if result.is_spam and result.spam_confidence > self.spam_threshold:
            flagged = await self.ticket_service.flag_as_spam(
                ticket.id,
                confidence=result.spam_confidence,
                reason=result.spam_reason,
                marked_by="system",
                notify=False,
            )
            return IntakeOutcome(
                status="spam",
                ticket_id=flagged.id,
                ticket=flagged,
                spam=flagged.spam_metadata,
                classification=outcome.kind,
            )
        if result.is_spam:
            logger.info(
                f"Ticket {ticket.id} spam confidence {result.spam_confidence} below threshold, treating as legitimate"
            )

        decision = self.dedup_resolver.resolve(result, context.recent_tickets)
        if decision.merge:
            merged = await self.ticket_service.absorb(ticket.id, decision.target_ticket_id)
            if merged:
                return IntakeOutcome(
                    status="merged",
                    ticket_id=merged.id,
                    ticket=merged,
                    merged_into=merged.id,
                    classification=outcome.kind,
                )

        enriched = self.ticket_service.apply_enrichment(ticket.id, outcome)

        assignment = None
        recommended = result.recommended_technician
        if auto_assign or (self.assign_on_recommendation and recommended):
            try:
                assignment = await self.assignment_service.auto_assign(
                    ticket.id,
                    assigned_by="system",
                    recommended_technician_id=recommended.id if recommended else None,
                )
            except TicketEngineError as e:
                logger.warning(f"Auto-assignment of ticket {ticket.id} failed: {e}")
                assignment = AssignmentResult(assigned=False, reason=str(e))

            if assignment.assigned:
                enriched = self.ticket_service.get_ticket(ticket.id)

        return IntakeOutcome(
            status="created",
            ticket_id=enriched.id,
            ticket=enriched,
            assignment=assignment,
            classification=outcome.kind,
            fallback_reason=fallback_reason,
        )
