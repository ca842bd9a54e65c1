"""
Technician assignment service.

Ranks the technicians of a ticket's community with the deterministic scorer
and commits the winner through the ticket service.
"""
import logging
from typing import List, Optional, Tuple

from fixdesk.domains import (
    AssignmentCandidate,
    AssignmentMetadata,
    AssignmentResult,
    Ticket,
    TicketStatus,
)
from fixdesk.domains.errors import InvalidTransitionError
from fixdesk.interfaces.repositories import TechnicianDirectory
from fixdesk.interfaces.services.assignment import (
    AssignmentService as AssignmentServiceInterface,
)
from fixdesk.interfaces.services.ticket import TicketService
from fixdesk.services.scoring import (
    MAX_ACTIVE_WORKLOAD,
    rank_candidates,
    score_technician,
)

logger = logging.getLogger(__name__)

NO_AVAILABLE_TECHNICIANS = "No available technicians"


class AssignmentService(AssignmentServiceInterface):
    """Service for choosing and assigning technicians."""

    def __init__(
        self,
        ticket_service: TicketService,
        technician_directory: TechnicianDirectory,
        max_active_workload: int = MAX_ACTIVE_WORKLOAD,
        workload_drift_tolerance: int = 2,
        max_assignment_retries: int = 2,
    ):
        """Initialize the assignment service.

        Args:
            ticket_service: Lifecycle service that commits assignments
            technician_directory: Technician lookup with workload counts
            max_active_workload: Technicians at or above this are not candidates
            workload_drift_tolerance: Workload rise between scoring and commit
                that triggers a re-selection
            max_assignment_retries: Re-selections before committing anyway
        """
        self.ticket_service = ticket_service
        self.technician_directory = technician_directory
        self.max_active_workload = max_active_workload
        self.workload_drift_tolerance = workload_drift_tolerance
        self.max_assignment_retries = max_assignment_retries

    def find_available_technicians(self, ticket: Ticket) -> List[AssignmentCandidate]:
        """Score the community's technicians below the workload cap, best first."""
        technicians = self.technician_directory.list_technicians(ticket.community_id)
        candidates = [
            score_technician(
                ticket.category, ticket.priority, technician, self.max_active_workload
            )
            for technician in technicians
        ]
        return rank_candidates([candidate for candidate in candidates if candidate.available])

    def find_best_technician(self, ticket: Ticket) -> Optional[AssignmentCandidate]:
        candidates = self.find_available_technicians(ticket)
        return candidates[0] if candidates else None

    def get_available_technicians(self, ticket_id: str) -> List[AssignmentCandidate]:
        """Scored candidate list for an existing ticket."""
        return self.find_available_technicians(self.ticket_service.get_ticket(ticket_id))

    async def auto_assign(
        self,
        ticket_id: str,
        assigned_by: str = "system",
        recommended_technician_id: Optional[str] = None,
    ) -> AssignmentResult:
        """Assign a ticket to the best available technician.

        A recommended technician wins only while it is an available
        candidate. Workload is re-read right before the commit; if it rose
        by the drift tolerance or hit the cap, candidates are scored again.
        """
        ticket = self.ticket_service.get_ticket(ticket_id)
        if ticket.status == TicketStatus.SPAM:
            raise InvalidTransitionError(f"Ticket {ticket_id} is marked as spam")

        for attempt in range(self.max_assignment_retries + 1):
            candidates = self.find_available_technicians(ticket)
            if not candidates:
                logger.info(f"No available technicians for ticket {ticket_id}")
                return AssignmentResult(assigned=False, reason=NO_AVAILABLE_TECHNICIANS)

            chosen, method = self._choose(candidates, recommended_technician_id)

            current_workload = self.technician_directory.count_active_tickets(chosen.id)
            if current_workload >= self.max_active_workload:
                logger.info(
                    f"Technician {chosen.id} reached capacity while assigning ticket {ticket_id}"
                )
                continue

            drift = current_workload - chosen.workload
            if drift >= self.workload_drift_tolerance and attempt < self.max_assignment_retries:
                logger.info(
                    f"Workload of {chosen.id} rose by {drift} while assigning ticket {ticket_id}, re-scoring"
                )
                continue

            metadata = AssignmentMetadata(
                auto_assigned=True,
                assignment_score=chosen.score,
                assignment_reason=chosen.reason,
                assignment_method=method,
                assigned_by=assigned_by,
            )
            await self.ticket_service.assign(
                ticket_id,
                chosen.id,
                assigned_by,
                metadata=metadata,
                expected_version=ticket.version,
            )
            return AssignmentResult(
                assigned=True,
                technician=chosen,
                method=method,
                reason=chosen.reason,
            )

        return AssignmentResult(assigned=False, reason=NO_AVAILABLE_TECHNICIANS)

    def _choose(
        self,
        candidates: List[AssignmentCandidate],
        recommended_technician_id: Optional[str],
    ) -> Tuple[AssignmentCandidate, str]:
        if recommended_technician_id:
            for candidate in candidates:
                if candidate.id == recommended_technician_id:
                    return candidate, "ai_recommendation"
            logger.info(
                f"Recommended technician {recommended_technician_id} is not available, using scorer"
            )
        return candidates[0], "algorithm_assignment"
