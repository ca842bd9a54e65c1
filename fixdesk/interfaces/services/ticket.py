from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from fixdesk.domains import (
    AssignmentMetadata,
    ClassificationOutcome,
    SpamReport,
    Ticket,
    TicketDraft,
    TicketStats,
    TicketStatus,
)


class TicketService(ABC):
    """Interface for the ticket lifecycle.

    Implementations are the only writers of ticket state.
    """

    @abstractmethod
    def create_ticket(self, draft: TicketDraft) -> Ticket:
        """Validate a draft and persist it as an open ticket."""
        pass

    @abstractmethod
    def get_ticket(self, ticket_id: str) -> Ticket:
        """Get a ticket or raise NotFoundError."""
        pass

    @abstractmethod
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
        pass

    @abstractmethod
    def get_stats(
        self, community_id: Optional[str] = None, assigned_to: Optional[str] = None
    ) -> TicketStats:
        """Count tickets by status."""
        pass

    @abstractmethod
    def get_spam_tickets(self, community_id: Optional[str] = None, limit: int = 50) -> SpamReport:
        """List spam tickets with a confidence summary."""
        pass

    @abstractmethod
    def update_ticket(self, ticket_id: str, updates: Dict[str, Any], updated_by: str) -> Ticket:
        """Apply reporter edits."""
        pass

    @abstractmethod
    def apply_enrichment(self, ticket_id: str, outcome: ClassificationOutcome) -> Ticket:
        """Write a classification onto a ticket."""
        pass

    @abstractmethod
    async def flag_as_spam(
        self,
        ticket_id: str,
        confidence: float = 1.0,
        reason: str = "",
        marked_by: str = "system",
        notify: bool = True,
    ) -> Ticket:
        """Move a ticket to the spam branch."""
        pass

    @abstractmethod
    async def unmark_spam(
        self,
        ticket_id: str,
        unmarked_by: str,
        target_status: TicketStatus = TicketStatus.OPEN,
    ) -> Ticket:
        """Leave the spam branch."""
        pass

    @abstractmethod
    async def assign(
        self,
        ticket_id: str,
        technician_id: str,
        assigned_by: str,
        metadata: Optional[AssignmentMetadata] = None,
        expected_version: Optional[int] = None,
    ) -> Ticket:
        """Assign a ticket, failing with ConflictError if it changed meanwhile."""
        pass

    @abstractmethod
    async def update_status(
        self,
        ticket_id: str,
        status: Any,
        updated_by: str,
        expected_version: Optional[int] = None,
    ) -> Ticket:
        """Move a ticket along its lifecycle."""
        pass

    @abstractmethod
    async def absorb(self, ticket_id: str, target_ticket_id: str) -> Optional[Ticket]:
        """Merge a ticket into another; None when the merge was abandoned."""
        pass
