"""
Intake outcome model returned to the reporter of a new ticket.
"""
from typing import Literal, Optional

from pydantic import BaseModel

from fixdesk.domains.technicians import AssignmentResult
from fixdesk.domains.tickets import SpamMetadata, Ticket


class IntakeOutcome(BaseModel):
    """Definitive result of one submission: created, merged or flagged as spam."""
    status: Literal["created", "merged", "spam"]
    ticket_id: str
    ticket: Optional[Ticket] = None
    merged_into: Optional[str] = None
    spam: Optional[SpamMetadata] = None
    assignment: Optional[AssignmentResult] = None
    classification: Literal["parsed", "fallback"] = "parsed"
    fallback_reason: Optional[str] = None

    @property
    def message(self) -> str:
        if self.status == "spam":
            return "Ticket flagged as spam"
        if self.status == "merged":
            return "Ticket merged with existing similar issue"
        if self.classification == "fallback":
            return "Ticket created successfully (classification unavailable)"
        return "Ticket created successfully"
