from abc import ABC, abstractmethod
from typing import List, Optional

from fixdesk.domains import AssignmentCandidate, AssignmentResult, Ticket


class AssignmentService(ABC):
    """Interface for technician selection and auto-assignment."""

    @abstractmethod
    def find_available_technicians(self, ticket: Ticket) -> List[AssignmentCandidate]:
        """Scored candidates under the workload cap, best first."""
        pass

    @abstractmethod
    def find_best_technician(self, ticket: Ticket) -> Optional[AssignmentCandidate]:
        """Top candidate, if any."""
        pass

    @abstractmethod
    def get_available_technicians(self, ticket_id: str) -> List[AssignmentCandidate]:
        """Scored candidates for a stored ticket."""
        pass

    @abstractmethod
    async def auto_assign(
        self,
        ticket_id: str,
        assigned_by: str = "system",
        recommended_technician_id: Optional[str] = None,
    ) -> AssignmentResult:
        """Assign a ticket to the best available technician."""
        pass
