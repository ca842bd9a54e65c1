"""
Repository interfaces for data access.

These interfaces define the contracts for data access components,
allowing for different storage implementations (MongoDB, memory, etc.)
without changing the business logic.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from fixdesk.domains import Technician, Ticket


class TicketRepository(ABC):
    """Interface for the ticket store."""

    @abstractmethod
    def create(self, ticket: Ticket) -> str:
        """Create a new ticket and return its ID."""
        pass

    @abstractmethod
    def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get a ticket by ID."""
        pass

    @abstractmethod
    def find(self, query: Dict, sort_by: Optional[str] = None, limit: int = 0) -> List[Ticket]:
        """Find tickets matching a raw query."""
        pass

    @abstractmethod
    def find_tickets(
        self,
        community_id: Optional[str] = None,
        reported_by: Optional[str] = None,
        status_in: Optional[List[str]] = None,
        category: Optional[str] = None,
        assigned_to: Optional[str] = None,
        created_after: Optional[datetime] = None,
        updated_after: Optional[datetime] = None,
        limit: int = 0,
    ) -> List[Ticket]:
        """Find tickets by the filters the engine uses, newest first."""
        pass

    @abstractmethod
    def update(
        self, ticket_id: str, updates: Dict[str, Any], expected_version: Optional[int] = None
    ) -> Optional[Ticket]:
        """Apply a partial update and return the updated ticket.

        With expected_version the write only happens if the stored version
        still matches; None is returned when the ticket is gone or the
        version moved on.
        """
        pass

    @abstractmethod
    def update_many(self, query: Dict, updates: Dict[str, Any]) -> int:
        """Apply the same partial update to every matching ticket."""
        pass

    @abstractmethod
    def delete(self, ticket_id: str) -> bool:
        """Hard-delete a ticket."""
        pass

    @abstractmethod
    def count(self, query: Dict) -> int:
        """Count tickets matching query."""
        pass


class TechnicianDirectory(ABC):
    """Read-only view of users, technicians and communities."""

    @abstractmethod
    def list_technicians(self, community_id: str) -> List[Technician]:
        """List technicians of a community with their current workload."""
        pass

    @abstractmethod
    def get_technician(self, technician_id: str) -> Optional[Technician]:
        """Get a user with the technician role."""
        pass

    @abstractmethod
    def count_active_tickets(self, technician_id: str) -> int:
        """Count tickets assigned to a technician that are assigned or in progress."""
        pass

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get any user document."""
        pass

    @abstractmethod
    def community_exists(self, community_id: str) -> bool:
        """Check whether a community exists."""
        pass
