"""
MongoDB implementation of the ticket repository.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from fixdesk.domains import Ticket
from fixdesk.interfaces.providers.data_storage import DataStorageProvider
from fixdesk.interfaces.repositories import TicketRepository


def to_document(value: Any) -> Any:
    """Convert models and enums into plain BSON-friendly values."""
    if isinstance(value, datetime):
        # Mongo keeps naive datetimes as UTC
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, BaseModel):
        return to_document(value.model_dump())
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: to_document(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_document(item) for item in value]
    return value


class MongoTicketRepository(TicketRepository):
    """MongoDB implementation of the TicketRepository interface."""

    def __init__(self, db_adapter: DataStorageProvider):
        """Initialize the repository with a database adapter.

        Args:
            db_adapter: MongoDB adapter instance
        """
        self.db = db_adapter
        self.collection = "tickets"

        # Ensure collection exists
        self.db.create_collection(self.collection)

        # Create indexes for common queries
        self.db.create_index(self.collection, [("id", 1)], unique=True)
        self.db.create_index(self.collection, [("community_id", 1), ("status", 1)])
        self.db.create_index(self.collection, [("reported_by", 1)])
        self.db.create_index(self.collection, [("assigned_to", 1), ("status", 1)])
        self.db.create_index(self.collection, [("created_at", -1)])

    def create(self, ticket: Ticket) -> str:
        """Create a new ticket and return its ID."""
        doc = to_document(ticket)
        doc["_id"] = ticket.id
        self.db.insert_one(self.collection, doc)
        return ticket.id

    def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get a ticket by ID."""
        doc = self.db.find_one(self.collection, {"id": ticket_id})
        if not doc:
            return None

        return Ticket.model_validate(doc)

    def find(self, query: Dict, sort_by: Optional[str] = None, limit: int = 0) -> List[Ticket]:
        """Find tickets matching query."""
        sort_option = None
        if sort_by:
            # Determine sort direction
            direction = -1 if sort_by.startswith("-") else 1
            field = sort_by[1:] if sort_by.startswith("-") else sort_by
            sort_option = [(field, direction)]

        docs = self.db.find(self.collection, query,
                            sort=sort_option, limit=limit)

        return [Ticket.model_validate(doc) for doc in docs]

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
        """Find tickets matching specific criteria, newest first."""
        query: Dict[str, Any] = {}

        if community_id:
            query["community_id"] = community_id
        if reported_by:
            query["reported_by"] = reported_by
        if status_in:
            query["status"] = {"$in": [to_document(status) for status in status_in]}
        if category:
            query["category"] = category
        if assigned_to:
            query["assigned_to"] = assigned_to
        if created_after:
            query["created_at"] = {"$gte": to_document(created_after)}
        if updated_after:
            query["updated_at"] = {"$gte": to_document(updated_after)}

        return self.find(query, sort_by="-created_at", limit=limit)

    def update(
        self, ticket_id: str, updates: Dict[str, Any], expected_version: Optional[int] = None
    ) -> Optional[Ticket]:
        """Update a ticket, optionally only if its version still matches."""
        query: Dict[str, Any] = {"id": ticket_id}
        if expected_version is not None:
            query["version"] = expected_version

        # Always update the 'updated_at' field
        updates_with_timestamp = to_document(
            {**updates, "updated_at": datetime.now(timezone.utc)}
        )

        doc = self.db.find_one_and_update(
            self.collection,
            query,
            {"$set": updates_with_timestamp, "$inc": {"version": 1}},
        )
        if not doc:
            return None

        return Ticket.model_validate(doc)

    def update_many(self, query: Dict, updates: Dict[str, Any]) -> int:
        """Apply the same update to every matching ticket."""
        return self.db.update_many(
            self.collection,
            query,
            {
                "$set": to_document({**updates, "updated_at": datetime.now(timezone.utc)}),
                "$inc": {"version": 1},
            },
        )

    def delete(self, ticket_id: str) -> bool:
        """Delete a ticket."""
        return self.db.delete_one(self.collection, {"id": ticket_id})

    def count(self, query: Dict) -> int:
        """Count tickets matching query."""
        return self.db.count_documents(self.collection, to_document(query))
