"""
MongoDB implementation of the technician directory.

Users and communities are owned by other subsystems; this repository only
reads them.
"""
from typing import Any, Dict, List, Optional

from fixdesk.domains import ACTIVE_STATUSES, Technician
from fixdesk.interfaces.providers.data_storage import DataStorageProvider
from fixdesk.interfaces.repositories import TechnicianDirectory


class MongoTechnicianDirectory(TechnicianDirectory):
    """MongoDB implementation of the TechnicianDirectory interface."""

    def __init__(self, db_adapter: DataStorageProvider):
        """Initialize the directory with a database adapter.

        Args:
            db_adapter: MongoDB adapter instance
        """
        self.db = db_adapter
        self.users_collection = "users"
        self.communities_collection = "communities"
        self.tickets_collection = "tickets"

    def _to_technician(self, doc: Dict[str, Any]) -> Technician:
        return Technician(
            id=doc["id"],
            name=doc.get("name") or "Unknown",
            expertise=doc.get("expertise") or [],
            community_id=doc.get("community_id"),
            role=doc.get("role", "technician"),
            current_workload=self.count_active_tickets(doc["id"]),
        )

    def list_technicians(self, community_id: str) -> List[Technician]:
        """List the technicians of a community, ordered by id."""
        docs = self.db.find(
            self.users_collection,
            {"role": "technician", "community_id": community_id},
            sort=[("id", 1)],
        )
        return [self._to_technician(doc) for doc in docs]

    def get_technician(self, technician_id: str) -> Optional[Technician]:
        """Get a technician by ID. Users with another role are not returned."""
        doc = self.get_user(technician_id)
        if not doc or doc.get("role") != "technician":
            return None
        return self._to_technician(doc)

    def count_active_tickets(self, technician_id: str) -> int:
        """Count assigned and in-progress tickets of a technician."""
        return self.db.count_documents(
            self.tickets_collection,
            {
                "assigned_to": technician_id,
                "status": {"$in": [status.value for status in ACTIVE_STATUSES]},
            },
        )

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.db.find_one(self.users_collection, {"id": user_id})

    def community_exists(self, community_id: str) -> bool:
        return self.db.find_one(self.communities_collection, {"id": community_id}) is not None
