"""
Request bodies of the HTTP surface.

Required ticket fields default to empty so that missing values reach the
engine's own validation and come back as one descriptive 400.
"""
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from fixdesk.domains import TicketDraft, TicketPriority, TicketStatus


class TicketCreate(BaseModel):
    title: str = ""
    description: str = ""
    reported_by: str = ""
    category: str = ""
    location: str = ""
    community_id: str = ""
    priority: TicketPriority = TicketPriority.AUTO
    images: Optional[List[Any]] = None
    image_url: Optional[Any] = Field(None, description="Legacy single image field")
    auto_assign: bool = False

    def to_draft(self, images: List[str]) -> TicketDraft:
        return TicketDraft(
            title=self.title,
            description=self.description,
            reported_by=self.reported_by,
            category=self.category,
            location=self.location,
            community_id=self.community_id,
            priority=self.priority,
            images=images,
        )


class StatusUpdate(BaseModel):
    status: str
    updated_by: str


class ManualAssignment(BaseModel):
    technician_id: str
    assigned_by: str


class AutoAssignment(BaseModel):
    assigned_by: str = "system"


class SpamFlag(BaseModel):
    marked_by: str
    reason: str = ""
    confidence: float = Field(1.0, ge=0.0, le=1.0)


class SpamUnflag(BaseModel):
    unmarked_by: str
    target_status: TicketStatus = TicketStatus.OPEN
