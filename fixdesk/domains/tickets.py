"""
Ticket domain models.

These models define maintenance tickets, their lifecycle states and the
enrichment data written by the intake engine.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes read back from the store as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TicketStatus(str, Enum):
    """Status of a maintenance ticket."""
    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    SPAM = "spam"


class TicketPriority(str, Enum):
    """Priority of a maintenance ticket. The engine may overwrite AUTO."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    AUTO = "auto"


class TicketCategory(str, Enum):
    """Fixed set of maintenance categories."""
    PLUMBING = "plumbing"
    ELECTRICAL = "electrical"
    HVAC = "hvac"
    CARPENTRY = "carpentry"
    PAINTING = "painting"
    APPLIANCE = "appliance"
    LANDSCAPING = "landscaping"
    MAINTENANCE = "maintenance"
    SECURITY = "security"
    ELEVATOR = "elevator"
    FIRE_SAFETY = "fire_safety"
    PEST_CONTROL = "pest_control"


# Forward order of the normal lifecycle; spam is a side branch.
STATUS_ORDER = [
    TicketStatus.OPEN,
    TicketStatus.ASSIGNED,
    TicketStatus.IN_PROGRESS,
    TicketStatus.RESOLVED,
    TicketStatus.CLOSED,
]

# Statuses that count toward a technician's workload.
ACTIVE_STATUSES = [TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS]

# Statuses a ticket can be merged into or offered to the oracle as context.
TRIAGE_STATUSES = [
    TicketStatus.OPEN,
    TicketStatus.ASSIGNED,
    TicketStatus.IN_PROGRESS,
]

# assigned_to is set iff the status is one of these.
ASSIGNEE_STATUSES = [
    TicketStatus.ASSIGNED,
    TicketStatus.IN_PROGRESS,
    TicketStatus.RESOLVED,
    TicketStatus.CLOSED,
]


def is_backward_transition(current: TicketStatus, target: TicketStatus) -> bool:
    """Check whether moving from current to target goes back in the lifecycle."""
    if current not in STATUS_ORDER or target not in STATUS_ORDER:
        return False
    return STATUS_ORDER.index(target) < STATUS_ORDER.index(current)


class RequiredTool(BaseModel):
    """Tool the oracle estimates is needed for the job."""
    name: str = Field(..., description="Tool name")
    category: Optional[str] = Field(None, description="Tool category")
    estimated_cost: Optional[str] = Field(
        None, description="Cost estimate such as '$15-25'")
    required: bool = Field(True, description="Whether the tool is mandatory")
    alternatives: List[str] = Field(
        default_factory=list, description="Acceptable substitutes")


class RequiredMaterial(BaseModel):
    """Material the oracle estimates is needed for the job."""
    name: str = Field(..., description="Material name")
    quantity: Optional[str] = Field(None, description="Quantity")
    unit: Optional[str] = Field(None, description="Unit of the quantity")
    estimated_cost: Optional[str] = Field(
        None, description="Cost estimate such as '$8-12'")
    required: bool = Field(True, description="Whether the material is mandatory")
    alternatives: List[str] = Field(
        default_factory=list, description="Acceptable substitutes")


class TechnicianRecommendation(BaseModel):
    """Technician suggested by the oracle, validated against the roster."""
    id: str = Field(..., description="Technician ID")
    name: Optional[str] = Field(None, description="Technician name")
    skill_match: Optional[float] = Field(
        None, validation_alias=AliasChoices("skill_match", "skillMatch"))
    location_match: Optional[float] = Field(
        None, validation_alias=AliasChoices("location_match", "locationMatch"))
    reasoning: Optional[str] = Field(None, description="Why this technician")


class AIMetadata(BaseModel):
    """Classification written onto a ticket by the intake engine."""
    predicted_category: str = Field(..., description="Predicted category")
    predicted_urgency: str = Field("low", description="low or high")
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    similar_past_tickets: List[str] = Field(default_factory=list)
    recommended_technician: Optional[TechnicianRecommendation] = None
    alternative_technicians: List[TechnicianRecommendation] = Field(
        default_factory=list)
    processed_at: datetime = Field(default_factory=utcnow)
    fallback_reason: Optional[str] = Field(
        None, description="Set when the oracle result was substituted")


class SpamMetadata(BaseModel):
    """Spam flag audit trail. Kept, not deleted, when the flag is removed."""
    confidence: float = Field(1.0, ge=0.0, le=1.0)
    reason: str = Field("", description="Why the ticket was flagged")
    detected_at: datetime = Field(default_factory=utcnow)
    marked_by: str = Field("system", description="Who flagged the ticket")
    previous_assignee: Optional[str] = None
    unmarked_at: Optional[datetime] = None
    unmarked_by: Optional[str] = None


class AssignmentMetadata(BaseModel):
    """How and why the current assignee was chosen."""
    auto_assigned: bool = False
    assigned_at: datetime = Field(default_factory=utcnow)
    assignment_score: Optional[float] = None
    assignment_reason: Optional[str] = None
    assignment_method: str = Field(
        "manual", description="manual, ai_recommendation or algorithm_assignment")
    assigned_by: Optional[str] = None


class MergedTicket(BaseModel):
    """Snapshot of a ticket absorbed through a merge."""
    id: str
    description: str
    images: List[str] = Field(default_factory=list)
    reported_by: str
    merged_at: datetime = Field(default_factory=utcnow)


class TicketDraft(BaseModel):
    """Reporter-supplied fields of a new ticket."""
    title: str = ""
    description: str = ""
    images: List[str] = Field(default_factory=list)
    reported_by: str = ""
    category: str = ""
    location: str = ""
    priority: TicketPriority = TicketPriority.AUTO
    community_id: str = ""


class Ticket(BaseModel):
    """Maintenance ticket."""
    id: str = Field(..., description="Unique identifier")
    title: str = Field(..., description="Ticket title")
    description: str = Field(..., description="Ticket description")
    images: List[str] = Field(default_factory=list, description="Image URLs")
    reported_by: str = Field(..., description="ID of the reporting resident")
    community_id: str = Field(..., description="Community of the ticket")
    category: str = Field(..., description="Ticket category")
    location: str = Field(..., description="Location within the community")
    priority: TicketPriority = Field(TicketPriority.AUTO)
    status: TicketStatus = Field(TicketStatus.OPEN)
    assigned_to: Optional[str] = Field(
        None, description="ID of the assigned technician")
    history: List[MergedTicket] = Field(
        default_factory=list, description="Tickets absorbed via merge")
    ai_metadata: Optional[AIMetadata] = None
    required_tools: List[RequiredTool] = Field(default_factory=list)
    required_materials: List[RequiredMaterial] = Field(default_factory=list)
    estimated_duration: Optional[str] = None
    difficulty_level: Optional[str] = None
    spam_metadata: Optional[SpamMetadata] = None
    assignment_metadata: Optional[AssignmentMetadata] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_updated_by: Optional[str] = None
    version: int = Field(0, description="Incremented on every write")


class TicketStats(BaseModel):
    """Ticket counts by status."""
    open: int = 0
    assigned: int = 0
    in_progress: int = 0
    resolved: int = 0
    closed: int = 0
    total: int = 0
    spam: int = 0


class SpamSummary(BaseModel):
    """Spam tickets bucketed by detection confidence."""
    total: int = 0
    high_confidence: int = Field(0, description="confidence > 0.8")
    medium_confidence: int = Field(0, description="0.5 < confidence <= 0.8")
    low_confidence: int = Field(0, description="confidence <= 0.5")


class SpamReport(BaseModel):
    """Spam tickets with their confidence summary."""
    tickets: List[Ticket] = Field(default_factory=list)
    summary: SpamSummary = Field(default_factory=SpamSummary)
