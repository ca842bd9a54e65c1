"""
Technician domain models.

Technicians are owned by the user-management subsystem; the engine only
reads a projection of them and derives ephemeral assignment candidates.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class Technician(BaseModel):
    """Read-only projection of a technician user."""
    id: str = Field(..., description="User ID")
    name: str = Field("Unknown", description="Display name")
    expertise: List[str] = Field(
        default_factory=list, description="Category strings")
    community_id: Optional[str] = None
    role: str = Field("technician")
    current_workload: int = Field(
        0, ge=0, description="Active tickets assigned to this technician")


class AssignmentCandidate(BaseModel):
    """Technician scored for one ticket. Never persisted."""
    id: str
    name: str
    expertise: List[str] = Field(default_factory=list)
    workload: int = 0
    score: float = 0
    reason: str = ""
    available: bool = True


class AssignmentResult(BaseModel):
    """Outcome of an automatic assignment attempt."""
    assigned: bool
    technician: Optional[AssignmentCandidate] = None
    method: Optional[
        Literal["ai_recommendation", "algorithm_assignment"]] = None
    reason: Optional[str] = None
