"""
Classification domain models.

Defines the wire schema of the classification oracle's JSON answer, the
engine-side classification result and the tagged outcome that tells a
decoded answer apart from a substituted fallback.
"""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field

from fixdesk.domains.technicians import Technician
from fixdesk.domains.tickets import (
    RequiredMaterial,
    RequiredTool,
    TechnicianRecommendation,
    Ticket,
    TicketCategory,
)


def _alias(snake: str, camel: str) -> AliasChoices:
    return AliasChoices(camel, snake)


class OracleResponse(BaseModel):
    """JSON object the oracle is instructed to return."""
    predicted_category: TicketCategory = Field(
        ..., validation_alias=_alias("predicted_category", "predictedCategory"))
    predicted_urgency: Literal["low", "high"] = Field(
        ..., validation_alias=_alias("predicted_urgency", "predictedUrgency"))
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    is_spam: bool = Field(
        False, validation_alias=_alias("is_spam", "isSpam"))
    spam_confidence: float = Field(
        0.0, ge=0.0, le=1.0,
        validation_alias=_alias("spam_confidence", "spamConfidence"))
    spam_reason: Optional[str] = Field(
        "", validation_alias=_alias("spam_reason", "spamReason"))
    similar_tickets: List[str] = Field(
        default_factory=list,
        validation_alias=_alias("similar_tickets", "similarTickets"))
    should_merge: bool = Field(
        False, validation_alias=_alias("should_merge", "shouldMerge"))
    merge_with_ticket_id: Optional[str] = Field(
        None, validation_alias=_alias("merge_with_ticket_id", "mergeWithTicketId"))
    recommended_technician: Optional[TechnicianRecommendation] = Field(
        None,
        validation_alias=_alias("recommended_technician", "recommendedTechnician"))
    alternative_technicians: List[TechnicianRecommendation] = Field(
        default_factory=list,
        validation_alias=_alias("alternative_technicians", "alternativeTechnicians"))
    required_tools: List[RequiredTool] = Field(
        default_factory=list,
        validation_alias=_alias("required_tools", "requiredTools"))
    required_materials: List[RequiredMaterial] = Field(
        default_factory=list,
        validation_alias=_alias("required_materials", "requiredMaterials"))
    estimated_duration: Optional[str] = Field(
        None, validation_alias=_alias("estimated_duration", "estimatedDuration"))
    difficulty_level: Optional[str] = Field(
        "medium", validation_alias=_alias("difficulty_level", "difficultyLevel"))
    reasoning: Optional[str] = None


class ClassificationResult(BaseModel):
    """Classification of one ticket, decoded or substituted."""
    predicted_category: str
    predicted_urgency: Literal["low", "high"] = "low"
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    is_spam: bool = False
    spam_confidence: float = Field(0.0, ge=0.0, le=1.0)
    spam_reason: str = ""
    similar_ticket_ids: List[str] = Field(default_factory=list)
    should_merge: bool = False
    merge_target_id: Optional[str] = None
    recommended_technician: Optional[TechnicianRecommendation] = None
    alternative_technicians: List[TechnicianRecommendation] = Field(
        default_factory=list)
    required_tools: List[RequiredTool] = Field(default_factory=list)
    required_materials: List[RequiredMaterial] = Field(default_factory=list)
    estimated_duration: str = "Unknown"
    difficulty_level: str = "medium"
    reasoning: str = ""

    @classmethod
    def fallback(cls, reporter_category: str) -> "ClassificationResult":
        """Result used whenever the oracle cannot be consulted or understood."""
        return cls(
            predicted_category=reporter_category,
            predicted_urgency="low",
            confidence=0.0,
            is_spam=False,
            spam_confidence=0.0,
            spam_reason="Classification unavailable - treating as legitimate ticket",
            should_merge=False,
            merge_target_id=None,
            required_tools=[],
            required_materials=[],
            estimated_duration="Unknown",
            difficulty_level="medium",
            reasoning="Classification unavailable, default settings applied",
        )


class Parsed(BaseModel):
    """Oracle answer that passed schema validation."""
    kind: Literal["parsed"] = "parsed"
    result: ClassificationResult


class Fallback(BaseModel):
    """Substituted result, with the reason the oracle answer was not used."""
    kind: Literal["fallback"] = "fallback"
    reason: str
    result: ClassificationResult


ClassificationOutcome = Annotated[
    Union[Parsed, Fallback], Field(discriminator="kind")
]


class CommunityContext(BaseModel):
    """Read-only context handed to the oracle alongside a new ticket."""
    recent_tickets: List[Ticket] = Field(
        default_factory=list, description="Open or active tickets in the community")
    technicians: List[Technician] = Field(
        default_factory=list, description="Community technician roster")
    reporter_recent_tickets: List[Ticket] = Field(
        default_factory=list, description="Reporter's tickets in the spam window")


class MergeDecision(BaseModel):
    """Whether a new ticket should be absorbed into an existing one."""
    merge: bool = False
    target_ticket_id: Optional[str] = None
