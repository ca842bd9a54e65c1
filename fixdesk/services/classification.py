"""
Classification service backed by the LLM oracle.

Every answer is decoded against a strict schema. Anything that cannot be
decoded, and any oracle call that fails, times out or is cancelled, turns
into a Fallback carrying the reporter-supplied category.
"""
import asyncio
import logging
import re
from typing import List, Optional, Tuple

from pydantic import ValidationError as SchemaValidationError

from fixdesk.domains import (
    ClassificationOutcome,
    ClassificationResult,
    CommunityContext,
    Fallback,
    OracleResponse,
    Parsed,
    TechnicianRecommendation,
    TicketCategory,
    TicketDraft,
)
from fixdesk.interfaces.providers.llm import LLMProvider
from fixdesk.interfaces.services.classification import (
    ClassificationService as ClassificationServiceInterface,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an advanced maintenance ticket analysis AI. "
    "You always answer with a single valid JSON object and nothing else."
)

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class ClassificationService(ClassificationServiceInterface):
    """Service for classifying new tickets with the LLM oracle."""

    def __init__(
        self,
        llm_provider: LLMProvider,
        timeout: float = 30.0,
        model: Optional[str] = None,
    ):
        """Initialize the classification service.

        Args:
            llm_provider: Provider for language model interactions
            timeout: Seconds to wait for the oracle before falling back
            model: Optional model override
        """
        self.llm_provider = llm_provider
        self.timeout = timeout
        self.model = model

    def build_prompt(self, draft: TicketDraft, context: CommunityContext) -> str:
        """Build the oracle prompt for a ticket draft."""
        reporter_tickets = context.reporter_recent_tickets
        reporter_samples = ", ".join(
            f'"{ticket.title}" - {ticket.description}' for ticket in reporter_tickets[:3]
        )

        if context.recent_tickets:
            similar_text = "\n".join(
                f"ID: {ticket.id}\n"
                f"Title: {ticket.title}\n"
                f"Description: {ticket.description}\n"
                f"Category: {ticket.category}\n"
                f"Location: {ticket.location}\n"
                f"Status: {ticket.status.value}\n"
                for ticket in context.recent_tickets
            )
        else:
            similar_text = "No open tickets in this community"

        if context.technicians:
            technicians_text = "\n".join(
                f"ID: {technician.id}\n"
                f"Name: {technician.name}\n"
                f"Expertise: {', '.join(technician.expertise)}\n"
                f"Current Workload: {technician.current_workload}\n"
                for technician in context.technicians
            )
            recommendation_shape = """{
    "id": "MUST_BE_FROM_AVAILABLE_TECHNICIANS_LIST",
    "name": "MUST_BE_FROM_AVAILABLE_TECHNICIANS_LIST",
    "skillMatch": 0.9,
    "locationMatch": 0.8,
    "reasoning": "why this technician"
  }"""
        else:
            technicians_text = "No technicians available in this community"
            recommendation_shape = "null"

        categories = ", ".join(category.value for category in TicketCategory)

        return f"""
Analyze the following maintenance ticket for:
1. Category prediction and urgency
2. Spam detection
3. Similar ticket detection
4. Best technician assignment based on skills and workload

NEW TICKET:
Title: {draft.title}
Description: {draft.description}
Category: {draft.category}
Location: {draft.location}

SPAM DETECTION CONTEXT:
- Reporter has created {len(reporter_tickets)} tickets recently
- Recent tickets from same reporter: {reporter_samples or "none"}

IMPORTANT SPAM GUIDELINES:
- DO NOT flag tickets as spam simply because they have short titles or descriptions
- Only flag as spam if content contains abusive language, random characters, clearly fake issues or malicious intent
- Multiple tickets about the same issue from one reporter is NORMAL maintenance behavior, not spam

EXISTING SIMILAR TICKETS:
{similar_text}

AVAILABLE TECHNICIANS:
{technicians_text}

ANALYSIS REQUIREMENTS:
1. Category from: {categories}
2. Urgency: 'low' or 'high' based on safety and impact
3. Only set shouldMerge when the new ticket describes the same issue as one of the EXISTING SIMILAR TICKETS, and use its exact ID
4. Technician assignment: ONLY use IDs from the AVAILABLE TECHNICIANS list. If none fit, set recommendedTechnician to null
5. Required tools and materials estimation

Respond with ONLY valid JSON:
{{
  "predictedCategory": "category_name",
  "predictedUrgency": "low|high",
  "confidence": 0.95,
  "isSpam": false,
  "spamConfidence": 0.1,
  "spamReason": "explanation if spam detected",
  "similarTickets": ["ticket_id"],
  "shouldMerge": false,
  "mergeWithTicketId": null,
  "recommendedTechnician": {recommendation_shape},
  "alternativeTechnicians": [],
  "requiredTools": [
    {{"name": "Adjustable Wrench", "category": "hand_tool", "estimated_cost": "$15-25", "required": true, "alternatives": ["Pipe Wrench"]}}
  ],
  "requiredMaterials": [
    {{"name": "PVC Pipe", "quantity": "2", "unit": "feet", "estimated_cost": "$8-12", "required": true, "alternatives": ["PEX Pipe"]}}
  ],
  "estimatedDuration": "2-3 hours",
  "difficultyLevel": "medium",
  "reasoning": "Overall analysis explanation"
}}
"""

    async def classify(
        self,
        draft: TicketDraft,
        context: CommunityContext,
        cancel_event: Optional[asyncio.Event] = None,
        ticket_id: Optional[str] = None,
    ) -> ClassificationOutcome:
        """Classify a ticket draft. Never raises for oracle problems.

        Args:
            draft: Reporter-supplied ticket fields
            context: Community tickets and technician roster
            cancel_event: Set when the caller no longer waits for the oracle
            ticket_id: ID of the persisted draft, for logging

        Returns:
            Parsed result or Fallback
        """
        if cancel_event is not None and cancel_event.is_set():
            return self._fallback(draft, "oracle call cancelled", ticket_id)

        prompt = self.build_prompt(draft, context)

        try:
            if draft.images:
                call = self.llm_provider.generate_text_with_images(
                    prompt, draft.images, system_prompt=SYSTEM_PROMPT, model=self.model
                )
            else:
                call = self.llm_provider.generate_text(
                    prompt, system_prompt=SYSTEM_PROMPT, model=self.model
                )
            oracle_task = asyncio.ensure_future(call)
        except Exception as e:
            return self._fallback(draft, f"oracle unavailable: {e}", ticket_id)

        waiters = {oracle_task}
        cancel_task = None
        if cancel_event is not None:
            cancel_task = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_task)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=self.timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in waiters:
                if not task.done():
                    task.cancel()

        if oracle_task not in done:
            if cancel_task is not None and cancel_task in done:
                return self._fallback(draft, "oracle call cancelled", ticket_id)
            return self._fallback(
                draft, f"oracle timed out after {self.timeout}s", ticket_id
            )

        try:
            text = oracle_task.result()
        except Exception as e:
            return self._fallback(draft, f"oracle error: {e}", ticket_id)

        outcome = self.decode(text, draft, context)
        if isinstance(outcome, Fallback):
            logger.warning(
                f"Classification fallback for ticket {ticket_id}: {outcome.reason}"
            )
        return outcome

    def decode(
        self, text: Optional[str], draft: TicketDraft, context: CommunityContext
    ) -> ClassificationOutcome:
        """Decode raw oracle output into a Parsed or Fallback outcome."""
        if not text or not text.strip():
            return Fallback(
                reason="empty oracle response",
                result=ClassificationResult.fallback(draft.category),
            )

        cleaned = _FENCE_PATTERN.sub("", text.strip())
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start == -1 or end <= start:
            return Fallback(
                reason="no JSON object in oracle response",
                result=ClassificationResult.fallback(draft.category),
            )

        try:
            response = OracleResponse.model_validate_json(cleaned[start:end + 1])
        except SchemaValidationError as e:
            return Fallback(
                reason=f"oracle response failed validation ({e.error_count()} errors)",
                result=ClassificationResult.fallback(draft.category),
            )

        recommended, alternatives = self._validate_recommendations(response, context)

        result = ClassificationResult(
            predicted_category=response.predicted_category.value,
            predicted_urgency=response.predicted_urgency,
            confidence=response.confidence,
            is_spam=response.is_spam,
            spam_confidence=response.spam_confidence,
            spam_reason=response.spam_reason or "",
            similar_ticket_ids=response.similar_tickets,
            should_merge=response.should_merge,
            merge_target_id=response.merge_with_ticket_id,
            recommended_technician=recommended,
            alternative_technicians=alternatives,
            required_tools=response.required_tools,
            required_materials=response.required_materials,
            estimated_duration=response.estimated_duration or "Unknown",
            difficulty_level=response.difficulty_level or "medium",
            reasoning=response.reasoning or "",
        )
        return Parsed(result=result)

    def _validate_recommendations(
        self, response: OracleResponse, context: CommunityContext
    ) -> Tuple[Optional[TechnicianRecommendation], List[TechnicianRecommendation]]:
        """Drop recommendations outside the roster and take names from it."""
        roster = {technician.id: technician for technician in context.technicians}

        def validated(
            recommendation: Optional[TechnicianRecommendation],
        ) -> Optional[TechnicianRecommendation]:
            if recommendation is None:
                return None
            technician = roster.get(recommendation.id)
            if technician is None:
                logger.warning(
                    f"Oracle recommended unknown technician {recommendation.id}, ignoring"
                )
                return None
            return recommendation.model_copy(update={"name": technician.name})

        recommended = validated(response.recommended_technician)
        alternatives = [
            alternative
            for alternative in (
                validated(item) for item in response.alternative_technicians
            )
            if alternative is not None
        ]
        return recommended, alternatives

    def _fallback(
        self, draft: TicketDraft, reason: str, ticket_id: Optional[str]
    ) -> Fallback:
        logger.warning(f"Classification fallback for ticket {ticket_id}: {reason}")
        return Fallback(
            reason=reason, result=ClassificationResult.fallback(draft.category)
        )
