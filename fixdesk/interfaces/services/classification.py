import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from fixdesk.domains import ClassificationOutcome, CommunityContext, TicketDraft


class ClassificationService(ABC):
    """Interface for ticket classification."""

    @abstractmethod
    def build_prompt(self, draft: TicketDraft, context: CommunityContext) -> str:
        """Build the oracle prompt."""
        pass

    @abstractmethod
    async def classify(
        self,
        draft: TicketDraft,
        context: CommunityContext,
        cancel_event: Optional[asyncio.Event] = None,
        ticket_id: Optional[str] = None,
    ) -> ClassificationOutcome:
        """Classify a ticket draft.

        Args:
            draft: Reporter-supplied fields
            context: Read-only community context
            cancel_event: Abandons the oracle call when set
            ticket_id: Persisted ticket id, for logging

        Returns:
            Parsed or Fallback; oracle failures never raise
        """
        pass
