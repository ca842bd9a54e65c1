import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from fixdesk.domains import IntakeOutcome, TicketDraft


class IntakeService(ABC):
    """Interface for the ticket intake pipeline."""

    @abstractmethod
    async def submit(
        self,
        draft: TicketDraft,
        auto_assign: bool = False,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> IntakeOutcome:
        """Create, classify and route one report."""
        pass
