"""
Duplicate detection for incoming tickets.
"""
import logging
from typing import List

from fixdesk.domains import ClassificationResult, MergeDecision, Ticket
from fixdesk.interfaces.services.dedup import (
    DeduplicationResolver as DeduplicationResolverInterface,
)

logger = logging.getLogger(__name__)

MERGE_SEPARATOR = "\n\n--- Additional Report ---\n"


class DeduplicationResolver(DeduplicationResolverInterface):
    """Decides whether a new ticket should be absorbed by an existing one."""

    def resolve(
        self, result: ClassificationResult, candidates: List[Ticket]
    ) -> MergeDecision:
        """Only merge into a target that is among the supplied candidates.

        Args:
            result: Classification of the new ticket
            candidates: Same-community tickets offered to the oracle

        Returns:
            Merge decision
        """
        if not result.should_merge or not result.merge_target_id:
            return MergeDecision(merge=False)

        candidate_ids = {ticket.id for ticket in candidates}
        if result.merge_target_id not in candidate_ids:
            logger.warning(
                f"Ignoring merge suggestion for unknown ticket {result.merge_target_id}"
            )
            return MergeDecision(merge=False)

        return MergeDecision(merge=True, target_ticket_id=result.merge_target_id)
