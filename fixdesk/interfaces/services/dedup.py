from abc import ABC, abstractmethod
from typing import List

from fixdesk.domains import ClassificationResult, MergeDecision, Ticket


class DeduplicationResolver(ABC):
    """Interface for merge decisions on new tickets."""

    @abstractmethod
    def resolve(self, result: ClassificationResult, candidates: List[Ticket]) -> MergeDecision:
        """Decide whether the classified ticket merges into one of the candidates."""
        pass
