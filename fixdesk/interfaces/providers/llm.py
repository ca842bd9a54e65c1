from abc import ABC, abstractmethod
from typing import List, Literal, Optional


class LLMProvider(ABC):
    """Interface for the language model behind the classification oracle."""

    @abstractmethod
    async def generate_text(
        self,
        prompt: str,
        system_prompt: str = "",
        model: Optional[str] = None,
    ) -> str:
        """Generate text from the language model.

        Transport and API errors are raised, not returned as text.
        """
        pass

    @abstractmethod
    async def generate_text_with_images(
        self,
        prompt: str,
        images: List[str],
        system_prompt: str = "",
        detail: Literal["low", "high", "auto"] = "auto",
        model: Optional[str] = None,
    ) -> str:
        """Generate text from the language model using image URLs as extra input."""
        pass
