"""
Base class for LLM providers.
All providers must implement this interface to ensure compatibility.
"""
from abc import ABC, abstractmethod


class LLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Billable endpoints only see this interface, so tests can swap in a fake
    provider through the get_llm_provider dependency.
    """

    name: str = "base"

    @abstractmethod
    def complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 1500) -> str:
        """
        Run one chat completion.

        Args:
            system_prompt: Instructions for the model
            user_prompt: User content
            max_tokens: Completion token cap

        Returns:
            Completion text

        Raises:
            Exception: If the provider call fails
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """
        Check if provider is properly configured (API key present, etc.).

        Returns:
            True if provider can be used, False otherwise
        """
        pass
