"""
LLM provider factory.
Selects and returns the configured provider; used as a FastAPI dependency.
"""
import logging
from app.ai.base import LLMProvider
from app.ai.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)


def get_llm_provider() -> LLMProvider:
    """
    Factory function to get the configured LLM provider.

    Raises:
        ValueError: If the provider is not configured
    """
    provider = OpenAIProvider()
    if not provider.is_configured():
        logger.warning("OpenAI provider selected but API key not configured")
        raise ValueError("OpenAI API key not configured. Set OPENAI_API_KEY environment variable.")
    return provider
