"""
AI provider abstraction module.
Provides a single interface for the completion backend.
"""
from app.ai.factory import get_llm_provider
from app.ai.base import LLMProvider

__all__ = ["get_llm_provider", "LLMProvider"]
