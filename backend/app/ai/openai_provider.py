"""
OpenAI provider implementation.
Uses the OpenAI SDK for chat completions.
"""
import logging
import time
from openai import OpenAI
from app.ai.base import LLMProvider
from app.config import settings
from app.utils.metrics import (
    ai_provider_requests_total,
    ai_provider_failures_total,
    ai_provider_latency_seconds,
)

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """
    OpenAI LLM provider implementation.

    API keys are stored in environment variables and never exposed to clients.
    """

    name = "openai"

    def __init__(self):
        """Initialize OpenAI provider with API key from settings."""
        self.api_key = settings.openai_api_key
        self.chat_model = settings.openai_chat_model

        if self.api_key:
            self.client = OpenAI(api_key=self.api_key)
        else:
            self.client = None

    def is_configured(self) -> bool:
        """Check if OpenAI API key is configured."""
        return bool(self.api_key)

    def complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 1500) -> str:
        """
        Run a chat completion.

        Raises:
            ValueError: If API key not configured
            Exception: If API call fails
        """
        if not self.is_configured() or not self.client:
            raise ValueError("OpenAI API key not configured")

        ai_provider_requests_total.labels(provider=self.name, operation="complete").inc()
        start = time.time()
        try:
            response = self.client.chat.completions.create(
                model=self.chat_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=max_tokens,
                temperature=0.7,
            )
        except Exception as e:
            ai_provider_failures_total.labels(provider=self.name, operation="complete").inc()
            logger.error(f"OpenAI chat completion error: {e}")
            raise Exception(f"Failed to generate OpenAI completion: {str(e)}")
        finally:
            ai_provider_latency_seconds.labels(provider=self.name, operation="complete").observe(
                time.time() - start
            )

        text = (response.choices[0].message.content or "").strip()
        logger.debug(f"Generated OpenAI completion (length: {len(text)})")
        return text
