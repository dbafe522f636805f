"""
LLM Service
Thin adapter over an OpenAI-compatible chat-completions backend (Ollama by default).
"""
from typing import Any, Dict, Optional
import httpx
import openai
import structlog
from openai import AsyncOpenAI
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from doc_analysis.config import get_settings

logger = structlog.get_logger()

TRANSIENT_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
)


class ModelClient:
    """Capability the pipeline depends on. Implementations must allow concurrent calls."""

    async def query(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> str:
        raise NotImplementedError

    async def check_availability(self) -> bool:
        raise NotImplementedError


class LLMService(ModelClient):
    """Sends system/user prompt pairs to the configured chat model."""

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self.settings = get_settings()
        self.client = client or AsyncOpenAI(
            api_key=self.settings.llm_api_key,
            base_url=self.settings.llm_base_url,
            timeout=self.settings.llm_timeout,
        )
        self.model = self.settings.llm_model

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def query(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Run one chat completion and return the message text.

        Args:
            system_prompt: Instructions for the model
            user_prompt: Task content
            temperature: Sampling temperature (defaults to settings)
            max_tokens: Completion budget (defaults to settings)
            response_format: Hint such as {"type": "json_object"}; backends may ignore it

        Returns:
            The generated text, or "" if the backend returned no content
        """
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.settings.llm_temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.settings.llm_max_tokens,
        }
        if response_format:
            kwargs["response_format"] = response_format

        logger.debug("Sending query to LLM", model=self.model, prompt_chars=len(user_prompt))

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except Exception as e:
            logger.error("LLM query failed", error=str(e))
            raise

        if not response.choices:
            logger.warning("LLM returned no choices")
            return ""

        content = response.choices[0].message.content or ""
        logger.debug("Received LLM response", response_length=len(content))
        return content

    async def check_availability(self) -> bool:
        """Probe the backend's version endpoint. Used for status display only."""
        url = self.settings.llm_health_url or self._default_health_url()
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(url)
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning("LLM availability check failed", url=url, error=str(e))
            return False

    def _default_health_url(self) -> str:
        base = self.settings.llm_base_url.rstrip("/")
        if base.endswith("/v1"):
            base = base[:-3]
        return f"{base}/api/version"


# Singleton
_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """Get singleton LLM service instance."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
