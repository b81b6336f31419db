# app/services/openai_service.py
"""
OpenAI Service for inbox automation decisions.
Resolves which model/key a user runs on and performs JSON-mode chat
completions for rule selection and cold email classification.
"""

import json
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

import openai
from openai import AsyncOpenAI

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.user_domain import WebhookUser

logger = get_logger(__name__)

SUPPORTED_PROVIDERS = {"openai"}
MAX_CACHED_CLIENTS = 32  # distinct API keys kept open at once


class OpenAIServiceError(Exception):
    """Base exception for OpenAI service errors."""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message)
        self.recoverable = recoverable


@dataclass(frozen=True, slots=True)
class AIModelConfig:
    provider: str
    model: str
    api_key: str
    user_supplied_key: bool


def resolve_ai_config(user: WebhookUser) -> AIModelConfig:
    """
    Pick provider, model and key for a user.

    A user's own provider/model only apply together with their own key;
    everyone else runs on the process-wide default.
    """
    if user.ai_api_key:
        provider = (user.ai_provider or settings.DEFAULT_AI_PROVIDER).lower()
        model = user.ai_model or settings.OPENAI_MODEL
        api_key = user.ai_api_key
    else:
        provider = settings.DEFAULT_AI_PROVIDER.lower()
        model = settings.OPENAI_MODEL
        api_key = settings.OPENAI_API_KEY

    if provider not in SUPPORTED_PROVIDERS:
        raise OpenAIServiceError(f"Unsupported AI provider: {provider}", recoverable=False)

    if not api_key:
        raise OpenAIServiceError("OPENAI_API_KEY not configured", recoverable=False)

    return AIModelConfig(
        provider=provider,
        model=model,
        api_key=api_key,
        user_supplied_key=bool(user.ai_api_key),
    )


class OpenAIService:
    """JSON-mode chat completions over an LRU cache of async clients keyed by API key."""

    def __init__(self, max_clients: int = MAX_CACHED_CLIENTS):
        self._clients: OrderedDict[str, AsyncOpenAI] = OrderedDict()
        self._max_clients = max_clients

    async def _get_client(self, config: AIModelConfig) -> AsyncOpenAI:
        client = self._clients.get(config.api_key)
        if client is not None:
            self._clients.move_to_end(config.api_key)
            return client

        client = AsyncOpenAI(api_key=config.api_key, timeout=settings.OPENAI_TIMEOUT_SECONDS)
        self._clients[config.api_key] = client

        # Rotated or departed user keys fall out here; close their HTTP pools
        while len(self._clients) > self._max_clients:
            _, evicted = self._clients.popitem(last=False)
            await evicted.close()
            logger.debug("Evicted idle OpenAI client", cached_clients=len(self._clients))
        return client

    async def complete_json(
        self,
        config: AIModelConfig,
        system: str,
        prompt: str,
        operation: str,
    ) -> dict[str, Any]:
        """
        Run a chat completion that must answer with a JSON object.

        Raises:
            OpenAIServiceError: API failure or non-JSON answer
        """
        client = await self._get_client(config)

        try:
            response = await client.chat.completions.create(
                model=config.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                temperature=0,
            )
        except openai.AuthenticationError as e:
            logger.error("OpenAI authentication failed", operation=operation, error=str(e))
            raise OpenAIServiceError(f"OpenAI authentication failed: {e}", recoverable=False) from e
        except openai.APIError as e:
            logger.error(
                "OpenAI request failed",
                operation=operation,
                model=config.model,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise OpenAIServiceError(f"OpenAI request failed: {e}") from e

        content = response.choices[0].message.content or ""

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(
                "OpenAI returned invalid JSON",
                operation=operation,
                content_preview=content[:200],
            )
            raise OpenAIServiceError(f"Invalid JSON from model: {e}") from e

        if not isinstance(parsed, dict):
            raise OpenAIServiceError("Model answer is not a JSON object")

        logger.debug(
            "OpenAI completion parsed",
            operation=operation,
            model=config.model,
            total_tokens=getattr(response.usage, "total_tokens", None),
        )
        return parsed


# Singleton instance for application use
openai_service = OpenAIService()
