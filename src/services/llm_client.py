"""
LLM Client.

Thin async wrapper around the OpenAI chat completions REST API. Every
LLM-backed component (extraction, skip detection, question phrasing,
document generation) goes through ``LLMClient.complete`` so failures
surface as a single exception type the callers can fall back on.
"""

from __future__ import annotations

import re
from typing import Any, Optional

import httpx

from src.config import Settings, get_settings
from src.logging_config import get_logger

logger = get_logger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


class ConfigurationError(RuntimeError):
    """Required configuration is missing; the service can't start."""


class LLMError(RuntimeError):
    """The LLM call failed or returned nothing usable."""


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences the model sometimes wraps JSON in."""
    return _CODE_FENCE.sub("", text).strip()


class LLMClient:
    """
    Async chat-completions client.

    Args:
        settings: Service settings; defaults to the cached global settings.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).

    Raises:
        ConfigurationError: if no OpenAI API key is configured.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        if not self.settings.openai_api_key:
            raise ConfigurationError(
                "OpenAI API key is missing. Set OPENAI_API_KEY in the environment or .env.local."
            )
        self._transport = transport
        self.model = self.settings.openai_model

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int,
        temperature: Optional[float] = None,
        json_mode: bool = False,
    ) -> str:
        """
        Send a chat completion request and return the message content.

        Raises:
            LLMError: on transport errors, non-2xx responses, or an empty reply.
        """
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": self.settings.llm_temperature if temperature is None else temperature,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        url = f"{self.settings.openai_base_url.rstrip('/')}/chat/completions"
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.llm_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    url,
                    headers={
                        "Authorization": f"Bearer {self.settings.openai_api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("llm_request_failed", model=self.model, error=str(e))
            raise LLMError(f"LLM request failed: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error("llm_response_malformed", model=self.model, error=str(e))
            raise LLMError("LLM response had no message content") from e

        if not content or not content.strip():
            raise LLMError("LLM returned an empty response")

        return content.strip()
