"""Generative backend clients.

The orchestrator only relies on ``run(model_id, messages, ...)`` returning a
mapping with a ``response`` string, or raising.
"""
from __future__ import annotations
import logging
from typing import Any, Protocol

import httpx

from xfory_summary.common.errors import BackendTimeout

LOGGER = logging.getLogger("xfory.backend")


class GenerativeBackend(Protocol):
    async def run(
        self,
        model_id: str,
        messages: list[dict[str, str]],
        temperature: float = 0.3,
        max_tokens: int = 600,
    ) -> Any: ...


class ChatCompletionsBackend:
    """Backend speaking the OpenAI-compatible ``/v1/chat/completions`` protocol.

    Cancellation is driven by the caller (``asyncio.wait_for``); the httpx
    timeout is only a safety net in case the caller does not bound the call.
    """

    def __init__(self, base_url: str, api_key: str = "not-required", http_timeout: float = 120.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.http_timeout = http_timeout

    async def run(
        self,
        model_id: str,
        messages: list[dict[str, str]],
        temperature: float = 0.3,
        max_tokens: int = 600,
    ) -> dict[str, str]:
        url = f"{self.base_url}/v1/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        payload = {
            "model": model_id,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": False,
        }
        try:
            async with httpx.AsyncClient(timeout=self.http_timeout) as client:
                r = await client.post(url, headers=headers, json=payload)
                r.raise_for_status()
                data = r.json()
        except httpx.TimeoutException as e:
            raise BackendTimeout(str(e)) from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            LOGGER.error("Malformed backend response: %s", str(data)[:200])
            raise
        return {"response": content if isinstance(content, str) else str(content or "")}
