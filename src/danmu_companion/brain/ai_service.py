"""AI Service - client for the reply endpoint (POST /api/ai-reply)."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from ..errors import AIRequestFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AIResponse:
    success: bool
    reply: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: str) -> "AIResponse":
        return cls(success=False, error=error)


class AIService:
    """
    Sends viewer messages to the completion endpoint.

    The endpoint contract is ``{message, context, page_key}`` in and
    ``{success, reply?, error?}`` out. reply() never raises; every failure
    comes back as ``AIResponse(success=False)``.
    """

    def __init__(
        self,
        base_url: str,
        session: aiohttp.ClientSession,
        page_key: str = "chat",
        timeout: float = 30.0,
    ) -> None:
        self._url = f"{base_url.rstrip('/')}/api/ai-reply"
        self._session = session
        self._page_key = page_key
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def reply(
        self,
        message: str,
        context: Optional[str] = None,
        page_key: Optional[str] = None,
    ) -> AIResponse:
        body = {
            "message": message,
            "context": context or "live room message",
            "page_key": page_key or self._page_key,
        }
        try:
            return await self._post(body)
        except AIRequestFailed as e:
            logger.error("AI request failed: %s", e)
            return AIResponse.failed(str(e))

    async def _post(self, body: dict) -> AIResponse:
        try:
            async with self._session.post(self._url, json=body, timeout=self._timeout) as resp:
                if resp.status >= 400:
                    raise AIRequestFailed(f"request failed: {resp.status}")
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise AIRequestFailed(str(e) or e.__class__.__name__) from e

        if not isinstance(data, dict):
            raise AIRequestFailed("response is not a JSON object")
        success = bool(data.get("success"))
        reply = data.get("reply")
        if success and not isinstance(reply, str):
            raise AIRequestFailed("response has no reply text")
        error = data.get("error")
        return AIResponse(
            success=success,
            reply=reply if isinstance(reply, str) else None,
            error=error if isinstance(error, str) else None,
        )
