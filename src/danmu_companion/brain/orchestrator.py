"""Reply Orchestrator - turns viewer comments into queued AI replies."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from ..senses.events import ClassifiedEvent, EventKind
from ..senses.parser import speaker_name
from .ai_service import AIService
from .reply_queue import QueuedReply, ReplySequencer

logger = logging.getLogger(__name__)


@dataclass
class AutoReplyRule:
    """Fixed answer for comments containing one of the keywords."""

    enabled: bool = False
    keywords: list[str] = field(default_factory=list)
    message: str = ""

    @classmethod
    def from_config(cls, data: Optional[dict]) -> "AutoReplyRule":
        if not isinstance(data, dict):
            return cls()
        keywords = data.get("keywords") or ""
        if isinstance(keywords, str):
            keywords = keywords.replace("，", ",").split(",")
        return cls(
            enabled=bool(data.get("enabled", False)),
            keywords=[k.strip() for k in keywords if isinstance(k, str) and k.strip()],
            message=str(data.get("message") or ""),
        )

    def match(self, text: str) -> Optional[str]:
        if not self.enabled or not self.message:
            return None
        for keyword in self.keywords:
            if keyword in text:
                return self.message
        return None


class ReplyOrchestrator:
    """
    Forwards comment events to the AI endpoint and queues the answers.

    AI calls run concurrently; only presentation is serialized (by the
    sequencer). A failed call is logged and produces no reply.
    """

    def __init__(
        self,
        ai: AIService,
        sequencer: ReplySequencer,
        page_key: str = "live-chat-bot",
        ai_enabled: bool = True,
        single_flight: bool = False,
        auto_reply: Optional[AutoReplyRule] = None,
    ) -> None:
        self._ai = ai
        self._sequencer = sequencer
        self._page_key = page_key
        self.ai_enabled = ai_enabled
        self.single_flight = single_flight
        self.auto_reply = auto_reply or AutoReplyRule()
        self._inflight: set[asyncio.Task] = set()

    async def handle_event(self, event: ClassifiedEvent) -> Optional[asyncio.Task]:
        """Listener hook. Returns the spawned AI task, if any."""
        if event.kind is not EventKind.COMMENT:
            return None

        text = event.content.strip()
        if not text:
            return None

        username = speaker_name(event)
        logger.info("[comment] %s: %s", username, text)

        canned = self.auto_reply.match(text)
        if canned:
            self._sequencer.enqueue(QueuedReply(text=canned, username=username))
            return None

        if not self.ai_enabled:
            return None

        if self.single_flight and self._inflight:
            logger.debug("AI call in flight, skipping comment from %s", username)
            return None

        task = asyncio.create_task(self.reply_to(text, username))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def reply_to(self, text: str, username: str) -> Optional[QueuedReply]:
        """Ask the AI for a reply and queue it. Returns the queued reply."""
        context = f"user {username} said in the live room: {text}"
        try:
            response = await self._ai.reply(text, context, self._page_key)
        except Exception:
            logger.exception("AI call for %s failed", username)
            return None

        reply_text = response.reply.strip() if isinstance(response.reply, str) else ""
        if not response.success or not reply_text:
            logger.warning("No AI reply for %s: %s", username, response.error or "empty reply")
            return None

        reply = QueuedReply(text=reply_text, username=username)
        logger.info("[reply] -> %s: %s", username, reply.text)
        self._sequencer.enqueue(reply)
        return reply

    async def drain(self) -> None:
        """Wait for every in-flight AI call to finish."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def cancel_all(self) -> None:
        for task in list(self._inflight):
            task.cancel()
        await self.drain()

    @property
    def inflight(self) -> int:
        return len(self._inflight)
