"""Reply queue and sequencer.

AI replies are presented one at a time: the text is revealed character by
character on the display surface, then spoken, so a burst of comments never
produces overlapping or jumbled voice output.

    IDLE -> TYPING -> SPEAKING -> DRAINING -> IDLE
                \\____(voice off)___/
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

QUEUE_CAPACITY = 10


@dataclass(frozen=True)
class QueuedReply:
    text: str
    username: str = ""
    id: str = field(default_factory=lambda: f"reply-{uuid.uuid4().hex[:12]}")
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "username": self.username,
            "created_at": self.created_at.isoformat(),
        }


class ReplyState(str, Enum):
    IDLE = "idle"
    TYPING = "typing"
    SPEAKING = "speaking"
    DRAINING = "draining"


class ReplyQueue:
    """FIFO of pending replies. When full, the oldest pending reply is dropped."""

    def __init__(self, capacity: int = QUEUE_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._items: deque[QueuedReply] = deque(maxlen=capacity)

    def push(self, reply: QueuedReply) -> Optional[QueuedReply]:
        """Append a reply; returns the reply dropped to make room, if any."""
        dropped = self._items[0] if len(self._items) == self._items.maxlen else None
        self._items.append(reply)
        return dropped

    def pop(self) -> Optional[QueuedReply]:
        return self._items.popleft() if self._items else None

    def clear(self) -> None:
        self._items.clear()

    def snapshot(self) -> list[QueuedReply]:
        return list(self._items)

    @property
    def capacity(self) -> int:
        return self._items.maxlen

    def __len__(self) -> int:
        return len(self._items)


class ReplyDisplay(Protocol):
    async def show(self, reply: QueuedReply) -> None: ...

    async def reveal(self, reply: QueuedReply, text: str) -> None: ...

    async def clear(self) -> None: ...


class NullDisplay:
    """Display surface that only logs."""

    async def show(self, reply: QueuedReply) -> None:
        logger.info("[reply] %s", reply.text)

    async def reveal(self, reply: QueuedReply, text: str) -> None:
        pass

    async def clear(self) -> None:
        pass


class ReplySequencer:
    """Presents queued replies one at a time with typewriter reveal and speech."""

    def __init__(
        self,
        queue: ReplyQueue,
        display: ReplyDisplay,
        tts=None,
        voice_enabled: bool = True,
        tts_backend: Optional[str] = None,
        tts_options: Optional[dict] = None,
        char_interval: float = 0.05,
        speech_cooldown: float = 0.5,
        silent_cooldown: float = 1.0,
        hold_delay: float = 3.0,
    ) -> None:
        self._queue = queue
        self._display = display
        self._tts = tts
        self.voice_enabled = voice_enabled
        self.tts_backend = tts_backend
        self.tts_options = tts_options or {}
        self._char_interval = char_interval
        self._speech_cooldown = speech_cooldown
        self._silent_cooldown = silent_cooldown
        self._hold_delay = hold_delay

        self._state = ReplyState.IDLE
        self._current: Optional[QueuedReply] = None
        self._wakeup = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    def enqueue(self, reply: QueuedReply) -> None:
        """Queue a reply for presentation. Safe from any task on the loop."""
        dropped = self._queue.push(reply)
        if dropped is not None:
            logger.info("Reply queue full, dropped oldest reply %s", dropped.id)
        self._wakeup.set()

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel typing and playback and stop the background task."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._tts is not None and self._state is ReplyState.SPEAKING:
            self._tts.stop()
        self._state = ReplyState.IDLE

    async def _run(self) -> None:
        while True:
            self._wakeup.clear()
            reply = self._queue.pop()
            if reply is not None:
                await self._present(reply)
                continue

            if self._current is None:
                await self._wakeup.wait()
                continue

            # Keep the last reply on screen for a while, then empty the slot.
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self._hold_delay)
            except asyncio.TimeoutError:
                self._current = None
                await self._safe_display(self._display.clear())

    async def _present(self, reply: QueuedReply) -> None:
        self._current = reply
        self._state = ReplyState.TYPING
        await self._safe_display(self._display.show(reply))

        text = reply.text
        for i in range(1, len(text) + 1):
            await self._safe_display(self._display.reveal(reply, text[:i]))
            await asyncio.sleep(self._char_interval)

        if self._voice_ready():
            self._state = ReplyState.SPEAKING
            result = await self._tts.speak(
                text,
                backend=self.tts_backend,
                options=self.tts_options,
            )
            if not result.ok:
                logger.warning("Speech for %s ended early: %s", reply.id, result.describe())
            cooldown = self._speech_cooldown
        else:
            cooldown = self._silent_cooldown

        self._state = ReplyState.DRAINING
        await asyncio.sleep(cooldown)
        self._state = ReplyState.IDLE

    def _voice_ready(self) -> bool:
        if self._tts is None or not self.voice_enabled:
            return False
        return self._tts.is_available(self.tts_backend)

    @staticmethod
    async def _safe_display(coro) -> None:
        try:
            await coro
        except Exception as e:
            logger.error("Display update failed: %s", e)

    @property
    def state(self) -> ReplyState:
        return self._state

    @property
    def current(self) -> Optional[QueuedReply]:
        return self._current

    @property
    def pending(self) -> int:
        return len(self._queue)
