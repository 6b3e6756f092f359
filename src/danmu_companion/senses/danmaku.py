"""Danmaku Listener - live-room feed over WebSocket."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable, Optional

import aiohttp

from .events import ClassifiedEvent
from .formatter import kind_label
from .parser import try_parse_message

logger = logging.getLogger(__name__)

ALL_EVENTS = "*"


class DanmakuListener:
    """
    Listens to a barrage-grabber WebSocket feed and dispatches parsed events.

    Handlers are registered per event kind ("comment", "gift", ...) or for
    every event with "*". The connection is re-opened after a fixed delay
    whenever it closes or fails, forever, until stop() is called.
    """

    def __init__(
        self,
        ws_url: str,
        reconnect_delay: float = 3.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._ws_url = ws_url
        self._reconnect_delay = reconnect_delay
        self._session = session
        self._owns_session = session is None
        self._handlers: dict[str, list[Callable]] = {}
        self._event_history: deque[ClassifiedEvent] = deque(maxlen=100)
        self._task: Optional[asyncio.Task] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._running = False
        self._status = "disconnected"
        self.connect_attempts = 0

    def on(self, event_type: str, handler: Callable) -> None:
        """Register an event handler."""
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)

    async def _dispatch(self, event_type: str, event: ClassifiedEvent) -> None:
        """Dispatch an event to all registered handlers."""
        for handler in self._handlers.get(event_type, []):
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("Handler for %s failed", event_type)

    async def handle_frame(self, frame: str | bytes) -> Optional[ClassifiedEvent]:
        """Parse one frame and dispatch it. Malformed frames are dropped."""
        event = try_parse_message(frame)
        if event is None:
            return None
        self._event_history.append(event)
        logger.debug("[%s] %s: %s", kind_label(event.kind), event.display_name, event.formatted_text)
        await self._dispatch(event.kind.value, event)
        await self._dispatch(ALL_EVENTS, event)
        return event

    async def start(self) -> None:
        """Start listening in the background."""
        if self._running:
            return
        if self._session is None:
            self._session = aiohttp.ClientSession()
        self._running = True
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop listening and cancel any pending reconnect."""
        self._running = False
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
        self._status = "disconnected"

    async def _run(self) -> None:
        while self._running:
            await self._connect_once()
            if not self._running:
                break
            logger.info("Feed disconnected, reconnecting in %.0fs", self._reconnect_delay)
            await asyncio.sleep(self._reconnect_delay)

    async def _connect_once(self) -> None:
        self._status = "connecting"
        self.connect_attempts += 1
        try:
            async with self._session.ws_connect(self._ws_url) as ws:
                self._ws = ws
                self._status = "connected"
                logger.info("Connected to feed %s", self._ws_url)
                async for msg in ws:
                    if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                        try:
                            await self.handle_frame(msg.data)
                        except Exception:
                            # One bad frame must not end the connection
                            logger.exception("Dropped feed frame after an unexpected error")
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        logger.error("Feed error: %s", ws.exception())
                        break
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            logger.error("Feed connection failed: %s", e)
        finally:
            self._ws = None
            self._status = "disconnected"

    def recent_events(self, n: int = 20) -> list[ClassifiedEvent]:
        """Get recent events."""
        return list(self._event_history)[-n:]

    @property
    def ws_url(self) -> str:
        return self._ws_url

    @property
    def status(self) -> str:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status == "connected"

    @property
    def is_running(self) -> bool:
        return self._running
