"""OBS Overlay Server - WebSocket server for reply subtitles and browser speech."""

from __future__ import annotations

import asyncio
import itertools
import json
import logging

from aiohttp import web

from ..brain.reply_queue import QueuedReply
from ..errors import PlaybackFailed
from ..senses.events import ClassifiedEvent
from ..voice.voices import Voice, pick_best_voice
from .page import OVERLAY_HTML

logger = logging.getLogger(__name__)


class OverlayServer:
    """
    Serves the overlay page and pushes reply text to it over /ws.

    It is also the display surface for the reply sequencer (show / reveal /
    clear) and the bridge for the "browser" TTS backend: the most recently
    connected page speaks with its own speech engine and reports back.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 8765,
        speech_timeout_per_char: float = 0.4,
        speech_timeout_floor: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._clients: list[web.WebSocketResponse] = []
        self._voices: dict[web.WebSocketResponse, list[Voice]] = {}
        self._pending_speech: dict[str, tuple[web.WebSocketResponse, asyncio.Future]] = {}
        self._speech_ids = itertools.count(1)
        self._background: set[asyncio.Task] = set()
        self._speech_timeout_per_char = speech_timeout_per_char
        self._speech_timeout_floor = speech_timeout_floor
        self._app = web.Application()
        self._app.router.add_get("/ws", self._websocket_handler)
        self._app.router.add_get("/", self._serve_overlay)
        self._runner: web.AppRunner | None = None

    @property
    def app(self) -> web.Application:
        return self._app

    async def start(self) -> None:
        """Start the overlay server."""
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        logger.info("Overlay running at http://%s:%s/", self._host, self._port)

    async def stop(self) -> None:
        """Stop the overlay server."""
        self.cancel_speech()
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    # -- reply display -------------------------------------------------

    async def show(self, reply: QueuedReply) -> None:
        """Open the subtitle box for a new reply (text starts empty)."""
        await self._send_all({
            "type": "response",
            "id": reply.id,
            "username": reply.username,
            "response": "",
        })

    async def reveal(self, reply: QueuedReply, text: str) -> None:
        """Typewriter step: replace the visible text without animation."""
        await self._send_all({"type": "typing", "id": reply.id, "text": text})

    async def clear(self) -> None:
        """Tell all clients to hide the overlay."""
        await self._send_all({"type": "hide"})

    async def push_event(self, event: ClassifiedEvent) -> None:
        """Append a feed event to the pages' event ticker."""
        await self._send_all({"type": "event", **event.to_dict()})

    # -- browser speech bridge -----------------------------------------

    def has_speech_clients(self) -> bool:
        return bool(self._clients)

    def voices(self) -> list[Voice]:
        if not self._clients:
            return []
        return list(self._voices.get(self._clients[-1], []))

    async def speak_in_browser(self, text: str, options: dict) -> None:
        """Make the newest overlay page speak and wait until it is done.

        Raises:
            PlaybackFailed: no page is connected, the page reported an
                error, it disconnected, or it never answered.
        """
        if not self._clients:
            raise PlaybackFailed("no overlay page connected")
        client = self._clients[-1]

        lang = options.get("lang") or "zh-CN"
        voice = options.get("voice")
        if not voice:
            best = pick_best_voice(self._voices.get(client, []), lang)
            voice = best.name if best else None

        speech_id = f"speech-{next(self._speech_ids)}"
        future = asyncio.get_running_loop().create_future()
        self._pending_speech[speech_id] = (client, future)
        try:
            await client.send_str(json.dumps({
                "type": "speak",
                "id": speech_id,
                "text": text,
                "lang": lang,
                "voice": voice,
                "rate": options.get("rate", 1.0),
                "pitch": options.get("pitch", 1.0),
                "volume": options.get("volume", 1.0),
            }))
            timeout = max(self._speech_timeout_floor, len(text) * self._speech_timeout_per_char)
            error = await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            raise PlaybackFailed("overlay page did not finish speaking in time") from None
        except (ConnectionResetError, RuntimeError) as e:
            raise PlaybackFailed(f"overlay page unreachable: {e}") from e
        finally:
            self._pending_speech.pop(speech_id, None)

        if error:
            raise PlaybackFailed(f"speech synthesis error: {error}")

    def cancel_speech(self) -> None:
        """Stop browser speech everywhere and release waiting speakers."""
        for _, future in self._pending_speech.values():
            if not future.done():
                future.set_result("cancelled")
        self._pending_speech.clear()
        if not self._clients:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._send_all({"type": "cancel_speech"}))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # -- plumbing --------------------------------------------------------

    async def _send_all(self, message: dict) -> None:
        """Send a JSON message to every connected client."""
        data = json.dumps(message, ensure_ascii=False)
        dead_clients = []
        for client in list(self._clients):
            try:
                await client.send_str(data)
            except (ConnectionResetError, RuntimeError):
                dead_clients.append(client)
        for client in dead_clients:
            self._drop_client(client)

    def _drop_client(self, ws: web.WebSocketResponse) -> None:
        if ws in self._clients:
            self._clients.remove(ws)
        self._voices.pop(ws, None)
        for client, future in list(self._pending_speech.values()):
            if client is ws and not future.done():
                future.set_result("overlay page disconnected")

    def _handle_client_message(self, ws: web.WebSocketResponse, raw: str) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            logger.debug("Ignoring non-JSON overlay message")
            return
        if not isinstance(message, dict):
            return

        msg_type = message.get("type")
        if msg_type == "voices":
            voices = [Voice.from_dict(v) for v in message.get("voices") or []]
            self._voices[ws] = [v for v in voices if v is not None]
            logger.debug("Overlay reported %d voices", len(self._voices[ws]))
        elif msg_type == "speech_end":
            pending = self._pending_speech.get(str(message.get("id")))
            if pending and not pending[1].done():
                pending[1].set_result(message.get("error") or None)

    async def _websocket_handler(self, request: web.Request) -> web.WebSocketResponse:
        """Handle WebSocket connections."""
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self._clients.append(ws)
        logger.info("Overlay client connected (%d total)", len(self._clients))

        try:
            async for msg in ws:
                if msg.type == web.WSMsgType.TEXT:
                    self._handle_client_message(ws, msg.data)
        finally:
            self._drop_client(ws)
            logger.info("Overlay client disconnected (%d total)", len(self._clients))

        return ws

    async def _serve_overlay(self, request: web.Request) -> web.Response:
        """Serve the overlay HTML page."""
        return web.Response(text=OVERLAY_HTML, content_type="text/html")

