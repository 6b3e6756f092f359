"""
Danmu Companion - Main Entry Point

A live-room companion that answers viewer comments:
- Senses: barrage feed listener and event normalization
- Brain: AI replies, reply queue and typewriter sequencing
- Voice: browser / Edge / third-party speech output
- Overlay: OBS subtitle page and the local HTTP API
- Storage: per-page chat config
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from urllib.parse import urlsplit

import aiohttp

from .api import ChatApi, PageConfig, fetch_page_config
from .brain import AIService, AutoReplyRule, LLMClient, ReplyOrchestrator, ReplyQueue, ReplySequencer
from .config import Settings, load_settings
from .errors import UnsupportedBackend
from .logging_setup import setup_logging
from .overlay import OverlayServer
from .senses import DanmakuListener
from .senses.danmaku import ALL_EVENTS
from .storage import config_store
from .voice import AudioPlayer, TTSBackend, TTSManager, build_tts_manager
from .voice.providers import ProviderCredentials

logger = logging.getLogger(__name__)

LOCAL_HOSTS = {"127.0.0.1", "localhost", "0.0.0.0", "::1", "::"}


def serves_ai_locally(api_base_url: str, api_host: str, api_port: int) -> bool:
    """True when the AI endpoint is this process's own API server."""
    url = urlsplit(api_base_url)
    try:
        port = url.port or (443 if url.scheme == "https" else 80)
    except ValueError:
        return False
    host = (url.hostname or "").lower()
    if port != api_port:
        return False
    return host == api_host.lower() or (host in LOCAL_HOSTS and api_host.lower() in LOCAL_HOSTS)


class DanmuCompanion:
    """
    Main orchestrator.

    Wires the feed listener to the reply pipeline and serves the overlay
    page plus the local API on one port.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or load_settings()

        config_store.init_store(self.settings.config_db_path)
        config_store.ensure_defaults()

        self.llm: Optional[LLMClient] = None
        if self.settings.ai_api_key:
            self.llm = LLMClient(
                api_key=self.settings.ai_api_key,
                model=self.settings.ai_model,
                base_url=self.settings.ai_api_url,
                system_prompt=self.settings.ai_system_prompt,
                temperature=self.settings.ai_temperature,
                max_tokens=self.settings.ai_max_tokens,
            )
        else:
            logger.warning("AI_API_KEY not set, the local AI reply route is disabled")

        self.overlay = OverlayServer(host=self.settings.api_host, port=self.settings.api_port)
        self.api = ChatApi(
            llm=self.llm,
            credentials=ProviderCredentials.from_settings(self.settings),
            edge_voice=self.settings.edge_tts_voice,
        )
        self.api.setup_routes(self.overlay.app)

        self.player = AudioPlayer()
        self.queue = ReplyQueue()

        # Built in start(), they need the running loop's HTTP session
        self.session: Optional[aiohttp.ClientSession] = None
        self.tts: Optional[TTSManager] = None
        self.sequencer: Optional[ReplySequencer] = None
        self.orchestrator: Optional[ReplyOrchestrator] = None
        self.listener: Optional[DanmakuListener] = None
        self.page_config = PageConfig()

        self._stopped = asyncio.Event()

    def _ai_available(self) -> bool:
        if not self.page_config.ai_enabled:
            return False
        if self.llm is None and serves_ai_locally(
            self.settings.api_base_url, self.settings.api_host, self.settings.api_port
        ):
            logger.warning("AI replies disabled, the local endpoint has no AI_API_KEY")
            return False
        return True

    def _pick_backend(self) -> TTSBackend:
        name = self.page_config.tts_type or self.settings.tts_type
        try:
            return TTSBackend.parse(name)
        except UnsupportedBackend:
            logger.warning("Unknown TTS type %r, falling back to browser speech", name)
            return TTSBackend.BROWSER

    async def start(self) -> None:
        """Start all services and run until stop() is called."""
        logger.info("Starting Danmu Companion...")
        self.session = aiohttp.ClientSession()
        self.api.session = self.session

        await self.overlay.start()

        self.page_config = await fetch_page_config(
            self.session, self.settings.api_base_url, self.settings.page_key
        )
        backend = self._pick_backend()
        logger.info(
            "Page %s: tts=%s autoplay=%s ai=%s",
            self.settings.page_key, backend.value,
            self.page_config.auto_play, self.page_config.ai_enabled,
        )

        self.tts = build_tts_manager(
            self.settings.api_base_url,
            self.session,
            bridge=self.overlay,
            player=self.player,
            default_backend=backend,
        )
        self.sequencer = ReplySequencer(
            self.queue,
            display=self.overlay,
            tts=self.tts,
            voice_enabled=self.page_config.auto_play,
            tts_options=self.page_config.tts_options(
                edge_voice=self.settings.edge_tts_voice,
                provider=self.settings.tts_provider,
                edge_rate=self.settings.edge_tts_rate,
                edge_pitch=self.settings.edge_tts_pitch,
            ),
        )
        self.orchestrator = ReplyOrchestrator(
            AIService(self.settings.api_base_url, self.session, page_key=self.settings.page_key),
            self.sequencer,
            page_key=self.settings.page_key,
            ai_enabled=self._ai_available(),
            auto_reply=AutoReplyRule.from_config(self.page_config.auto_reply),
        )

        self.listener = DanmakuListener(
            self.page_config.ws_url or self.settings.feed_ws_url,
            reconnect_delay=self.settings.reconnect_delay_sec,
            session=self.session,
        )
        self.listener.on("comment", self.orchestrator.handle_event)
        self.listener.on(ALL_EVENTS, self.overlay.push_event)

        self.sequencer.start()
        logger.info("Connecting to feed %s...", self.listener.ws_url)
        await self.listener.start()

        try:
            await self._stopped.wait()
        finally:
            await self.shutdown()

    def stop(self) -> None:
        self._stopped.set()

    async def shutdown(self) -> None:
        """Stop all services."""
        logger.info("Shutting down...")
        if self.listener:
            await self.listener.stop()
        if self.orchestrator:
            await self.orchestrator.cancel_all()
        if self.sequencer:
            await self.sequencer.stop()
        if self.tts:
            self.tts.stop()
        await self.overlay.stop()
        if self.llm:
            await self.llm.close()
        if self.session:
            await self.session.close()
            self.session = None
        self.player.cleanup()
        config_store.close_store()


async def main(settings: Optional[Settings] = None) -> None:
    """Main entry point."""
    companion = DanmuCompanion(settings)
    await companion.start()


def run() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)
    try:
        asyncio.run(main(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, bye")


if __name__ == "__main__":
    run()
