"""Page config client - reads a page's chat config from the local API."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import aiohttp

from ..voice.voices import DEFAULT_EDGE_VOICE

logger = logging.getLogger(__name__)


@dataclass
class PageConfig:
    tts_type: Optional[str] = None
    auto_play: bool = True
    ai_enabled: bool = True
    ws_url: Optional[str] = None
    auto_reply: dict = field(default_factory=dict)
    edge_options: dict = field(default_factory=dict)
    third_party_options: dict = field(default_factory=dict)
    browser_options: dict = field(default_factory=dict)

    @classmethod
    def from_config_data(cls, data: Any) -> "PageConfig":
        config = cls()
        if not isinstance(data, dict):
            return config

        tts = data.get("tts")
        if isinstance(tts, dict):
            if isinstance(tts.get("type"), str) and tts["type"]:
                config.tts_type = tts["type"]
            # "voiceEnabled" is the live page's name for the same switch
            for key in ("autoPlay", "voiceEnabled"):
                if isinstance(tts.get(key), bool):
                    config.auto_play = config.auto_play and tts[key]
            if isinstance(tts.get("edgeOptions"), dict):
                config.edge_options = dict(tts["edgeOptions"])
            if isinstance(tts.get("thirdPartyOptions"), dict):
                config.third_party_options = dict(tts["thirdPartyOptions"])
            if isinstance(tts.get("browserOptions"), dict):
                config.browser_options = dict(tts["browserOptions"])

        ai = data.get("ai")
        if isinstance(ai, dict) and isinstance(ai.get("enabled"), bool):
            config.ai_enabled = ai["enabled"]

        if isinstance(data.get("wsUrl"), str) and data["wsUrl"]:
            config.ws_url = data["wsUrl"]

        if isinstance(data.get("autoReply"), dict):
            config.auto_reply = dict(data["autoReply"])

        return config

    def tts_options(
        self,
        edge_voice: str = DEFAULT_EDGE_VOICE,
        provider: Optional[str] = None,
        edge_rate: str = "+0%",
        edge_pitch: str = "+0Hz",
    ) -> dict:
        """Per-backend options in the shape the TTS backends read."""
        edge = {"voice": edge_voice, "rate": edge_rate, "pitch": edge_pitch}
        edge.update(self.edge_options)
        third_party = {}
        if provider:
            third_party["provider"] = provider
        third_party.update(self.third_party_options)
        return {
            "browser": dict(self.browser_options),
            "edge": edge,
            "third_party": third_party,
        }


async def fetch_page_config(
    session: aiohttp.ClientSession,
    base_url: str,
    page_key: str,
    timeout: float = 10.0,
) -> PageConfig:
    """Fetch the active config for page_key. Any failure yields defaults."""
    url = f"{base_url.rstrip('/')}/api/chat-config"
    try:
        async with session.get(
            url,
            params={"page_key": page_key},
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as resp:
            if resp.status >= 400:
                logger.warning("No config for page %s (status %s), using defaults", page_key, resp.status)
                return PageConfig()
            result = await resp.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.warning("Failed to load page config for %s: %s", page_key, e)
        return PageConfig()

    if not isinstance(result, dict) or not result.get("success"):
        return PageConfig()
    data = result.get("data")
    if not isinstance(data, dict):
        return PageConfig()
    return PageConfig.from_config_data(data.get("config_data"))
