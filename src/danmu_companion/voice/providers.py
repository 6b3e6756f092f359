"""Server-side speech synthesis for the TTS proxy routes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp
import edge_tts
from edge_tts.exceptions import EdgeTTSException

from ..errors import ProviderError, ProviderNotConfigured, UnsupportedProvider
from .voices import DEFAULT_EDGE_VOICE

logger = logging.getLogger(__name__)

PROVIDERS = ("baidu", "aliyun", "tencent")

BAIDU_TOKEN_URL = "https://aip.baidubce.com/oauth/2.0/token"
BAIDU_TTS_URL = "https://tsn.baidu.com/text2audio"


@dataclass(frozen=True)
class ProviderCredentials:
    baidu_api_key: Optional[str] = None
    baidu_secret_key: Optional[str] = None
    aliyun_access_key_id: Optional[str] = None
    aliyun_access_key_secret: Optional[str] = None
    aliyun_app_key: Optional[str] = None
    tencent_secret_id: Optional[str] = None
    tencent_secret_key: Optional[str] = None

    @classmethod
    def from_settings(cls, settings) -> "ProviderCredentials":
        return cls(
            baidu_api_key=settings.baidu_tts_api_key,
            baidu_secret_key=settings.baidu_tts_secret_key,
            aliyun_access_key_id=settings.aliyun_tts_access_key_id,
            aliyun_access_key_secret=settings.aliyun_tts_access_key_secret,
            aliyun_app_key=settings.aliyun_tts_app_key,
            tencent_secret_id=settings.tencent_tts_secret_id,
            tencent_secret_key=settings.tencent_tts_secret_key,
        )


async def synthesize_edge(
    text: str,
    voice: str = DEFAULT_EDGE_VOICE,
    rate: str = "+0%",
    pitch: str = "+0Hz",
) -> bytes:
    """Synthesize mp3 audio with Microsoft Edge TTS."""
    communicate = edge_tts.Communicate(text, voice, rate=rate, pitch=pitch)
    audio = bytearray()
    try:
        async for chunk in communicate.stream():
            if chunk["type"] == "audio":
                audio.extend(chunk["data"])
    except (aiohttp.ClientError, asyncio.TimeoutError, EdgeTTSException) as e:
        raise ProviderError(f"Edge TTS failed: {e}") from e
    if not audio:
        raise ProviderError("Edge TTS returned no audio")
    logger.debug("Edge TTS synthesized %d bytes with %s", len(audio), voice)
    return bytes(audio)


async def _baidu_tts(
    session: aiohttp.ClientSession,
    credentials: ProviderCredentials,
    text: str,
    voice: Optional[str],
    speed: Optional[int],
    pitch: Optional[int],
) -> bytes:
    if not credentials.baidu_api_key or not credentials.baidu_secret_key:
        raise ProviderNotConfigured(
            "Baidu TTS keys are not configured, set BAIDU_TTS_API_KEY and BAIDU_TTS_SECRET_KEY"
        )

    # Baidu needs an access token first
    token_params = {
        "grant_type": "client_credentials",
        "client_id": credentials.baidu_api_key,
        "client_secret": credentials.baidu_secret_key,
    }
    async with session.post(BAIDU_TOKEN_URL, params=token_params) as resp:
        token_data = await resp.json(content_type=None)
    token = token_data.get("access_token") if isinstance(token_data, dict) else None
    if not token:
        raise ProviderError("failed to obtain a Baidu TTS access token")

    params = {
        "tex": text,
        "tok": token,
        "cuid": "danmu-companion",
        "ctp": "1",
        "lan": "zh",
        "per": voice or "0",
        "spd": str(5 if speed is None else speed),
        "pit": str(5 if pitch is None else pitch),
        "vol": "5",
    }
    async with session.get(BAIDU_TTS_URL, params=params) as resp:
        if resp.status >= 400:
            raise ProviderError(f"Baidu TTS request failed: {resp.status}")
        # Errors come back as JSON with a 200 status
        if not resp.content_type.startswith("audio"):
            detail = await resp.text()
            raise ProviderError(f"Baidu TTS error: {detail[:200]}")
        return await resp.read()


async def synthesize_third_party(
    provider: str,
    text: str,
    credentials: ProviderCredentials,
    session: aiohttp.ClientSession,
    voice: Optional[str] = None,
    speed: Optional[int] = None,
    pitch: Optional[int] = None,
) -> bytes:
    """Synthesize mp3 audio through a vendor TTS API.

    Only Baidu has a wire implementation; Aliyun and Tencent need their
    vendor SDKs and report as unsupported once credentials are present.
    """
    if provider == "baidu":
        try:
            return await _baidu_tts(session, credentials, text, voice, speed, pitch)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderError(f"Baidu TTS request failed: {e}") from e

    if provider == "aliyun":
        if not (
            credentials.aliyun_access_key_id
            and credentials.aliyun_access_key_secret
            and credentials.aliyun_app_key
        ):
            raise ProviderNotConfigured(
                "Aliyun TTS is not configured, set ALIYUN_TTS_ACCESS_KEY_ID,"
                " ALIYUN_TTS_ACCESS_KEY_SECRET and ALIYUN_TTS_APP_KEY"
            )
        raise UnsupportedProvider("Aliyun TTS requires the vendor SDK")

    if provider == "tencent":
        if not (credentials.tencent_secret_id and credentials.tencent_secret_key):
            raise ProviderNotConfigured(
                "Tencent TTS is not configured, set TENCENT_TTS_SECRET_ID and TENCENT_TTS_SECRET_KEY"
            )
        raise UnsupportedProvider("Tencent TTS requires the vendor SDK")

    raise UnsupportedProvider(f"unsupported TTS provider: {provider}")
