"""TTS Engine - one speech output with three interchangeable backends.

- browser:     the overlay page speaks with the Web Speech API
- edge:        the Edge TTS proxy returns mp3 bytes, played locally
- third-party: a vendor TTS proxy (baidu/aliyun/tencent) returns mp3 bytes
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Protocol

import aiohttp

from ..errors import PlaybackFailed, TTSError, TTSRequestFailed, UnsupportedBackend
from .player import AudioPlayer
from .voices import DEFAULT_EDGE_VOICE

logger = logging.getLogger(__name__)


class TTSBackend(str, Enum):
    BROWSER = "browser"
    EDGE = "edge"
    THIRD_PARTY = "third-party"

    @classmethod
    def parse(cls, value: "str | TTSBackend") -> "TTSBackend":
        if isinstance(value, TTSBackend):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        if normalized == "thirdparty":
            normalized = "third-party"
        try:
            return cls(normalized)
        except ValueError:
            raise UnsupportedBackend(f"unsupported TTS type: {value}") from None


class SpeechStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


@dataclass(frozen=True)
class SpeechResult:
    """Outcome of one speak() call. Delivered exactly once."""

    status: SpeechStatus
    error: Optional[TTSError] = None

    @classmethod
    def failed(cls, error: TTSError) -> "SpeechResult":
        return cls(SpeechStatus.FAILED, error)

    @property
    def ok(self) -> bool:
        return self.status is SpeechStatus.COMPLETED

    def describe(self) -> str:
        if self.error is not None:
            return f"{self.status.value} ({self.error})"
        return self.status.value


class SpeechBackend(Protocol):
    def is_available(self) -> bool: ...

    async def speak(self, text: str, options: dict) -> None: ...

    def stop(self) -> None: ...


class SpeechBridge(Protocol):
    """Something that can make a browser page speak (the overlay server)."""

    def has_speech_clients(self) -> bool: ...

    async def speak_in_browser(self, text: str, options: dict) -> None: ...

    def cancel_speech(self) -> None: ...


class BrowserSpeechBackend:
    """Speaks through the Web Speech API of a connected overlay page."""

    def __init__(self, bridge: SpeechBridge) -> None:
        self._bridge = bridge

    def is_available(self) -> bool:
        return self._bridge.has_speech_clients()

    async def speak(self, text: str, options: dict) -> None:
        if not self._bridge.has_speech_clients():
            raise PlaybackFailed("no overlay page connected for browser speech")
        await self._bridge.speak_in_browser(text, options.get("browser") or {})

    def stop(self) -> None:
        self._bridge.cancel_speech()


class _ProxyAudioBackend:
    """Fetches mp3 bytes from a TTS proxy endpoint and plays them."""

    label = "TTS"

    def __init__(
        self,
        url: str,
        session: aiohttp.ClientSession,
        player: AudioPlayer,
        timeout: float = 30.0,
    ) -> None:
        self._url = url
        self._session = session
        self._player = player
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    def is_available(self) -> bool:
        return self._player.ensure_ready()

    def build_body(self, text: str, options: dict) -> dict:
        raise NotImplementedError

    async def fetch_audio(self, text: str, options: dict) -> bytes:
        body = self.build_body(text, options)
        try:
            async with self._session.post(self._url, json=body, timeout=self._timeout) as resp:
                if resp.status >= 400:
                    raise TTSRequestFailed(await self._error_message(resp))
                return await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TTSRequestFailed(f"{self.label} request failed: {e}") from e

    async def _error_message(self, resp: aiohttp.ClientResponse) -> str:
        try:
            data = await resp.json(content_type=None)
        except ValueError:
            data = None
        if isinstance(data, dict) and data.get("error"):
            return str(data["error"])
        return f"{self.label} request failed: {resp.status}"

    async def speak(self, text: str, options: dict) -> None:
        audio = await self.fetch_audio(text, options)
        if not audio:
            raise TTSRequestFailed(f"{self.label} returned no audio")
        await self._player.play(audio)

    def stop(self) -> None:
        self._player.stop()


class EdgeProxyBackend(_ProxyAudioBackend):
    label = "Edge TTS"

    def build_body(self, text: str, options: dict) -> dict:
        edge = options.get("edge") or {}
        return {
            "text": text,
            "voice": edge.get("voice") or DEFAULT_EDGE_VOICE,
            "rate": edge.get("rate") or "+0%",
            "pitch": edge.get("pitch") or "+0Hz",
        }


class ThirdPartyProxyBackend(_ProxyAudioBackend):
    label = "Third-party TTS"

    def build_body(self, text: str, options: dict) -> dict:
        third_party = options.get("third_party") or {}
        provider = third_party.get("provider")
        if not provider:
            raise TTSRequestFailed("third-party TTS needs a provider")
        body = {"text": text, "provider": provider}
        for key in ("voice", "speed", "pitch"):
            if third_party.get(key) is not None:
                body[key] = third_party[key]
        return body


@dataclass
class _Utterance:
    text: str
    backend: TTSBackend
    engine: SpeechBackend
    done: asyncio.Future
    task: Optional[asyncio.Task] = field(default=None, repr=False)


class TTSManager:
    """
    Dispatches speech to the configured backend.

    At most one utterance is active: speak() stops the current one first,
    and the stopped call resolves as INTERRUPTED before the new one starts.
    """

    def __init__(
        self,
        backends: dict[TTSBackend, SpeechBackend],
        default_backend: "str | TTSBackend" = TTSBackend.BROWSER,
    ) -> None:
        self._backends = dict(backends)
        self.default_backend = TTSBackend.parse(default_backend)
        self._current: Optional[_Utterance] = None

    def set_default_backend(self, backend: "str | TTSBackend") -> None:
        self.default_backend = TTSBackend.parse(backend)

    def _resolve(self, backend: "str | TTSBackend | None") -> tuple[TTSBackend, SpeechBackend]:
        kind = TTSBackend.parse(backend) if backend else self.default_backend
        engine = self._backends.get(kind)
        if engine is None:
            raise UnsupportedBackend(f"no {kind.value} backend configured")
        return kind, engine

    def is_available(self, backend: "str | TTSBackend | None" = None) -> bool:
        try:
            _, engine = self._resolve(backend)
        except UnsupportedBackend:
            return False
        return engine.is_available()

    async def speak(
        self,
        text: str,
        backend: "str | TTSBackend | None" = None,
        options: Optional[dict] = None,
        on_start: Optional[Callable[[], None]] = None,
    ) -> SpeechResult:
        """Speak text and wait until it completes, fails or is interrupted."""
        self.stop()

        try:
            kind, engine = self._resolve(backend)
        except UnsupportedBackend as e:
            logger.error("TTS error: %s", e)
            return SpeechResult.failed(e)

        utterance = _Utterance(
            text=text,
            backend=kind,
            engine=engine,
            done=asyncio.get_running_loop().create_future(),
        )
        self._current = utterance
        utterance.task = asyncio.create_task(self._run(utterance, options or {}, on_start))

        try:
            return await utterance.done
        except asyncio.CancelledError:
            if self._current is utterance:
                self.stop()
            raise

    async def _run(
        self,
        utterance: _Utterance,
        options: dict,
        on_start: Optional[Callable[[], None]],
    ) -> None:
        try:
            if on_start is not None:
                on_start()
            await utterance.engine.speak(utterance.text, options)
        except asyncio.CancelledError:
            self._finish(utterance, SpeechResult(SpeechStatus.INTERRUPTED))
            raise
        except TTSError as e:
            logger.error("TTS (%s) failed: %s", utterance.backend.value, e)
            self._finish(utterance, SpeechResult.failed(e))
        except Exception as e:
            logger.exception("TTS (%s) crashed", utterance.backend.value)
            self._finish(utterance, SpeechResult.failed(PlaybackFailed(str(e))))
        else:
            self._finish(utterance, SpeechResult(SpeechStatus.COMPLETED))
        finally:
            if self._current is utterance:
                self._current = None

    @staticmethod
    def _finish(utterance: _Utterance, result: SpeechResult) -> None:
        if not utterance.done.done():
            utterance.done.set_result(result)

    def stop(self) -> None:
        """Stop the active utterance, if any."""
        utterance = self._current
        if utterance is None:
            return
        self._current = None
        utterance.engine.stop()
        if utterance.task is not None:
            utterance.task.cancel()
        self._finish(utterance, SpeechResult(SpeechStatus.INTERRUPTED))

    @property
    def is_speaking(self) -> bool:
        return self._current is not None


def build_tts_manager(
    api_base_url: str,
    session: aiohttp.ClientSession,
    bridge: SpeechBridge,
    player: AudioPlayer,
    default_backend: "str | TTSBackend" = TTSBackend.BROWSER,
) -> TTSManager:
    """Wire the three standard backends against the local API server."""
    base = api_base_url.rstrip("/")
    return TTSManager(
        backends={
            TTSBackend.BROWSER: BrowserSpeechBackend(bridge),
            TTSBackend.EDGE: EdgeProxyBackend(f"{base}/api/tts/edge", session, player),
            TTSBackend.THIRD_PARTY: ThirdPartyProxyBackend(
                f"{base}/api/tts/third-party", session, player
            ),
        },
        default_backend=default_backend,
    )
