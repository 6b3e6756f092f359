import asyncio

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from danmu_companion.errors import PlaybackFailed, TTSRequestFailed, UnsupportedBackend
from danmu_companion.voice.tts_engine import (
    BrowserSpeechBackend,
    EdgeProxyBackend,
    SpeechStatus,
    TTSBackend,
    TTSManager,
    ThirdPartyProxyBackend,
)


class FakeBackend:
    def __init__(self, log: list, name: str = "fake", block: bool = False, error=None) -> None:
        self.log = log
        self.name = name
        self.block = block
        self.error = error
        self.available = True

    def is_available(self) -> bool:
        return self.available

    async def speak(self, text: str, options: dict) -> None:
        self.log.append(f"{self.name} speak {text}")
        if self.error is not None:
            raise self.error
        if self.block:
            await asyncio.Event().wait()

    def stop(self) -> None:
        self.log.append(f"{self.name} stop")


class FakePlayer:
    def __init__(self) -> None:
        self.played: list[bytes] = []
        self.stopped = False

    def ensure_ready(self) -> bool:
        return True

    async def play(self, audio: bytes) -> None:
        self.played.append(audio)

    def stop(self) -> None:
        self.stopped = True


def test_backend_names() -> None:
    assert TTSBackend.parse("browser") is TTSBackend.BROWSER
    assert TTSBackend.parse("EDGE") is TTSBackend.EDGE
    assert TTSBackend.parse("third-party") is TTSBackend.THIRD_PARTY
    assert TTSBackend.parse("thirdParty") is TTSBackend.THIRD_PARTY
    assert TTSBackend.parse("third_party") is TTSBackend.THIRD_PARTY
    with pytest.raises(UnsupportedBackend):
        TTSBackend.parse("carrier-pigeon")


def test_new_utterance_interrupts_the_previous_one() -> None:
    log: list = []
    backend = FakeBackend(log, block=True)
    manager = TTSManager({TTSBackend.BROWSER: backend})

    async def scenario():
        first = asyncio.create_task(
            manager.speak("one", on_start=lambda: log.append("start one"))
        )
        while "fake speak one" not in log:
            await asyncio.sleep(0)

        backend.block = False
        second = await manager.speak("two", on_start=lambda: log.append("start two"))
        return await first, second

    first, second = asyncio.run(scenario())

    assert first.status is SpeechStatus.INTERRUPTED
    assert second.status is SpeechStatus.COMPLETED
    assert log == ["start one", "fake speak one", "fake stop", "start two", "fake speak two"]


def test_backend_failure_is_reported_once() -> None:
    log: list = []
    error = TTSRequestFailed("proxy said no")
    manager = TTSManager({TTSBackend.EDGE: FakeBackend(log, error=error)}, default_backend="edge")

    result = asyncio.run(manager.speak("hello"))

    assert result.status is SpeechStatus.FAILED
    assert result.error is error
    assert not result.ok
    assert "proxy said no" in result.describe()
    assert not manager.is_speaking


def test_unexpected_errors_become_playback_failures() -> None:
    manager = TTSManager({TTSBackend.BROWSER: FakeBackend([], error=RuntimeError("boom"))})

    result = asyncio.run(manager.speak("hello"))

    assert result.status is SpeechStatus.FAILED
    assert isinstance(result.error, PlaybackFailed)


def test_unknown_or_unwired_backend_fails() -> None:
    manager = TTSManager({TTSBackend.BROWSER: FakeBackend([])})

    async def scenario():
        return (
            await manager.speak("hi", backend="edge"),
            await manager.speak("hi", backend="smoke-signals"),
        )

    missing, unknown = asyncio.run(scenario())

    assert missing.status is SpeechStatus.FAILED
    assert isinstance(missing.error, UnsupportedBackend)
    assert isinstance(unknown.error, UnsupportedBackend)
    assert manager.is_available("edge") is False
    assert manager.is_available() is True


def test_cancelling_the_caller_stops_playback() -> None:
    log: list = []
    manager = TTSManager({TTSBackend.BROWSER: FakeBackend(log, block=True)})

    async def scenario():
        task = asyncio.create_task(manager.speak("long text"))
        while "fake speak long text" not in log:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert "fake stop" in log
    assert not manager.is_speaking


def test_stop_interrupts_active_speech() -> None:
    log: list = []
    manager = TTSManager({TTSBackend.BROWSER: FakeBackend(log, block=True)})

    async def scenario():
        task = asyncio.create_task(manager.speak("hi"))
        while not manager.is_speaking or "fake speak hi" not in log:
            await asyncio.sleep(0)
        manager.stop()
        return await task

    result = asyncio.run(scenario())

    assert result.status is SpeechStatus.INTERRUPTED
    manager.stop()  # idle stop is a no-op
    assert log.count("fake stop") == 1


def test_browser_backend_requires_a_page() -> None:
    class NoPages:
        def has_speech_clients(self) -> bool:
            return False

        async def speak_in_browser(self, text, options):
            raise AssertionError("should not be called")

        def cancel_speech(self) -> None:
            pass

    backend = BrowserSpeechBackend(NoPages())
    assert backend.is_available() is False
    with pytest.raises(PlaybackFailed):
        asyncio.run(backend.speak("hi", {}))


def test_proxy_backends_post_and_play() -> None:
    received: list[dict] = []

    async def edge(request: web.Request) -> web.Response:
        received.append(await request.json())
        return web.Response(body=b"ID3-edge", content_type="audio/mpeg")

    async def third_party(request: web.Request) -> web.Response:
        body = await request.json()
        received.append(body)
        if body.get("provider") == "tencent":
            return web.json_response({"success": False, "error": "Tencent TTS is not configured"}, status=500)
        return web.Response(body=b"ID3-baidu", content_type="audio/mpeg")

    app = web.Application()
    app.router.add_post("/api/tts/edge", edge)
    app.router.add_post("/api/tts/third-party", third_party)
    player = FakePlayer()

    async def scenario():
        async with TestServer(app) as server:
            async with aiohttp.ClientSession() as session:
                edge_backend = EdgeProxyBackend(str(server.make_url("/api/tts/edge")), session, player)
                vendor = ThirdPartyProxyBackend(str(server.make_url("/api/tts/third-party")), session, player)

                await edge_backend.speak("你好", {"edge": {"voice": "zh-CN-YunxiNeural"}})
                await vendor.speak("你好", {"third_party": {"provider": "baidu", "speed": 6}})
                with pytest.raises(TTSRequestFailed, match="not configured"):
                    await vendor.speak("你好", {"third_party": {"provider": "tencent"}})
                with pytest.raises(TTSRequestFailed, match="provider"):
                    await vendor.speak("你好", {})

    asyncio.run(scenario())

    assert player.played == [b"ID3-edge", b"ID3-baidu"]
    assert received[0] == {"text": "你好", "voice": "zh-CN-YunxiNeural", "rate": "+0%", "pitch": "+0Hz"}
    assert received[1] == {"text": "你好", "provider": "baidu", "speed": 6}
    assert len(received) == 3
