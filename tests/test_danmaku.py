import asyncio
import json

import aiohttp
from aiohttp import web
from aiohttp.test_utils import TestServer

from danmu_companion.senses import DanmakuListener, EventKind


def _frame(kind_code, content: str, nickname: str = "Alice") -> str:
    return json.dumps({
        "Type": kind_code,
        "ProcessName": "test",
        "Data": json.dumps({"Content": content, "User": {"Nickname": nickname}}),
    })


def test_handle_frame_dispatches_by_kind_and_wildcard() -> None:
    listener = DanmakuListener("ws://localhost:1")
    comments: list = []
    everything: list = []

    async def async_handler(event):
        comments.append(event.content)

    def broken_handler(event):
        raise RuntimeError("handler bug")

    listener.on("comment", broken_handler)
    listener.on("comment", async_handler)
    listener.on("*", lambda event: everything.append(event.kind))

    async def scenario():
        await listener.handle_frame(_frame(1, "hello"))
        await listener.handle_frame(_frame(5, "Alice 点赞了"))
        dropped = await listener.handle_frame("not json at all")
        assert dropped is None

    asyncio.run(scenario())

    assert comments == ["hello"]
    assert everything == [EventKind.COMMENT, EventKind.LIKE]
    assert [e.kind for e in listener.recent_events()] == [EventKind.COMMENT, EventKind.LIKE]
    assert listener.recent_events(1)[0].kind is EventKind.LIKE


def test_history_is_bounded() -> None:
    listener = DanmakuListener("ws://localhost:1")

    async def scenario():
        for i in range(120):
            await listener.handle_frame(_frame(1, f"msg {i}"))

    asyncio.run(scenario())

    history = listener.recent_events(500)
    assert len(history) == 100
    assert history[0].content == "msg 20"


def test_reconnects_after_the_feed_closes(wait_until) -> None:
    connections = 0

    async def feed(request: web.Request) -> web.WebSocketResponse:
        nonlocal connections
        connections += 1
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        await ws.send_str(_frame(1, f"hello {connections}"))
        await ws.close()
        return ws

    app = web.Application()
    app.router.add_get("/ws", feed)
    received: list = []

    async def scenario():
        async with TestServer(app) as server:
            url = str(server.make_url("/ws")).replace("http://", "ws://")
            async with aiohttp.ClientSession() as session:
                listener = DanmakuListener(url, reconnect_delay=0.01, session=session)
                listener.on("comment", lambda event: received.append(event.content))
                await listener.start()
                assert listener.is_running
                await wait_until(lambda: len(received) >= 2)
                await listener.stop()
                assert listener.status == "disconnected"
                assert not listener.is_running
                return listener.connect_attempts

    attempts = asyncio.run(scenario())

    assert attempts >= 2
    assert received[:2] == ["hello 1", "hello 2"]


def test_retries_when_the_feed_is_down(wait_until) -> None:
    async def scenario():
        # Nothing listens on this port
        listener = DanmakuListener("ws://127.0.0.1:9/", reconnect_delay=0.01)
        await listener.start()
        await wait_until(lambda: listener.connect_attempts >= 3)
        assert not listener.is_connected
        await listener.stop()

    asyncio.run(scenario())


def _serve_frames(*frames: str) -> web.Application:
    async def feed(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        for frame in frames:
            await ws.send_str(frame)
        await ws.close()
        return ws

    app = web.Application()
    app.router.add_get("/ws", feed)
    return app


def test_deeply_nested_frame_does_not_stop_the_listener(wait_until) -> None:
    nested = json.dumps({"Type": 1, "ProcessName": "test", "Data": "[" * 100000})
    app = _serve_frames(nested, _frame(1, "still here"))
    received: list = []

    async def scenario():
        async with TestServer(app) as server:
            url = str(server.make_url("/ws")).replace("http://", "ws://")
            async with aiohttp.ClientSession() as session:
                listener = DanmakuListener(url, reconnect_delay=0.01, session=session)
                listener.on("comment", lambda event: received.append(event.content))
                await listener.start()
                await wait_until(lambda: listener.connect_attempts >= 2 and received)
                assert listener.is_running
                await listener.stop()

    asyncio.run(scenario())

    assert received[0] == "still here"


def test_unexpected_frame_error_is_dropped(wait_until) -> None:
    app = _serve_frames(_frame(1, "first"), _frame(1, "second"))
    received: list = []

    async def scenario():
        async with TestServer(app) as server:
            url = str(server.make_url("/ws")).replace("http://", "ws://")
            async with aiohttp.ClientSession() as session:
                listener = DanmakuListener(url, reconnect_delay=60, session=session)
                listener.on("comment", lambda event: received.append(event.content))
                handle_frame = listener.handle_frame
                calls = 0

                async def flaky_handle_frame(frame):
                    nonlocal calls
                    calls += 1
                    if calls == 1:
                        raise RuntimeError("boom")
                    return await handle_frame(frame)

                listener.handle_frame = flaky_handle_frame
                await listener.start()
                await wait_until(lambda: received)
                await listener.stop()

    asyncio.run(scenario())

    assert received == ["second"]
