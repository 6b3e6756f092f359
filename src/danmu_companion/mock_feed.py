"""
Mock live-room feed.

Broadcasts random barrage envelopes (comments, entries, gifts, likes) to
every connected WebSocket client, in the same wire format as the real
grabber. Useful for running the companion without a live room.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import random
from typing import Callable, Optional

from aiohttp import WSMsgType, web
from dotenv import load_dotenv

from .logging_setup import setup_logging
from .senses.classifier import KIND_CODES
from .senses.events import EventKind, RawEvent

logger = logging.getLogger(__name__)

PRODUCER_NAME = "mock-server"

WIRE_CODES = {kind: code for code, kind in KIND_CODES.items()}

MOCK_USERS = [
    ("小明", "xiaoming123"),
    ("小红", "xiaohong456"),
    ("小李", "xiaoli789"),
    ("小王", "xiaowang012"),
    ("小张", "xiaozhang345"),
    ("小刘", "xiaoliu678"),
    ("小陈", "xiaochen901"),
    ("小赵", "xiaozhao234"),
]

MOCK_COMMENTS = [
    "大家好！",
    "主播今天播什么？",
    "这个游戏好玩吗？",
    "666666",
    "太厉害了！",
    "学到了",
    "支持主播",
    "加油！",
    "这个怎么玩？",
    "主播能教教我吗？",
    "太棒了！",
    "哈哈哈",
    "有意思",
    "继续继续",
    "期待下一期",
    "主播辛苦了",
    "感谢分享",
    "这个不错",
    "学到了新知识",
    "支持一下",
]

MOCK_GIFTS = [
    ("鲜花", 1),
    ("掌声", 2),
    ("爱心", 3),
    ("火箭", 4),
    ("飞机", 5),
    ("跑车", 6),
]


class MockFeed:
    """Builds random wire envelopes. Pass a seeded Random for repeatable output."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()
        self._next_msg_id = 1
        self._builders: list[tuple[int, Callable[[], dict]]] = [
            (10, self.comment),
            (2, self.user_enter),
            (3, self.gift),
            (5, self.like),
        ]

    def _payload(self, nickname: str, display_id: str, **fields) -> dict:
        rng = self._rng
        msg_id = self._next_msg_id
        self._next_msg_id += 1
        data = {
            "CurrentCount": rng.randint(100, 1099),
            "EnterTipType": 0,
            "MsgId": msg_id,
            "User": {
                "Id": rng.randint(0, 999999),
                "ShortId": rng.randint(0, 99999),
                "DisplayId": display_id,
                "Nickname": nickname,
                "Level": rng.randint(1, 50),
                "PayLevel": rng.randint(0, 9),
                "Gender": rng.randint(0, 2),
                "HeadImgUrl": f"https://example.com/avatar/{display_id}.jpg",
            },
            "RoomId": "123456789",
            "WebRoomId": "987654321",
            "Appid": "douyin",
        }
        data.update(fields)
        return data

    @staticmethod
    def _envelope(kind: EventKind, data: dict) -> dict:
        return RawEvent(
            kind_code=WIRE_CODES[kind],
            producer_name=PRODUCER_NAME,
            payload=json.dumps(data, ensure_ascii=False),
        ).to_wire()

    def comment(self) -> dict:
        nickname, display_id = self._rng.choice(MOCK_USERS)
        data = self._payload(nickname, display_id, Content=self._rng.choice(MOCK_COMMENTS))
        return self._envelope(EventKind.COMMENT, data)

    def user_enter(self) -> dict:
        nickname, display_id = self._rng.choice(MOCK_USERS)
        viewers = self._rng.randint(100, 1099)
        data = self._payload(nickname, display_id, Content=f"{nickname}$来了直播间人数:{viewers}")
        return self._envelope(EventKind.USER_ENTER, data)

    def gift(self) -> dict:
        nickname, display_id = self._rng.choice(MOCK_USERS)
        gift_name, gift_id = self._rng.choice(MOCK_GIFTS)
        data = self._payload(
            nickname,
            display_id,
            GiftName=gift_name,
            GiftId=gift_id,
            GiftCount=self._rng.randint(1, 10),
        )
        return self._envelope(EventKind.GIFT, data)

    def like(self) -> dict:
        nickname, display_id = self._rng.choice(MOCK_USERS)
        data = self._payload(nickname, display_id, Content=f"{nickname} 点赞了")
        return self._envelope(EventKind.LIKE, data)

    def welcome(self) -> dict:
        return self._envelope(
            EventKind.SYSTEM,
            {"Content": "欢迎连接到模拟直播间服务器！", "CurrentCount": 100},
        )

    def random_message(self) -> dict:
        total = sum(weight for weight, _ in self._builders)
        roll = self._rng.uniform(0, total)
        for weight, build in self._builders:
            roll -= weight
            if roll <= 0:
                return build()
        return self._builders[0][1]()


class MockFeedServer:
    """WebSocket server that pushes a random envelope every `interval` seconds."""

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 8888,
        interval: float = 5.0,
        feed: Optional[MockFeed] = None,
    ) -> None:
        self._host = host
        self._port = port
        self._interval = interval
        self.feed = feed or MockFeed()
        self._clients: set[web.WebSocketResponse] = set()
        self._app = web.Application()
        self._app.router.add_get("/", self._websocket_handler)
        self._runner: web.AppRunner | None = None
        self._task: asyncio.Task | None = None

    @property
    def app(self) -> web.Application:
        return self._app

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def start(self) -> None:
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        self._task = asyncio.create_task(self._broadcast_loop())
        logger.info("Mock feed on ws://localhost:%s (every %.1fs)", self._port, self._interval)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        for ws in list(self._clients):
            await ws.close()
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    async def broadcast(self, message: dict) -> int:
        """Send one envelope to every client. Returns how many got it."""
        data = json.dumps(message, ensure_ascii=False)
        sent = 0
        for ws in list(self._clients):
            if ws.closed:
                self._clients.discard(ws)
                continue
            try:
                await ws.send_str(data)
                sent += 1
            except (ConnectionResetError, RuntimeError):
                self._clients.discard(ws)
        return sent

    async def _broadcast_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if not self._clients:
                continue
            message = self.feed.random_message()
            sent = await self.broadcast(message)
            logger.debug("Sent type %s to %d clients", message["Type"], sent)

    async def _websocket_handler(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self._clients.add(ws)
        logger.info("Client connected (%d total)", len(self._clients))
        await ws.send_str(json.dumps(self.feed.welcome(), ensure_ascii=False))

        try:
            async for msg in ws:
                if msg.type != WSMsgType.TEXT:
                    continue
                try:
                    data = json.loads(msg.data)
                except ValueError:
                    logger.warning("Ignoring non-JSON client message")
                    continue
                if isinstance(data, dict) and data.get("type") == "ping":
                    await ws.send_str(json.dumps({"type": "pong"}))
        finally:
            self._clients.discard(ws)
            logger.info("Client disconnected (%d total)", len(self._clients))

        return ws


async def main() -> None:
    load_dotenv()
    port = int(os.getenv("MOCK_FEED_PORT", "8888"))
    interval = float(os.getenv("MOCK_FEED_INTERVAL", "5"))
    server = MockFeedServer(port=port, interval=interval)
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def run() -> None:
    load_dotenv()
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Mock feed stopped")


if __name__ == "__main__":
    run()
