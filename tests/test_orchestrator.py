import asyncio
import json

from danmu_companion.brain import (
    AIResponse,
    AutoReplyRule,
    NullDisplay,
    ReplyOrchestrator,
    ReplyQueue,
    ReplySequencer,
)
from danmu_companion.senses import parse_message


class FakeAI:
    def __init__(self, response: AIResponse, delay: float = 0) -> None:
        self.response = response
        self.delay = delay
        self.calls: list[tuple] = []

    async def reply(self, message, context=None, page_key=None) -> AIResponse:
        self.calls.append((message, context, page_key))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.response


def _comment(text: str, nickname: str = "Alice"):
    return parse_message({
        "Type": 1,
        "ProcessName": "test",
        "Data": json.dumps({"Content": text, "User": {"Nickname": nickname}}),
    })


def _gift():
    return parse_message({
        "Type": 2,
        "ProcessName": "test",
        "Data": json.dumps({"GiftName": "Rose", "GiftCount": 1}),
    })


def _orchestrator(ai, **kwargs) -> tuple[ReplyOrchestrator, ReplyQueue]:
    queue = ReplyQueue()
    sequencer = ReplySequencer(queue, display=NullDisplay())
    return ReplyOrchestrator(ai, sequencer, **kwargs), queue


def test_failed_ai_call_produces_no_reply() -> None:
    ai = FakeAI(AIResponse(success=False, error="timeout"))
    orchestrator, queue = _orchestrator(ai)

    async def scenario():
        task = await orchestrator.handle_event(_comment("你好"))
        assert task is not None
        return await task

    assert asyncio.run(scenario()) is None
    assert len(queue) == 0
    assert ai.calls[0][0] == "你好"


def test_successful_reply_is_queued() -> None:
    ai = FakeAI(AIResponse(success=True, reply="  你好呀！ "))
    orchestrator, queue = _orchestrator(ai, page_key="live-chat-bot")

    async def scenario():
        task = await orchestrator.handle_event(_comment("  你好  "))
        return await task

    reply = asyncio.run(scenario())

    assert reply is not None
    assert reply.text == "你好呀！"
    assert reply.username == "Alice"
    assert queue.snapshot() == [reply]
    message, context, page_key = ai.calls[0]
    assert message == "你好"
    assert context == "user Alice said in the live room: 你好"
    assert page_key == "live-chat-bot"


def test_malformed_or_blank_reply_is_not_queued() -> None:
    for bad in (AIResponse(success=True, reply=42), AIResponse(success=True, reply="   ")):
        orchestrator, queue = _orchestrator(FakeAI(bad))

        assert asyncio.run(orchestrator.reply_to("hello", "alice")) is None
        assert len(queue) == 0


def test_non_comment_events_are_ignored() -> None:
    ai = FakeAI(AIResponse(success=True, reply="thanks"))
    orchestrator, queue = _orchestrator(ai)

    async def scenario():
        return await orchestrator.handle_event(_gift())

    assert asyncio.run(scenario()) is None
    assert ai.calls == []
    assert len(queue) == 0


def test_blank_comment_is_ignored() -> None:
    ai = FakeAI(AIResponse(success=True, reply="?"))
    orchestrator, _ = _orchestrator(ai)

    async def scenario():
        return await orchestrator.handle_event(_comment("   "))

    assert asyncio.run(scenario()) is None
    assert ai.calls == []


def test_ai_disabled_skips_the_call() -> None:
    ai = FakeAI(AIResponse(success=True, reply="hi"))
    orchestrator, queue = _orchestrator(ai, ai_enabled=False)

    async def scenario():
        return await orchestrator.handle_event(_comment("hello"))

    assert asyncio.run(scenario()) is None
    assert ai.calls == []
    assert len(queue) == 0


def test_auto_reply_keyword_short_circuits_ai() -> None:
    ai = FakeAI(AIResponse(success=True, reply="from ai"))
    rule = AutoReplyRule.from_config({
        "enabled": True,
        "keywords": "主播好，hello",
        "message": "Thanks for the support!",
    })
    orchestrator, queue = _orchestrator(ai, auto_reply=rule)

    async def scenario():
        return await orchestrator.handle_event(_comment("hello there", nickname="Bob"))

    assert asyncio.run(scenario()) is None
    assert ai.calls == []
    [reply] = queue.snapshot()
    assert reply.text == "Thanks for the support!"
    assert reply.username == "Bob"


def test_auto_reply_rule_parsing() -> None:
    rule = AutoReplyRule.from_config({"enabled": True, "keywords": " 666 ，加油, ", "message": "谢谢"})

    assert rule.keywords == ["666", "加油"]
    assert rule.match("主播加油") == "谢谢"
    assert rule.match("你好") is None
    assert AutoReplyRule.from_config(None).match("666") is None
    assert AutoReplyRule.from_config({"enabled": False, "keywords": "666", "message": "x"}).match("666") is None


def test_concurrent_calls_and_single_flight() -> None:
    ai = FakeAI(AIResponse(success=True, reply="ok"), delay=0.01)
    concurrent, queue = _orchestrator(ai)
    guarded, guarded_queue = _orchestrator(ai, single_flight=True)

    async def scenario():
        for text in ("a", "b", "c"):
            await concurrent.handle_event(_comment(text))
        assert concurrent.inflight == 3
        await concurrent.drain()

        first = await guarded.handle_event(_comment("d"))
        second = await guarded.handle_event(_comment("e"))
        assert first is not None and second is None
        await guarded.drain()

    asyncio.run(scenario())

    assert len(queue) == 3
    assert len(guarded_queue) == 1
    assert concurrent.inflight == 0


def test_cancel_all_stops_pending_calls() -> None:
    ai = FakeAI(AIResponse(success=True, reply="late"), delay=10)
    orchestrator, queue = _orchestrator(ai)

    async def scenario():
        await orchestrator.handle_event(_comment("hi"))
        await asyncio.sleep(0)
        await orchestrator.cancel_all()

    asyncio.run(scenario())

    assert orchestrator.inflight == 0
    assert len(queue) == 0
