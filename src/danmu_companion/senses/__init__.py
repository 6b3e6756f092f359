"""Senses module - Live-room feed input and event normalization."""

from .classifier import classify
from .danmaku import DanmakuListener
from .events import ClassifiedEvent, EventKind, ParsedPayload, RawEvent
from .formatter import format_content, kind_label
from .parser import parse_message, speaker_name, try_parse_message

__all__ = [
    "DanmakuListener",
    "ClassifiedEvent", "EventKind", "ParsedPayload", "RawEvent",
    "classify", "format_content", "kind_label",
    "parse_message", "speaker_name", "try_parse_message",
]
