"""Event classification - producer kind codes first, keyword rules second."""

from __future__ import annotations

from typing import Callable, Optional

from .events import EventKind, ParsedPayload


# Producer-assigned codes; authoritative when present.
KIND_CODES: dict[int, EventKind] = {
    1: EventKind.COMMENT,
    2: EventKind.GIFT,
    3: EventKind.USER_ENTER,
    4: EventKind.USER_LEAVE,
    5: EventKind.LIKE,
    6: EventKind.FOLLOW,
    7: EventKind.SHARE,
    8: EventKind.SYSTEM,
}

# EnterTipType value that means "entered"; anything else means "left".
ENTER_SENTINEL = 0

ENTER_PHRASES = ("$来了", "来了直播间", "进入直播间")
LEAVE_PHRASES = ("离开", "退出")
LIKE_PHRASES = ("点赞", "like")
FOLLOW_PHRASES = ("关注", "follow")
SHARE_PHRASES = ("分享", "share")
SYSTEM_PHRASES = ("系统", "system")

Rule = Callable[[str, ParsedPayload], bool]


def _contains_any(phrases: tuple[str, ...]) -> Rule:
    def rule(content: str, payload: ParsedPayload) -> bool:
        return any(phrase in content for phrase in phrases)
    return rule


def _has_gift(content: str, payload: ParsedPayload) -> bool:
    return bool(payload.gift_name) or bool(payload.gift_id)


# Evaluated in order when the content is non-empty; first match wins.
CONTENT_RULES: list[tuple[Rule, EventKind]] = [
    (_contains_any(ENTER_PHRASES), EventKind.USER_ENTER),
    (_contains_any(LEAVE_PHRASES), EventKind.USER_LEAVE),
    (_has_gift, EventKind.GIFT),
    (_contains_any(LIKE_PHRASES), EventKind.LIKE),
    (_contains_any(FOLLOW_PHRASES), EventKind.FOLLOW),
    (_contains_any(SHARE_PHRASES), EventKind.SHARE),
    (_contains_any(SYSTEM_PHRASES), EventKind.SYSTEM),
]


def classify(
    kind_code: Optional[int],
    content: str,
    payload: ParsedPayload,
) -> EventKind:
    """Assign an event kind to a decoded payload."""
    if kind_code is not None and kind_code in KIND_CODES:
        return KIND_CODES[kind_code]

    if content:
        for rule, kind in CONTENT_RULES:
            if rule(content, payload):
                return kind
        return EventKind.COMMENT

    if payload.gift_name:
        return EventKind.GIFT

    if payload.enter_tip_type is not None:
        if payload.enter_tip_type == ENTER_SENTINEL:
            return EventKind.USER_ENTER
        return EventKind.USER_LEAVE

    return EventKind.UNKNOWN
