"""Display text for classified events."""

from __future__ import annotations

from .events import EventKind, ParsedPayload


_LABELS = {
    EventKind.USER_ENTER: "enter",
    EventKind.USER_LEAVE: "leave",
    EventKind.COMMENT: "comment",
    EventKind.GIFT: "gift",
    EventKind.LIKE: "like",
    EventKind.FOLLOW: "follow",
    EventKind.SHARE: "share",
    EventKind.SYSTEM: "system",
    EventKind.UNKNOWN: "unknown",
}


def format_content(kind: EventKind, content: str, payload: ParsedPayload) -> str:
    """Render one event as a short line of text. Pure."""
    if kind is EventKind.USER_ENTER:
        if payload.current_count:
            return f"entered the room (viewers: {payload.current_count})"
        return "entered the room"

    if kind is EventKind.USER_LEAVE:
        return "left the room"

    if kind is EventKind.GIFT:
        name = payload.gift_name or "a gift"
        count = payload.gift_count or 1
        return f"sent {name} x{count}" if count > 1 else f"sent {name}"

    if kind is EventKind.LIKE:
        return "liked"

    if kind is EventKind.FOLLOW:
        return "followed the room"

    if kind is EventKind.SHARE:
        return "shared the room"

    if kind in (EventKind.COMMENT, EventKind.SYSTEM):
        return content

    return content or "unknown message"


def kind_label(kind: EventKind) -> str:
    """Short tag used in log lines."""
    return _LABELS.get(kind, "unknown")
