"""Envelope parsing - turns one feed frame into a ClassifiedEvent."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from ..errors import ParseError, ParseFailure
from .classifier import classify
from .events import ClassifiedEvent, GiftInfo, ParsedPayload, RawEvent, RoomInfo
from .formatter import format_content

logger = logging.getLogger(__name__)

UNKNOWN_USER = "unknown user"

Frame = Union[str, bytes, Mapping[str, Any], RawEvent]


def _decode_envelope(raw: Frame) -> RawEvent:
    if isinstance(raw, RawEvent):
        return raw
    if isinstance(raw, Mapping):
        return RawEvent.from_wire(raw)
    try:
        data = json.loads(raw)
    except (TypeError, ValueError, RecursionError) as e:
        raise ParseError(ParseFailure.ENVELOPE_INVALID, str(e)) from e
    if not isinstance(data, Mapping):
        raise ParseError(ParseFailure.ENVELOPE_INVALID, "envelope is not an object")
    return RawEvent.from_wire(data)


def _decode_payload(envelope: RawEvent) -> ParsedPayload:
    try:
        data = json.loads(envelope.payload)
    except (TypeError, ValueError, RecursionError) as e:
        raise ParseError(ParseFailure.PAYLOAD_INVALID, str(e)) from e
    if not isinstance(data, Mapping):
        raise ParseError(ParseFailure.PAYLOAD_INVALID, "payload is not an object")
    return ParsedPayload.from_dict(data)


def parse_message(raw: Frame) -> ClassifiedEvent:
    """Decode, classify and format one frame.

    Raises:
        ParseError: the envelope or its nested ``Data`` string is not a
            JSON object.
    """
    envelope = _decode_envelope(raw)
    payload = _decode_payload(envelope)

    user = payload.user
    display_name = (user and (user.nickname or user.display_id)) or UNKNOWN_USER
    content = payload.content or ""

    kind = classify(envelope.kind_code, content, payload)

    gift_info = None
    if payload.gift_name:
        gift_info = GiftInfo(
            gift_name=payload.gift_name,
            gift_count=payload.gift_count or 1,
            gift_id=payload.gift_id,
        )

    return ClassifiedEvent(
        kind=kind,
        display_name=display_name,
        formatted_text=format_content(kind, content, payload),
        content=content,
        raw=envelope,
        parsed=payload,
        timestamp=datetime.now(),
        user_info=user,
        owner_info=payload.owner,
        room_info=RoomInfo(
            room_id=payload.room_id,
            web_room_id=payload.web_room_id,
            current_count=payload.current_count,
        ),
        gift_info=gift_info,
    )


def try_parse_message(raw: Frame) -> Optional[ClassifiedEvent]:
    """Parse a frame, logging and dropping anything malformed."""
    try:
        return parse_message(raw)
    except ParseError as e:
        logger.warning("Dropped feed frame (%s)", e)
        return None


def speaker_name(event: ClassifiedEvent) -> str:
    """Name to address a viewer by in prompts and speech."""
    user = event.user_info
    if user and user.nickname:
        return user.nickname
    if user and user.display_id:
        return user.display_id
    return event.display_name or "user"
