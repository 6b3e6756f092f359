"""Event types for the live-room feed.

Wire format (one text frame per event):

    {"Type": 1, "ProcessName": "...", "Data": "<json string>"}

`Data` is itself JSON and every field inside it is optional.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional


class EventKind(str, Enum):
    USER_ENTER = "user_enter"
    USER_LEAVE = "user_leave"
    COMMENT = "comment"
    GIFT = "gift"
    LIKE = "like"
    FOLLOW = "follow"
    SHARE = "share"
    SYSTEM = "system"
    UNKNOWN = "unknown"


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return None
    return str(value)


def _as_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    return bool(value)


@dataclass(frozen=True)
class RawEvent:
    kind_code: Optional[int]
    producer_name: str
    payload: str

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> "RawEvent":
        payload = data.get("Data", "")
        return cls(
            kind_code=_as_int(data.get("Type")),
            producer_name=_as_str(data.get("ProcessName")) or "",
            payload=payload if isinstance(payload, str) else "",
        )

    def to_wire(self) -> dict:
        return {
            "Type": self.kind_code,
            "ProcessName": self.producer_name,
            "Data": self.payload,
        }


@dataclass(frozen=True)
class UserInfo:
    id: Optional[int] = None
    short_id: Optional[int] = None
    display_id: Optional[str] = None
    nickname: Optional[str] = None
    level: Optional[int] = None
    pay_level: Optional[int] = None
    gender: Optional[int] = None
    head_img_url: Optional[str] = None
    sec_uid: Optional[str] = None
    following_count: Optional[int] = None
    follower_count: Optional[int] = None
    follow_status: Optional[int] = None
    is_admin: Optional[bool] = None
    is_anchor: Optional[bool] = None
    fans_club_name: Optional[str] = None
    fans_club_level: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["UserInfo"]:
        if not isinstance(data, Mapping):
            return None
        club = data.get("FansClub")
        if not isinstance(club, Mapping):
            club = {}
        return cls(
            id=_as_int(data.get("Id")),
            short_id=_as_int(data.get("ShortId")),
            display_id=_as_str(data.get("DisplayId")),
            nickname=_as_str(data.get("Nickname")),
            level=_as_int(data.get("Level")),
            pay_level=_as_int(data.get("PayLevel")),
            gender=_as_int(data.get("Gender")),
            head_img_url=_as_str(data.get("HeadImgUrl")),
            sec_uid=_as_str(data.get("SecUid")),
            following_count=_as_int(data.get("FollowingCount")),
            follower_count=_as_int(data.get("FollowerCount")),
            follow_status=_as_int(data.get("FollowStatus")),
            is_admin=_as_bool(data.get("IsAdmin")),
            is_anchor=_as_bool(data.get("IsAnchor")),
            fans_club_name=_as_str(club.get("ClubName")),
            fans_club_level=_as_int(club.get("Level")),
        )


@dataclass(frozen=True)
class OwnerInfo:
    user_id: Optional[str] = None
    sec_uid: Optional[str] = None
    nickname: Optional[str] = None
    head_url: Optional[str] = None
    follow_status: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["OwnerInfo"]:
        if not isinstance(data, Mapping):
            return None
        return cls(
            user_id=_as_str(data.get("UserId")),
            sec_uid=_as_str(data.get("SecUid")),
            nickname=_as_str(data.get("Nickname")),
            head_url=_as_str(data.get("HeadUrl")),
            follow_status=_as_int(data.get("FollowStatus")),
        )


_KNOWN_KEYS = {
    "CurrentCount", "EnterTipType", "MsgId", "User", "Onwer", "Owner",
    "Content", "RoomId", "WebRoomId", "Appid", "GiftName", "GiftCount",
    "GiftId",
}


@dataclass(frozen=True)
class ParsedPayload:
    current_count: Optional[int] = None
    enter_tip_type: Optional[int] = None
    msg_id: Optional[str] = None
    user: Optional[UserInfo] = None
    owner: Optional[OwnerInfo] = None
    content: Optional[str] = None
    room_id: Optional[str] = None
    web_room_id: Optional[str] = None
    app_id: Optional[str] = None
    gift_name: Optional[str] = None
    gift_count: Optional[int] = None
    gift_id: Optional[int] = None
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ParsedPayload":
        # The producer spells the owner key "Onwer"; accept both.
        owner = data.get("Onwer", data.get("Owner"))
        return cls(
            current_count=_as_int(data.get("CurrentCount")),
            enter_tip_type=_as_int(data.get("EnterTipType")),
            msg_id=_as_str(data.get("MsgId")),
            user=UserInfo.from_dict(data.get("User")),
            owner=OwnerInfo.from_dict(owner),
            content=_as_str(data.get("Content")),
            room_id=_as_str(data.get("RoomId")),
            web_room_id=_as_str(data.get("WebRoomId")),
            app_id=_as_str(data.get("Appid")),
            gift_name=_as_str(data.get("GiftName")) or None,
            gift_count=_as_int(data.get("GiftCount")),
            gift_id=_as_int(data.get("GiftId")),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )


@dataclass(frozen=True)
class RoomInfo:
    room_id: Optional[str] = None
    web_room_id: Optional[str] = None
    current_count: Optional[int] = None


@dataclass(frozen=True)
class GiftInfo:
    gift_name: str
    gift_count: int = 1
    gift_id: Optional[int] = None


@dataclass(frozen=True)
class ClassifiedEvent:
    """A normalized feed event. Created once per frame, never mutated."""

    kind: EventKind
    display_name: str
    formatted_text: str
    content: str
    raw: RawEvent
    parsed: ParsedPayload
    timestamp: datetime = field(default_factory=datetime.now)
    user_info: Optional[UserInfo] = None
    owner_info: Optional[OwnerInfo] = None
    room_info: RoomInfo = field(default_factory=RoomInfo)
    gift_info: Optional[GiftInfo] = None

    @property
    def is_comment(self) -> bool:
        return self.kind is EventKind.COMMENT

    def to_dict(self) -> dict:
        """Flat view for logs and the overlay feed listing."""
        data = {
            "kind": self.kind.value,
            "display_name": self.display_name,
            "text": self.formatted_text,
            "timestamp": self.timestamp.isoformat(),
            "room_id": self.room_info.room_id,
            "current_count": self.room_info.current_count,
        }
        if self.gift_info:
            data["gift"] = {
                "name": self.gift_info.gift_name,
                "count": self.gift_info.gift_count,
                "id": self.gift_info.gift_id,
            }
        return data
