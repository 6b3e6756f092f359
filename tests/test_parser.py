import json

import pytest

from danmu_companion.errors import ParseError, ParseFailure
from danmu_companion.senses import EventKind, parse_message, speaker_name, try_parse_message
from danmu_companion.senses.events import RawEvent


def _frame(kind_code, payload: dict, producer: str = "grabber") -> str:
    return json.dumps({
        "Type": kind_code,
        "ProcessName": producer,
        "Data": json.dumps(payload, ensure_ascii=False),
    }, ensure_ascii=False)


def test_comment_with_kind_code() -> None:
    event = parse_message(_frame(1, {"Content": "hello", "User": {"Nickname": "Alice"}}))

    assert event.kind is EventKind.COMMENT
    assert event.display_name == "Alice"
    assert event.formatted_text == "hello"
    assert event.content == "hello"
    assert event.is_comment
    assert event.raw.producer_name == "grabber"


def test_gift_without_kind_code_or_content() -> None:
    event = parse_message(_frame(None, {"GiftName": "Rose", "GiftCount": 3}))

    assert event.kind is EventKind.GIFT
    assert event.formatted_text == "sent Rose x3"
    assert event.gift_info is not None
    assert event.gift_info.gift_name == "Rose"
    assert event.gift_info.gift_count == 3


def test_kind_code_wins_over_content_keywords() -> None:
    # Content looks like an entry notice but the producer says "comment"
    event = parse_message(_frame(1, {"Content": "小明$来了直播间人数:200"}))
    assert event.kind is EventKind.COMMENT


def test_unrecognized_kind_code_falls_back_to_content() -> None:
    event = parse_message(_frame(99, {"Content": "小明 点赞了"}))
    assert event.kind is EventKind.LIKE
    assert event.formatted_text == "liked"


def test_enter_tip_type_without_content() -> None:
    entered = parse_message(_frame(None, {"EnterTipType": 0, "CurrentCount": 120}))
    left = parse_message(_frame(None, {"EnterTipType": 1}))

    assert entered.kind is EventKind.USER_ENTER
    assert entered.formatted_text == "entered the room (viewers: 120)"
    assert entered.room_info.current_count == 120
    assert left.kind is EventKind.USER_LEAVE


def test_empty_payload_is_unknown() -> None:
    event = parse_message(_frame(None, {}))

    assert event.kind is EventKind.UNKNOWN
    assert event.display_name == "unknown user"
    assert event.formatted_text == "unknown message"
    assert event.gift_info is None


def test_display_name_falls_back_to_display_id() -> None:
    event = parse_message(_frame(1, {"Content": "hi", "User": {"DisplayId": "alice42"}}))
    assert event.display_name == "alice42"
    assert speaker_name(event) == "alice42"


def test_owner_key_misspelling_is_accepted() -> None:
    event = parse_message(_frame(1, {"Content": "hi", "Onwer": {"Nickname": "Host", "UserId": 7}}))

    assert event.owner_info is not None
    assert event.owner_info.nickname == "Host"
    assert event.owner_info.user_id == "7"


def test_unknown_payload_keys_are_kept() -> None:
    event = parse_message(_frame(1, {"Content": "hi", "Badge": "vip"}))
    assert event.parsed.extra == {"Badge": "vip"}


def test_accepts_mapping_bytes_and_raw_event() -> None:
    payload = json.dumps({"Content": "hi"})
    wire = {"Type": 1, "ProcessName": "p", "Data": payload}

    from_mapping = parse_message(wire)
    from_bytes = parse_message(json.dumps(wire).encode("utf-8"))
    from_raw = parse_message(RawEvent(kind_code=1, producer_name="p", payload=payload))

    assert from_mapping.kind is from_bytes.kind is from_raw.kind is EventKind.COMMENT


def test_malformed_envelope() -> None:
    with pytest.raises(ParseError) as excinfo:
        parse_message("{not json")
    assert excinfo.value.reason is ParseFailure.ENVELOPE_INVALID

    with pytest.raises(ParseError) as excinfo:
        parse_message("[1, 2, 3]")
    assert excinfo.value.reason is ParseFailure.ENVELOPE_INVALID


def test_malformed_payload() -> None:
    bad_json = json.dumps({"Type": 1, "ProcessName": "p", "Data": "{oops"})
    not_object = json.dumps({"Type": 1, "ProcessName": "p", "Data": "\"just a string\""})
    missing = json.dumps({"Type": 1, "ProcessName": "p"})

    for frame in (bad_json, not_object, missing):
        with pytest.raises(ParseError) as excinfo:
            parse_message(frame)
        assert excinfo.value.reason is ParseFailure.PAYLOAD_INVALID


def test_try_parse_drops_bad_frames() -> None:
    assert try_parse_message("garbage") is None
    assert try_parse_message(_frame(1, {"Content": "ok"})) is not None


def test_wrongly_typed_fields_are_ignored() -> None:
    event = parse_message(_frame(1, {"Content": "hi", "CurrentCount": "lots", "User": "nobody"}))

    assert event.room_info.current_count is None
    assert event.user_info is None
    assert event.display_name == "unknown user"


def test_deeply_nested_json_is_rejected() -> None:
    nested = "[" * 100000
    with pytest.raises(ParseError) as excinfo:
        parse_message(nested)
    assert excinfo.value.reason is ParseFailure.ENVELOPE_INVALID

    frame = json.dumps({"Type": 1, "ProcessName": "p", "Data": nested})
    with pytest.raises(ParseError) as excinfo:
        parse_message(frame)
    assert excinfo.value.reason is ParseFailure.PAYLOAD_INVALID

    assert try_parse_message(frame) is None
