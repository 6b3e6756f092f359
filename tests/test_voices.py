from danmu_companion.voice.voices import (
    DEFAULT_EDGE_VOICE,
    EDGE_VOICES,
    Voice,
    matches_locale,
    pick_best_voice,
)


def _voices() -> list[Voice]:
    return [
        Voice("Google US English", "en-US", local_service=False, default=True),
        Voice("Google 普通话（中国大陆）", "zh-CN", local_service=False),
        Voice("Microsoft Huihui", "zh-CN", local_service=True),
        Voice("Microsoft Kangkang", "zh-CN", default=True),
    ]


def test_prefers_local_voice() -> None:
    assert pick_best_voice(_voices(), "zh-CN").name == "Microsoft Huihui"


def test_then_default_voice() -> None:
    voices = [v for v in _voices() if not v.local_service]
    assert pick_best_voice(voices, "zh-CN").name == "Microsoft Kangkang"


def test_then_first_match() -> None:
    voices = [Voice("a", "en-GB"), Voice("b", "zh-TW"), Voice("c", "zh-CN")]
    assert pick_best_voice(voices, "zh-CN").name == "b"


def test_no_match() -> None:
    assert pick_best_voice([Voice("a", "fr-FR")], "zh-CN") is None
    assert pick_best_voice([], "zh-CN") is None


def test_locale_matching() -> None:
    assert matches_locale(Voice("x", "zh_CN"), "zh-CN")
    assert matches_locale(Voice("Chinese (Mandarin)", ""), "zh-CN")
    assert not matches_locale(Voice("x", "en-US"), "zh-CN")


def test_voice_from_browser_dict() -> None:
    voice = Voice.from_dict({"name": "Ting-Ting", "lang": "zh-CN", "localService": True, "default": False})

    assert voice == Voice("Ting-Ting", "zh-CN", local_service=True, default=False)
    assert Voice.from_dict({"lang": "zh-CN"}) is None
    assert Voice.from_dict("Ting-Ting") is None


def test_edge_catalog() -> None:
    assert DEFAULT_EDGE_VOICE in EDGE_VOICES
    assert all(name.startswith("zh-CN-") for name in EDGE_VOICES)
