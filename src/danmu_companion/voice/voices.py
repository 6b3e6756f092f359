"""Voice catalog and local voice selection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional


# Edge neural voices (Chinese)
EDGE_VOICES = {
    # Female
    "zh-CN-XiaoxiaoNeural": "Xiaoxiao (female, natural)",
    "zh-CN-XiaoyiNeural": "Xiaoyi (female, gentle)",
    "zh-CN-XiaohanNeural": "Xiaohan (female, lively)",
    "zh-CN-XiaomoNeural": "Xiaomo (female, mature)",
    "zh-CN-XiaoxuanNeural": "Xiaoxuan (female, sweet)",
    "zh-CN-XiaoruiNeural": "Xiaorui (female, intellectual)",
    "zh-CN-XiaoshuangNeural": "Xiaoshuang (female, fresh)",
    "zh-CN-XiaoyanNeural": "Xiaoyan (female, elegant)",
    "zh-CN-XiaoyouNeural": "Xiaoyou (female, friendly)",
    # Male
    "zh-CN-YunxiNeural": "Yunxi (male, natural)",
    "zh-CN-YunyangNeural": "Yunyang (male, steady)",
    "zh-CN-YunyeNeural": "Yunye (male, magnetic)",
    "zh-CN-YunfengNeural": "Yunfeng (male, mild)",
    "zh-CN-YunhaoNeural": "Yunhao (male, professional)",
    "zh-CN-YunjianNeural": "Yunjian (male, energetic)",
}

DEFAULT_EDGE_VOICE = "zh-CN-XiaoxiaoNeural"

_LANGUAGE_NAMES = {
    "zh": "chinese",
    "en": "english",
    "ja": "japanese",
}


@dataclass(frozen=True)
class Voice:
    """A speech-engine voice as reported by an overlay page."""

    name: str
    lang: str
    local_service: bool = False
    default: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Voice"]:
        if not isinstance(data, dict) or not data.get("name"):
            return None
        return cls(
            name=str(data["name"]),
            lang=str(data.get("lang") or ""),
            local_service=bool(data.get("localService", False)),
            default=bool(data.get("default", False)),
        )


def matches_locale(voice: Voice, locale: str) -> bool:
    language, _, region = locale.replace("_", "-").partition("-")
    lang = voice.lang.replace("_", "-").lower()
    if language and lang.split("-")[0] == language.lower():
        return True
    if region and region.lower() in lang.split("-")[1:]:
        return True
    language_name = _LANGUAGE_NAMES.get(language.lower())
    return bool(language_name and language_name in voice.name.lower())


def pick_best_voice(voices: Iterable[Voice], locale: str = "zh-CN") -> Optional[Voice]:
    """Pick the voice to speak ``locale`` with.

    Prefers a locally installed voice for the locale, then the engine's
    default voice for it, then any voice for it. Returns None when nothing
    matches; the engine then falls back to its own default.
    """
    candidates = [v for v in voices if matches_locale(v, locale)]
    if not candidates:
        return None
    for voice in candidates:
        if voice.local_service:
            return voice
    for voice in candidates:
        if voice.default:
            return voice
    return candidates[0]
