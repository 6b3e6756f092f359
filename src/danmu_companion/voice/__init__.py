"""Voice module - Text-to-speech dispatch and playback."""

from .player import AudioPlayer
from .tts_engine import (
    BrowserSpeechBackend,
    EdgeProxyBackend,
    SpeechResult,
    SpeechStatus,
    TTSBackend,
    TTSManager,
    ThirdPartyProxyBackend,
    build_tts_manager,
)
from .voices import EDGE_VOICES, Voice, pick_best_voice

__all__ = [
    "AudioPlayer",
    "BrowserSpeechBackend", "EdgeProxyBackend", "ThirdPartyProxyBackend",
    "SpeechResult", "SpeechStatus", "TTSBackend", "TTSManager", "build_tts_manager",
    "EDGE_VOICES", "Voice", "pick_best_voice",
]
