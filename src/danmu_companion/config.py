from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv


DEFAULT_SYSTEM_PROMPT = (
    "You are a live-room assistant who answers viewers' questions."
    " Keep replies short, friendly and fun, under 50 characters."
    " Reply in the same language as the viewer."
)


@dataclass
class Settings:
    feed_ws_url: str
    page_key: str
    api_host: str
    api_port: int
    api_base_url: str
    ai_api_key: str | None
    ai_api_url: str
    ai_model: str
    ai_system_prompt: str
    ai_temperature: float
    ai_max_tokens: int
    config_db_path: str
    tts_type: str
    edge_tts_voice: str
    edge_tts_rate: str
    edge_tts_pitch: str
    tts_provider: str
    baidu_tts_api_key: str | None
    baidu_tts_secret_key: str | None
    aliyun_tts_access_key_id: str | None
    aliyun_tts_access_key_secret: str | None
    aliyun_tts_app_key: str | None
    tencent_tts_secret_id: str | None
    tencent_tts_secret_key: str | None
    reconnect_delay_sec: float
    log_level: str


def _optional(name: str) -> str | None:
    return os.getenv(name, "").strip() or None


def _float(name: str, default: str) -> float:
    raw = os.getenv(name, default).strip()
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _int(name: str, default: str) -> int:
    raw = os.getenv(name, default).strip()
    if not raw.isdigit():
        raise ValueError(f"{name} must be a non-negative integer, got {raw!r}")
    return int(raw)


def load_settings() -> Settings:
    load_dotenv()

    api_host = os.getenv("API_HOST", "127.0.0.1")
    api_port = _int("API_PORT", "8765")
    api_base_url = os.getenv("API_BASE_URL", f"http://{api_host}:{api_port}").rstrip("/")

    default_db_path = os.path.abspath(
        os.path.join(os.path.dirname(__file__), "..", "..", "chat_config.db")
    )

    return Settings(
        feed_ws_url=os.getenv("FEED_WS_URL", "ws://localhost:8888"),
        page_key=os.getenv("PAGE_KEY", "live-chat-bot"),
        api_host=api_host,
        api_port=api_port,
        api_base_url=api_base_url,
        ai_api_key=_optional("AI_API_KEY"),
        ai_api_url=os.getenv("AI_API_URL", "https://ark.cn-beijing.volces.com/api/v3"),
        ai_model=os.getenv("AI_MODEL", "doubao-seed-1-6-251015"),
        ai_system_prompt=os.getenv("AI_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),
        ai_temperature=_float("AI_TEMPERATURE", "0.7"),
        ai_max_tokens=_int("AI_MAX_TOKENS", "200"),
        config_db_path=os.getenv("CONFIG_DB_PATH", default_db_path),
        tts_type=os.getenv("TTS_TYPE", "browser"),
        edge_tts_voice=os.getenv("EDGE_TTS_VOICE", "zh-CN-XiaoxiaoNeural"),
        edge_tts_rate=os.getenv("EDGE_TTS_RATE", "+0%"),
        edge_tts_pitch=os.getenv("EDGE_TTS_PITCH", "+0Hz"),
        tts_provider=os.getenv("TTS_PROVIDER", "baidu"),
        baidu_tts_api_key=_optional("BAIDU_TTS_API_KEY"),
        baidu_tts_secret_key=_optional("BAIDU_TTS_SECRET_KEY"),
        aliyun_tts_access_key_id=_optional("ALIYUN_TTS_ACCESS_KEY_ID"),
        aliyun_tts_access_key_secret=_optional("ALIYUN_TTS_ACCESS_KEY_SECRET"),
        aliyun_tts_app_key=_optional("ALIYUN_TTS_APP_KEY"),
        tencent_tts_secret_id=_optional("TENCENT_TTS_SECRET_ID"),
        tencent_tts_secret_key=_optional("TENCENT_TTS_SECRET_KEY"),
        reconnect_delay_sec=_float("RECONNECT_DELAY_SEC", "3"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
